# Overview: Customer debt ledger for credit ("ขายเชื่อ") sales.

from __future__ import annotations

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer
from ..validation import NotFoundError, require_positive_int, require_text
from .concurrency import run_with_retry


def get_customer(shop_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, shop_id=shop_id).first()
    if customer is None:
        raise NotFoundError("customer not found", details={"customer_id": customer_id})
    return customer


def list_customers(shop_id: int) -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter_by(shop_id=shop_id)
        .order_by(Customer.updated_at.desc(), Customer.id.desc())
        .all()
    )


def list_debtors(shop_id: int) -> list[Customer]:
    """Customers who still owe money, largest balance first."""
    return (
        db.session.query(Customer)
        .filter(Customer.shop_id == shop_id, Customer.total_debt_satang > 0)
        .order_by(Customer.total_debt_satang.desc(), Customer.id.asc())
        .all()
    )


def find_or_create_customer(
    *,
    shop_id: int,
    name: str,
    phone: str | None = None,
    commit: bool = True,
) -> Customer:
    """Customers are identified by exact name within a shop."""
    name = require_text("customer_name", name, max_length=255)

    customer = db.session.query(Customer).filter_by(shop_id=shop_id, name=name).first()
    if customer is not None:
        return customer

    customer = Customer(shop_id=shop_id, name=name, phone=phone, total_debt_satang=0)
    db.session.add(customer)
    if commit:
        try:
            db.session.commit()
        except IntegrityError:
            # Created concurrently under the same name
            db.session.rollback()
            customer = db.session.query(Customer).filter_by(shop_id=shop_id, name=name).one()
    else:
        db.session.flush()
    return customer


def _reload(shop_id: int, customer_id: int) -> Customer:
    return (
        db.session.query(Customer)
        .populate_existing()
        .filter_by(id=customer_id, shop_id=shop_id)
        .one()
    )


def _apply_debt_change(shop_id: int, customer_id: int, values: dict) -> None:
    stmt = (
        update(Customer)
        .where(Customer.id == customer_id, Customer.shop_id == shop_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount == 0:
        raise NotFoundError("customer not found", details={"customer_id": customer_id})


def increment_debt(*, shop_id: int, customer_id: int, amount_satang, commit: bool = True) -> Customer:
    """Add a credit sale's total to the customer's balance."""
    amount = require_positive_int("amount_satang", amount_satang)
    values = {"total_debt_satang": Customer.total_debt_satang + amount}

    if not commit:
        _apply_debt_change(shop_id, customer_id, values)
        return _reload(shop_id, customer_id)

    def _op():
        _apply_debt_change(shop_id, customer_id, values)
        db.session.commit()
        return _reload(shop_id, customer_id)

    return run_with_retry(_op)


def pay_debt(*, shop_id: int, customer_id: int, amount_satang) -> Customer:
    """
    Record a repayment. The balance is floored at zero in the same UPDATE, so
    overpaying simply clears the debt.
    """
    amount = require_positive_int("amount_satang", amount_satang)
    values = {
        "total_debt_satang": case(
            (Customer.total_debt_satang > amount, Customer.total_debt_satang - amount),
            else_=0,
        )
    }

    def _op():
        _apply_debt_change(shop_id, customer_id, values)
        db.session.commit()
        return _reload(shop_id, customer_id)

    return run_with_retry(_op)
