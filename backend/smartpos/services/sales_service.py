"""
Sales Service - completed POS transactions

WHY: A sale touches four kinds of rows: the sale and its items, product stock
(plus one movement per line), and, for credit sales, the customer's debt.
They are written in ONE database transaction: either the whole sale is
recorded or none of it is. A line that would drive stock negative aborts the
sale before anything is committed.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Sale, SaleItem, Product
from ..models.sales import PAYMENT_TYPES
from ..time_utils import local_date, local_day_bounds, utcnow
from ..validation import NotFoundError, ValidationError, require_int, require_positive_int
from .concurrency import run_with_retry
from .customer_service import find_or_create_customer, get_customer, increment_debt
from .inventory_service import record_sale_stock
from .settings_service import get_settings


# What the customer actually paid (cash) or now owes (credit)
GRAND_TOTAL = case(
    (Sale.vat_rate_bps > 0, Sale.total_with_vat_satang),
    else_=Sale.total_amount_satang,
)


def compute_vat(subtotal_satang: int, rate_bps: int) -> int:
    """VAT on top of a pre-VAT subtotal, nearest satang (half-up)."""
    if rate_bps <= 0:
        return 0
    return (subtotal_satang * rate_bps + 5000) // 10000


def _parse_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = require_int(f"items[{index}].product_id", item.get("product_id"))
        quantity = require_positive_int(f"items[{index}].quantity", item.get("quantity"))
        parsed.append((product_id, quantity))
    return parsed


def create_sale(
    *,
    shop_id: int,
    items: list[dict],
    payment_type: str = "cash",
    customer_id: int | None = None,
    customer_name: str | None = None,
    now: datetime | None = None,
) -> Sale:
    """
    Record a completed sale.

    Prices and name snapshots come from the catalog, never from the client.
    When VAT is enabled in Settings, VAT is added on top of the catalog price.

    Raises:
        ValidationError: bad items/payment type, credit sale without customer
        NotFoundError: unknown product or customer
        InsufficientStockError: a line would make stock negative
    """
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of {', '.join(PAYMENT_TYPES)}")

    lines = _parse_items(items)

    if customer_id is not None:
        customer_id = require_int("customer_id", customer_id)
    if customer_name is not None and not str(customer_name).strip():
        customer_name = None
    if payment_type == "credit" and customer_id is None and customer_name is None:
        raise ValidationError("credit sales require a customer")

    settings = get_settings()
    vat_rate_bps = current_app.config.get("VAT_RATE_BPS", 700) if settings.vat_enabled else 0

    def _op():
        product_ids = {product_id for product_id, _ in lines}
        products = {
            p.id: p
            for p in db.session.query(Product)
            .filter(Product.shop_id == shop_id, Product.id.in_(product_ids))
            .all()
        }
        for product_id in product_ids:
            if product_id not in products:
                raise NotFoundError("product not found", details={"product_id": product_id})

        customer = None
        if customer_id is not None:
            customer = get_customer(shop_id, customer_id)
        elif customer_name is not None:
            customer = find_or_create_customer(shop_id=shop_id, name=customer_name, commit=False)

        sale_items = []
        subtotal = 0
        for product_id, quantity in lines:
            product = products[product_id]
            line_total = product.price_satang * quantity
            subtotal += line_total
            sale_items.append(SaleItem(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_price_satang=product.price_satang,
                total_price_satang=line_total,
            ))

        vat_amount = compute_vat(subtotal, vat_rate_bps)

        sale = Sale(
            shop_id=shop_id,
            customer_id=customer.id if customer else None,
            payment_type=payment_type,
            total_amount_satang=subtotal,
            subtotal_satang=subtotal if vat_rate_bps else 0,
            vat_rate_bps=vat_rate_bps,
            vat_amount_satang=vat_amount,
            total_with_vat_satang=(subtotal + vat_amount) if vat_rate_bps else 0,
            created_at=now or utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for sale_item in sale_items:
            sale_item.sale_id = sale.id
            db.session.add(sale_item)

        for product_id, quantity in lines:
            record_sale_stock(shop_id=shop_id, product_id=product_id, quantity=quantity, sale_id=sale.id)

        if payment_type == "credit" and sale.grand_total_satang > 0:
            increment_debt(
                shop_id=shop_id,
                customer_id=customer.id,
                amount_satang=sale.grand_total_satang,
                commit=False,
            )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(shop_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, shop_id=shop_id).first()
    if sale is None:
        raise NotFoundError("sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(shop_id: int, limit=50) -> list[Sale]:
    limit = max(1, min(require_int("limit", limit), 200))
    return (
        db.session.query(Sale)
        .filter_by(shop_id=shop_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def sales_in_window(shop_id: int, start: datetime, end: datetime) -> dict:
    """
    Aggregate sales created in the half-open window [start, end).

    Used by shift close and reports; amounts are grand totals in satang.
    """
    row = (
        db.session.query(
            func.coalesce(func.sum(case((Sale.payment_type == "cash", GRAND_TOTAL), else_=0)), 0).label("cash"),
            func.coalesce(func.sum(case((Sale.payment_type == "credit", GRAND_TOTAL), else_=0)), 0).label("credit"),
            func.coalesce(func.sum(GRAND_TOTAL), 0).label("total"),
            func.count(Sale.id).label("count"),
        )
        .filter(
            Sale.shop_id == shop_id,
            Sale.created_at >= start,
            Sale.created_at < end,
        )
        .one()
    )
    return {
        "cash_satang": int(row.cash or 0),
        "credit_satang": int(row.credit or 0),
        "total_satang": int(row.total or 0),
        "count": int(row.count or 0),
    }


def today_totals(shop_id: int) -> dict:
    start, end = local_day_bounds(local_date())
    totals = sales_in_window(shop_id, start, end)
    return {"total_satang": totals["total_satang"], "sale_count": totals["count"]}
