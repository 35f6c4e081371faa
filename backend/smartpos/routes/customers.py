# backend/smartpos/routes/customers.py
"""Customer debt ledger routes."""
from flask import Blueprint, current_app, g, jsonify

from ..decorators import error_response, json_body, require_shop
from ..services import customer_service
from ..validation import DomainError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_shop
def list_customers():
    customers = customer_service.list_customers(g.shop_id)
    return jsonify({"items": [c.to_dict() for c in customers]}), 200


@customers_bp.get("/debtors")
@require_shop
def list_debtors():
    debtors = customer_service.list_debtors(g.shop_id)
    return jsonify({
        "items": [c.to_dict() for c in debtors],
        "total_debt_satang": sum(c.total_debt_satang for c in debtors),
    }), 200


@customers_bp.post("/<int:customer_id>/pay")
@require_shop
def pay(customer_id: int):
    """
    Record a repayment. Paying more than is owed clears the balance to 0.

    Request body: {"amount_satang": 15000}
    """
    try:
        customer = customer_service.pay_debt(
            shop_id=g.shop_id,
            customer_id=customer_id,
            amount_satang=json_body().get("amount_satang"),
        )
        return jsonify(customer.to_dict()), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment for customer %s", customer_id)
        return jsonify({"error": "Internal server error"}), 500
