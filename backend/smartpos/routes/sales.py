# backend/smartpos/routes/sales.py
"""
Sales routes.

POST /api/sales records a completed sale in one transaction: the sale and its
items, one SALE stock movement per line and, for credit sales, the customer's
debt. Any failure (unknown product, insufficient stock) leaves nothing behind.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import error_response, json_body, require_shop
from ..services import sales_service
from ..validation import DomainError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_shop
def create_sale():
    """
    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "payment_type": "cash" | "credit",
        "customer_id": 3,            (credit: either id...)
        "customer_name": "ป้าแดง"     (...or a name, created when new)
    }
    """
    try:
        data = json_body()
        sale = sales_service.create_sale(
            shop_id=g.shop_id,
            items=data.get("items"),
            payment_type=data.get("payment_type") or "cash",
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
        )
        return jsonify(sale.to_dict(include_items=True)), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_shop
def list_sales():
    try:
        sales = sales_service.list_sales(g.shop_id, limit=request.args.get("limit", 50))
        return jsonify({"items": [s.to_dict() for s in sales]}), 200
    except DomainError as e:
        return error_response(e)


@sales_bp.get("/today")
@require_shop
def today():
    return jsonify(sales_service.today_totals(g.shop_id)), 200


@sales_bp.get("/<int:sale_id>")
@require_shop
def get_sale(sale_id: int):
    try:
        sale = sales_service.get_sale(g.shop_id, sale_id)
        return jsonify(sale.to_dict(include_items=True)), 200
    except DomainError as e:
        return error_response(e)
