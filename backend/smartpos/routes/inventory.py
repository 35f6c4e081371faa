# backend/smartpos/routes/inventory.py
"""
Stock ledger routes.

Every change here appends exactly one stock movement. Sales decrement stock
through /api/sales, never through these endpoints.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import error_response, json_body, require_shop
from ..services import inventory_service, products_service
from ..validation import DomainError, require_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/stock")


def _movement_response(movement, product_id: int):
    product = products_service.get_product(g.shop_id, product_id)
    return jsonify({
        "movement": movement.to_dict(product_name=product.name),
        "product": product.to_dict(),
    }), 201


@inventory_bp.post("/in")
@require_shop
def stock_in():
    """
    Receive goods.

    Request body:
    {"product_id": 1, "quantity": 12, "note": "PO 2024-118"}
    """
    try:
        data = json_body()
        product_id = require_int("product_id", data.get("product_id"))
        movement = inventory_service.stock_in(
            shop_id=g.shop_id,
            product_id=product_id,
            quantity=data.get("quantity"),
            note=data.get("note"),
        )
        return _movement_response(movement, product_id)
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record stock in")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjust")
@require_shop
def stock_adjust():
    """
    Manual correction in either direction.

    Request body:
    {"product_id": 1, "delta": -2, "note": "broken bottles"}
    """
    try:
        data = json_body()
        product_id = require_int("product_id", data.get("product_id"))
        movement = inventory_service.adjust_stock(
            shop_id=g.shop_id,
            product_id=product_id,
            delta=data.get("delta"),
            note=data.get("note"),
        )
        return _movement_response(movement, product_id)
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/movements")
@require_shop
def list_movements():
    """
    Query params:
    - product_id: int (optional)
    - cursor: id of the last movement already seen (optional)
    - limit: page size, clamped to MOVEMENT_PAGE_MAX
    """
    try:
        product_id = request.args.get("product_id")
        if product_id not in (None, ""):
            product_id = require_int("product_id", product_id)
        else:
            product_id = None

        result = inventory_service.list_movements(
            shop_id=g.shop_id,
            product_id=product_id,
            cursor=request.args.get("cursor"),
            limit=request.args.get("limit"),
        )
        return jsonify(result), 200
    except DomainError as e:
        return error_response(e)
