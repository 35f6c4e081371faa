# backend/smartpos/routes/products.py
"""
Product catalog routes, scoped to the shop in X-Shop-Id.

Stock is never written here except as the initial stock of a new product,
which goes through the stock ledger. Use /api/stock for everything else.
"""
from flask import Blueprint, current_app, g, jsonify

from ..decorators import error_response, json_body, require_shop
from ..services import products_service
from ..validation import DomainError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_shop
def list_products():
    products = products_service.list_products(g.shop_id)
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.post("")
@require_shop
def create_product():
    """
    Request body:
    {
        "name": "น้ำดื่ม 600ml",
        "price_satang": 1000,
        "barcode": "8850999320014",   (optional)
        "reorder_point": 5,           (optional)
        "stock": 24                   (optional initial stock)
    }
    """
    try:
        product = products_service.create_product(shop_id=g.shop_id, payload=json_body())
        return jsonify(product.to_dict()), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/import")
@require_shop
def import_products():
    """Bulk create from already-parsed rows: {"products": [{...}, ...]}"""
    try:
        rows = json_body().get("products")
        products = products_service.create_products_bulk(shop_id=g.shop_id, rows=rows)
        current_app.logger.info("Imported %d products into shop %s", len(products), g.shop_id)
        return jsonify({"created": len(products), "items": [p.to_dict() for p in products]}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/low-stock")
@require_shop
def low_stock():
    products = products_service.list_low_stock(g.shop_id)
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.get("/barcode/<string:barcode>")
@require_shop
def get_by_barcode(barcode: str):
    product = products_service.lookup_by_barcode(g.shop_id, barcode)
    if product is None:
        return jsonify({"error": "product not found", "code": "not_found", "barcode": barcode}), 404
    return jsonify(product.to_dict()), 200


@products_bp.get("/<int:product_id>")
@require_shop
def get_product(product_id: int):
    try:
        return jsonify(products_service.get_product(g.shop_id, product_id).to_dict()), 200
    except DomainError as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_shop
def update_product(product_id: int):
    try:
        product = products_service.update_product(
            shop_id=g.shop_id, product_id=product_id, payload=json_body()
        )
        return jsonify(product.to_dict()), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_shop
def delete_product(product_id: int):
    try:
        products_service.delete_product(shop_id=g.shop_id, product_id=product_id)
        return jsonify({"deleted": True, "id": product_id}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
