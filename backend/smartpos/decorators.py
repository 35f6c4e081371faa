# Overview: Request decorators and shared error-to-response mapping for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import Shop
from .validation import (
    ConfigurationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)


SHOP_HEADER = "X-Shop-Id"


def require_shop(f):
    """
    Establish shop context from the X-Shop-Id header.

    Sets:
    - g.shop: the active Shop row
    - g.shop_id: its id

    Returns 400 when the header is missing or not an integer and 404 when the
    shop does not exist or has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(SHOP_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": f"{SHOP_HEADER} header required"}), 400
        try:
            shop_id = int(raw)
        except ValueError:
            return jsonify({"error": f"{SHOP_HEADER} must be an integer"}), 400

        shop = db.session.get(Shop, shop_id)
        if shop is None or not shop.is_active:
            return jsonify({"error": "Shop not found"}), 404

        g.shop = shop
        g.shop_id = shop.id
        return f(*args, **kwargs)

    return decorated_function


def error_response(e: DomainError):
    """JSON body + status for a business-rule failure."""
    if isinstance(e, NotFoundError):
        status = 404
    elif isinstance(e, ConflictError):
        status = 409
    elif isinstance(e, ConfigurationError):
        status = 422
    else:
        status = 400
    return jsonify(e.to_dict()), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data
