# backend/smartpos/routes/system.py
"""
System health and shop-wide settings endpoints.

Settings is a single deployment-wide row (VAT switch and the seller identity
printed on full tax invoices). It is read lazily and created with defaults on
first access.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..decorators import error_response, json_body, require_shop
from ..extensions import db
from ..models import Shop
from ..services import settings_service
from ..time_utils import utcnow
from ..validation import DomainError

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Check database connectivity with a trivial query."""
    start_time = time.time()
    try:
        shop_count = db.session.query(Shop).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"shops": shop_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503
    return jsonify({
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }), http_status


@system_bp.get("/settings")
@require_shop
def get_settings_route():
    try:
        settings = settings_service.get_settings()
        missing = settings_service.missing_seller_fields(settings)
        return jsonify({
            "settings": settings.to_dict(),
            "vat_rate_bps": current_app.config.get("VAT_RATE_BPS", 700),
            "missing_seller_fields": missing,
        }), 200
    except Exception:
        current_app.logger.exception("Failed to load settings")
        return jsonify({"error": "Internal server error"}), 500


@system_bp.patch("/settings")
@require_shop
def update_settings_route():
    """
    Partial update.

    Request body (any subset):
    {
        "vat_enabled": true,
        "seller_name": "ร้านตัวอย่าง",
        "seller_address": "...",
        "seller_tax_id": "0-1055-12345-67-8"
    }
    """
    try:
        settings = settings_service.update_settings(json_body())
        current_app.logger.info("Settings updated (vat_enabled=%s)", settings.vat_enabled)
        return jsonify({"settings": settings.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500
