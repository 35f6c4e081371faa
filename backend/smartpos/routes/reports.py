# backend/smartpos/routes/reports.py
"""
Read-only sales reports. Days and months are shop-local
(SHOP_UTC_OFFSET_MINUTES); amounts are grand totals in satang.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import error_response, require_shop
from ..services import reporting_service
from ..validation import DomainError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_shop
def summary():
    return jsonify(reporting_service.sales_summary(g.shop_id)), 200


@reports_bp.get("/daily")
@require_shop
def daily():
    try:
        rows = reporting_service.daily_sales(g.shop_id, days=request.args.get("days", 7))
        return jsonify({"items": rows}), 200
    except DomainError as e:
        return error_response(e)


@reports_bp.get("/monthly")
@require_shop
def monthly():
    try:
        rows = reporting_service.monthly_sales(g.shop_id, months=request.args.get("months", 6))
        return jsonify({"items": rows}), 200
    except DomainError as e:
        return error_response(e)


@reports_bp.get("/top-products")
@require_shop
def top_products():
    try:
        rows = reporting_service.top_products(g.shop_id, limit=request.args.get("limit", 5))
        return jsonify({"items": rows}), 200
    except DomainError as e:
        return error_response(e)


@reports_bp.get("/dashboard")
@require_shop
def dashboard():
    return jsonify(reporting_service.dashboard(g.shop_id)), 200
