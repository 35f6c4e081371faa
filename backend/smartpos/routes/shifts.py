# backend/smartpos/routes/shifts.py
"""
Shift (cash drawer) routes.

DESIGN:
- Shift lifecycle: open -> closed (immutable once closed)
- One open shift per shop at a time, whatever day it was opened
- Close-out figures are recomputed from sales at close time
"""
from datetime import date

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import error_response, json_body, require_shop
from ..services import shift_service
from ..validation import DomainError, ValidationError


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("")
@require_shop
def list_shifts():
    """
    Query params:
    - date: YYYY-MM-DD shop-local shift date (optional)
    - status: open | closed (optional)
    - limit: max rows (default 30)
    """
    try:
        shift_date = None
        raw_date = request.args.get("date")
        if raw_date:
            try:
                shift_date = date.fromisoformat(raw_date)
            except ValueError:
                raise ValidationError("date must be YYYY-MM-DD")

        shifts = shift_service.list_shifts(
            g.shop_id,
            shift_date=shift_date,
            status=request.args.get("status") or None,
            limit=request.args.get("limit", 30),
        )
        return jsonify({"items": [s.to_dict() for s in shifts]}), 200
    except DomainError as e:
        return error_response(e)


@shifts_bp.get("/today")
@require_shop
def today_shift():
    """The open shift, else the latest one dated today, else null."""
    shift = shift_service.get_today_shift(g.shop_id)
    return jsonify({"shift": shift.to_dict() if shift else None}), 200


@shifts_bp.post("/open")
@require_shop
def open_shift():
    """
    Request body:
    {"opening_cash_satang": 50000, "notes": "..."}
    """
    try:
        data = json_body()
        shift = shift_service.open_shift(
            shop_id=g.shop_id,
            opening_cash_satang=data.get("opening_cash_satang"),
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Shift %s opened for shop %s (date %s, opening cash %s)",
            shift.shift_number, g.shop_id, shift.shift_date, shift.opening_cash_satang,
        )
        return jsonify({"shift": shift.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/close")
@require_shop
def close_shift():
    """
    Request body:
    {"actual_cash_satang": 168000, "notes": "..."}

    Response includes expected cash and the difference (negative = short).
    """
    try:
        data = json_body()
        shift = shift_service.close_shift(
            shop_id=g.shop_id,
            actual_cash_satang=data.get("actual_cash_satang"),
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Shift %s closed for shop %s (expected %s, actual %s, difference %s)",
            shift.shift_number, g.shop_id,
            shift.expected_cash_satang, shift.actual_cash_satang, shift.cash_difference_satang,
        )
        return jsonify({"shift": shift.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return jsonify({"error": "Internal server error"}), 500
