# backend/smartpos/routes/invoices.py
"""
Full tax invoice routes ("ใบกำกับภาษีเต็มรูป").

LIFECYCLE: issued -> cancelled. Invoices are never deleted and their numbers
are never reissued.

Error codes a client can react to:
- not_eligible_for_full_tax_invoice (409): sale has no VAT
- invoice_exists (409): the sale already has an invoice
- seller_info_incomplete (422): settings are missing seller fields
- invoice_already_cancelled (409)
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import error_response, json_body, require_shop
from ..services import invoice_service
from ..validation import DomainError


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_shop
def list_invoices():
    """
    Query params:
    - status: issued | cancelled (optional)
    - year: invoice-number year (optional)
    """
    try:
        invoices = invoice_service.list_invoices(
            g.shop_id,
            status=request.args.get("status") or None,
            year=request.args.get("year") or None,
        )
        return jsonify({"items": [i.to_dict() for i in invoices]}), 200
    except DomainError as e:
        return error_response(e)


@invoices_bp.post("")
@require_shop
def create_invoice():
    """
    Request body:
    {
        "sale_id": 42,
        "buyer_name": "บริษัท ตัวอย่าง จำกัด",
        "buyer_address": "...",
        "buyer_tax_id": "0105512345678"   (optional)
    }
    """
    try:
        data = json_body()
        invoice = invoice_service.create_invoice(
            shop_id=g.shop_id,
            sale_id=data.get("sale_id"),
            buyer_name=data.get("buyer_name"),
            buyer_address=data.get("buyer_address"),
            buyer_tax_id=data.get("buyer_tax_id"),
        )
        current_app.logger.info(
            "Issued full tax invoice %s for sale %s (shop %s)",
            invoice.invoice_number, invoice.sale_id, g.shop_id,
        )
        return jsonify({"invoice": invoice.to_dict()}), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to issue full tax invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_shop
def get_invoice(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(g.shop_id, invoice_id)
        return jsonify({"invoice": invoice.to_dict()}), 200
    except DomainError as e:
        return error_response(e)


@invoices_bp.post("/<int:invoice_id>/cancel")
@require_shop
def cancel_invoice(invoice_id: int):
    try:
        invoice = invoice_service.cancel_invoice(shop_id=g.shop_id, invoice_id=invoice_id)
        current_app.logger.info(
            "Cancelled full tax invoice %s (shop %s)", invoice.invoice_number, g.shop_id
        )
        return jsonify({"invoice": invoice.to_dict()}), 200
    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/sale/<int:sale_id>")
@require_shop
def invoice_for_sale(sale_id: int):
    """Whether a sale already has an invoice (invoice is null when not)."""
    invoice = invoice_service.get_invoice_for_sale(g.shop_id, sale_id)
    return jsonify({
        "exists": invoice is not None,
        "invoice": invoice.to_dict() if invoice else None,
    }), 200


@invoices_bp.get("/sale/<int:sale_id>/tax-data")
@require_shop
def sale_tax_data(sale_id: int):
    try:
        return jsonify(invoice_service.get_sale_tax_data(g.shop_id, sale_id)), 200
    except DomainError as e:
        return error_response(e)
