"""
Full Tax Invoice Register ("ใบกำกับภาษีเต็มรูป")

WHY: A VAT-registered seller must be able to issue a formal, sequentially
numbered tax invoice for a VAT-bearing sale, at most once per sale.

NUMBERING:
- TAX-{year}-{seq:06d}, per shop and per shop-local calendar year
- The sequence lives in document_sequences and is advanced with a single
  UPDATE, so two terminals issuing at once never get the same number
- When a year's sequence row does not exist yet it is seeded from the highest
  invoice number already on file for that year
- Cancelled invoices keep their number; numbers are never reused

SNAPSHOT: seller identity and the sale's VAT breakdown are copied into the
invoice when it is issued.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, FullTaxInvoice
from ..models.documents import INVOICE_STATUSES
from ..time_utils import local_date, utcnow
from ..validation import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    require_int,
    require_text,
    validate_tax_id,
)
from .concurrency import run_with_retry
from .sales_service import get_sale
from .settings_service import describe_fields, get_settings, missing_seller_fields


INVOICE_DOCUMENT_TYPE = "FULL_TAX_INVOICE"
INVOICE_SEQ_PAD = 6


class InvoiceExistsError(ConflictError):
    code = "invoice_exists"


class InvoiceCancelledError(ConflictError):
    code = "invoice_already_cancelled"


class NotEligibleError(ConflictError):
    """The sale carries no VAT."""
    code = "not_eligible_for_full_tax_invoice"


class SellerInfoIncompleteError(ConfigurationError):
    code = "seller_info_incomplete"


def invoice_prefix(year: int) -> str:
    return f"TAX-{year}-"


def _highest_issued_seq(shop_id: int, year: int) -> int:
    prefix = invoice_prefix(year)
    current = (
        db.session.query(func.max(FullTaxInvoice.invoice_number))
        .filter(
            FullTaxInvoice.shop_id == shop_id,
            FullTaxInvoice.invoice_number.like(f"{prefix}%"),
        )
        .scalar()
    )
    if not current:
        return 0
    try:
        return int(current[len(prefix):])
    except ValueError:
        return 0


def _claim_existing(stmt, shop_id: int, period: str) -> int | None:
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(shop_id=shop_id, document_type=INVOICE_DOCUMENT_TYPE, period=period)
        .scalar()
    )
    return current - 1


def next_invoice_number(shop_id: int, year: int) -> str:
    """
    Reserve the next invoice number for a shop/year inside the caller's
    transaction. The reservation is only durable once the caller commits.
    """
    period = str(year)
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.shop_id == shop_id,
            DocumentSequence.document_type == INVOICE_DOCUMENT_TYPE,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    seq = _claim_existing(stmt, shop_id, period)
    if seq is None:
        seq = _highest_issued_seq(shop_id, year) + 1
        row = DocumentSequence(
            shop_id=shop_id,
            document_type=INVOICE_DOCUMENT_TYPE,
            period=period,
            next_number=seq + 1,
        )
        db.session.add(row)
        try:
            db.session.flush()
        except IntegrityError:
            # Another request created the row first; advance theirs instead.
            # Only reads precede this point in the transaction.
            db.session.rollback()
            seq = _claim_existing(stmt, shop_id, period)
            if seq is None:
                raise

    return f"{invoice_prefix(year)}{seq:0{INVOICE_SEQ_PAD}d}"


def _clean_buyer(buyer_name, buyer_address, buyer_tax_id) -> tuple[str, str, str | None]:
    name = require_text("buyer_name", buyer_name, max_length=255)
    address = require_text("buyer_address", buyer_address)
    tax_id = validate_tax_id("buyer_tax_id", buyer_tax_id) or None
    return name, address, tax_id


def create_invoice(
    *,
    shop_id: int,
    sale_id: int,
    buyer_name,
    buyer_address,
    buyer_tax_id=None,
    now: datetime | None = None,
) -> FullTaxInvoice:
    """
    Issue a full tax invoice for a sale.

    Checks, in order:
    1. the sale exists (NotFoundError)
    2. the sale carries VAT (NotEligibleError)
    3. no invoice already references the sale (InvoiceExistsError)
    4. seller name, address and tax ID are all set (SellerInfoIncompleteError,
       listing the missing fields)
    """
    sale_id = require_int("sale_id", sale_id)

    def _op():
        sale = get_sale(shop_id, sale_id)
        if not sale.has_vat:
            raise NotEligibleError(
                "sale is not eligible for a full tax invoice (no VAT)",
                details={"sale_id": sale_id},
            )

        existing = db.session.query(FullTaxInvoice.id).filter_by(sale_id=sale_id).first()
        if existing is not None:
            raise InvoiceExistsError(
                "invoice already exists for this sale",
                details={"sale_id": sale_id, "invoice_id": existing.id},
            )

        settings = get_settings()
        missing = missing_seller_fields(settings)
        if missing:
            raise SellerInfoIncompleteError(
                f"seller information incomplete: {describe_fields(missing)}",
                details={"missing_fields": missing},
            )

        name, address, tax_id = _clean_buyer(buyer_name, buyer_address, buyer_tax_id)

        issued = now or utcnow()
        invoice = FullTaxInvoice(
            shop_id=shop_id,
            sale_id=sale.id,
            invoice_number=next_invoice_number(shop_id, local_date(issued).year),
            seller_name=settings.seller_name,
            seller_address=settings.seller_address,
            seller_tax_id=settings.seller_tax_id,
            buyer_name=name,
            buyer_address=address,
            buyer_tax_id=tax_id,
            subtotal_satang=sale.subtotal_satang,
            vat_amount_satang=sale.vat_amount_satang,
            total_with_vat_satang=sale.total_with_vat_satang,
            issued_date=issued,
            status="issued",
        )
        db.session.add(invoice)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise InvoiceExistsError("invoice already exists for this sale", details={"sale_id": sale_id})
        return invoice

    return run_with_retry(_op)


def get_invoice(shop_id: int, invoice_id: int) -> FullTaxInvoice:
    invoice = db.session.query(FullTaxInvoice).filter_by(id=invoice_id, shop_id=shop_id).first()
    if invoice is None:
        raise NotFoundError("invoice not found", details={"invoice_id": invoice_id})
    return invoice


def get_invoice_for_sale(shop_id: int, sale_id: int) -> FullTaxInvoice | None:
    return db.session.query(FullTaxInvoice).filter_by(shop_id=shop_id, sale_id=sale_id).first()


def list_invoices(shop_id: int, status: str | None = None, year=None) -> list[FullTaxInvoice]:
    q = db.session.query(FullTaxInvoice).filter_by(shop_id=shop_id)
    if status is not None:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(INVOICE_STATUSES)}")
        q = q.filter_by(status=status)
    if year is not None:
        year = require_int("year", year, minimum=1)
        q = q.filter(FullTaxInvoice.invoice_number.like(f"{invoice_prefix(year)}%"))
    return q.order_by(FullTaxInvoice.invoice_number.desc()).all()


def cancel_invoice(*, shop_id: int, invoice_id: int, now: datetime | None = None) -> FullTaxInvoice:
    """issued -> cancelled. The row and its number are kept."""

    def _op():
        stmt = (
            update(FullTaxInvoice)
            .where(
                FullTaxInvoice.id == invoice_id,
                FullTaxInvoice.shop_id == shop_id,
                FullTaxInvoice.status == "issued",
            )
            .values(status="cancelled", cancelled_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        if result.rowcount == 0:
            invoice = get_invoice(shop_id, invoice_id)
            raise InvoiceCancelledError(
                "invoice already cancelled",
                details={"invoice_id": invoice.id, "invoice_number": invoice.invoice_number},
            )
        db.session.commit()
        return (
            db.session.query(FullTaxInvoice)
            .populate_existing()
            .filter_by(id=invoice_id, shop_id=shop_id)
            .one()
        )

    return run_with_retry(_op)


def get_sale_tax_data(shop_id: int, sale_id: int) -> dict:
    """VAT breakdown used to pre-fill the invoice form."""
    sale = get_sale(shop_id, sale_id)
    if not sale.has_vat:
        raise NotEligibleError(
            "sale is not eligible for a full tax invoice (no VAT)",
            details={"sale_id": sale_id},
        )
    invoice = get_invoice_for_sale(shop_id, sale_id)
    return {
        "sale_id": sale.id,
        "subtotal_satang": sale.subtotal_satang,
        "vat_rate_bps": sale.vat_rate_bps,
        "vat_amount_satang": sale.vat_amount_satang,
        "total_with_vat_satang": sale.total_with_vat_satang,
        "items": [item.to_dict() for item in sale.items],
        "invoice_id": invoice.id if invoice else None,
    }
