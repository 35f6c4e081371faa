from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


INVOICE_STATUSES = ("issued", "cancelled")


class FullTaxInvoice(db.Model):
    """
    Full tax invoice ("ใบกำกับภาษีเต็มรูป") for a VAT-bearing sale.

    SNAPSHOT: seller identity and the VAT breakdown are copied at issue time;
    later Settings edits never change an issued invoice.

    LIFECYCLE: issued -> cancelled (one way). Invoices are never deleted and
    their numbers are never reused.
    """
    __tablename__ = "full_tax_invoices"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_full_tax_invoices_sale"),
        db.UniqueConstraint("shop_id", "invoice_number", name="uq_full_tax_invoices_shop_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)

    invoice_number = db.Column(db.String(32), nullable=False, index=True)

    seller_name = db.Column(db.String(255), nullable=False)
    seller_address = db.Column(db.Text, nullable=False)
    seller_tax_id = db.Column(db.String(13), nullable=False)

    buyer_name = db.Column(db.String(255), nullable=False)
    buyer_address = db.Column(db.Text, nullable=False)
    buyer_tax_id = db.Column(db.String(13), nullable=True)

    subtotal_satang = db.Column(db.Integer, nullable=False)
    vat_amount_satang = db.Column(db.Integer, nullable=False)
    total_with_vat_satang = db.Column(db.Integer, nullable=False)

    issued_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    status = db.Column(db.String(16), nullable=False, default="issued", index=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    sale = db.relationship("Sale", backref=db.backref("full_tax_invoice", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "sale_id": self.sale_id,
            "invoice_number": self.invoice_number,
            "seller_name": self.seller_name,
            "seller_address": self.seller_address,
            "seller_tax_id": self.seller_tax_id,
            "buyer_name": self.buyer_name,
            "buyer_address": self.buyer_address,
            "buyer_tax_id": self.buyer_tax_id,
            "subtotal_satang": self.subtotal_satang,
            "vat_amount_satang": self.vat_amount_satang,
            "total_with_vat_satang": self.total_with_vat_satang,
            "issued_date": to_utc_z(self.issued_date),
            "status": self.status,
            "cancelled_at": to_utc_z(self.cancelled_at),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-shop, per-period document sequences.

    WHY: Prevent race conditions when numbering tax invoices; the next number
    is reserved with a single UPDATE on the (shop, type, period) row.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "document_type", "period", name="uq_doc_sequences_shop_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    period = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
