from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PAYMENT_TYPES = ("cash", "credit")


class Sale(db.Model):
    """
    A completed POS transaction. Immutable after creation.

    AMOUNTS (satang):
    - total_amount_satang: legacy pre-VAT total, kept for older readers
    - subtotal/vat_rate_bps/vat_amount/total_with_vat: VAT breakdown, all 0
      for VAT-less sales
    - grand_total_satang (derived): what the customer paid or now owes
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    payment_type = db.Column(db.String(16), nullable=False, default="cash")

    total_amount_satang = db.Column(db.Integer, nullable=False, default=0)

    subtotal_satang = db.Column(db.Integer, nullable=False, default=0)
    vat_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    vat_amount_satang = db.Column(db.Integer, nullable=False, default=0)
    total_with_vat_satang = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
    )

    @property
    def has_vat(self) -> bool:
        return (self.vat_rate_bps or 0) > 0

    @property
    def grand_total_satang(self) -> int:
        if self.has_vat:
            return self.total_with_vat_satang
        return self.total_amount_satang

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "payment_type": self.payment_type,
            "total_amount_satang": self.total_amount_satang,
            "subtotal_satang": self.subtotal_satang,
            "vat_rate_bps": self.vat_rate_bps,
            "vat_amount_satang": self.vat_amount_satang,
            "total_with_vat_satang": self.total_with_vat_satang,
            "grand_total_satang": self.grand_total_satang,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Sale line. product_name is a snapshot taken at sale time, decoupled from
    later catalog renames.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_satang = db.Column(db.Integer, nullable=False)
    total_price_satang = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_satang": self.unit_price_satang,
            "total_price_satang": self.total_price_satang,
        }
