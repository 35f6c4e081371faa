from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Credit customer ("ลูกหนี้"). Looked up by name within a shop at sale time.

    total_debt_satang is floored at zero: paying more than is owed zeroes the
    balance, no credit balance is tracked.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "name", name="uq_customers_shop_name"),
        db.CheckConstraint("total_debt_satang >= 0", name="ck_customers_debt_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    total_debt_satang = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "phone": self.phone,
            "total_debt_satang": self.total_debt_satang,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
