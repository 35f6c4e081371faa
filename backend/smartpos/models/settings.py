from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


SETTINGS_SINGLETON_KEY = "default"


class Settings(db.Model):
    """
    Deployment-wide settings. Exactly one row, keyed by a constant unique key
    and created lazily by settings_service.get_settings().
    """
    __tablename__ = "settings"
    __table_args__ = (
        db.UniqueConstraint("singleton_key", name="uq_settings_singleton"),
    )

    id = db.Column(db.Integer, primary_key=True)
    singleton_key = db.Column(db.String(16), nullable=False, default=SETTINGS_SINGLETON_KEY)

    vat_enabled = db.Column(db.Boolean, nullable=False, default=False)

    # Seller identity printed on full tax invoices
    seller_name = db.Column(db.String(255), nullable=False, default="")
    seller_address = db.Column(db.Text, nullable=False, default="")
    seller_tax_id = db.Column(db.String(13), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "vat_enabled": self.vat_enabled,
            "seller_name": self.seller_name,
            "seller_address": self.seller_address,
            "seller_tax_id": self.seller_tax_id,
            "updated_at": to_utc_z(self.updated_at),
        }
