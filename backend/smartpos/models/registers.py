from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


SHIFT_STATUSES = ("open", "closed")


class Shift(db.Model):
    """
    Cash-drawer work period.

    LIFECYCLE:
    - open: created by shift_service.open_shift(); expected_cash = opening_cash
    - closed: stamped once by shift_service.close_shift(); never reopened

    At most one open shift per shop, enforced by a partial unique index so two
    terminals racing to open a shift cannot both succeed.

    shift_number restarts at 1 on each shop-local calendar day (shift_date).
    Sales totals are recomputed from the sales table at close time over
    [start_time, end_time).
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "shift_date", "shift_number", name="uq_shifts_shop_date_number"),
        db.Index(
            "uq_shifts_one_open_per_shop",
            "shop_id",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        db.Index("ix_shifts_shop_date", "shop_id", "shift_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    shift_number = db.Column(db.Integer, nullable=False)
    shift_date = db.Column(db.Date, nullable=False)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    # Cash tracking (all amounts in satang)
    opening_cash_satang = db.Column(db.Integer, nullable=False, default=0)
    closing_cash_satang = db.Column(db.Integer, nullable=True)
    expected_cash_satang = db.Column(db.Integer, nullable=False, default=0)
    actual_cash_satang = db.Column(db.Integer, nullable=True)
    cash_difference_satang = db.Column(db.Integer, nullable=True)  # actual - expected

    total_sales_satang = db.Column(db.Integer, nullable=False, default=0)
    cash_sales_satang = db.Column(db.Integer, nullable=False, default=0)
    credit_sales_satang = db.Column(db.Integer, nullable=False, default=0)
    sale_count = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)
    notes = db.Column(db.String(1000), nullable=True)

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "shift_number": self.shift_number,
            "shift_date": self.shift_date.isoformat() if self.shift_date else None,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "opening_cash_satang": self.opening_cash_satang,
            "closing_cash_satang": self.closing_cash_satang,
            "expected_cash_satang": self.expected_cash_satang,
            "actual_cash_satang": self.actual_cash_satang,
            "cash_difference_satang": self.cash_difference_satang,
            "total_sales_satang": self.total_sales_satang,
            "cash_sales_satang": self.cash_sales_satang,
            "credit_sales_satang": self.credit_sales_satang,
            "sale_count": self.sale_count,
            "status": self.status,
            "notes": self.notes,
        }
