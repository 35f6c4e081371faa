from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


MOVEMENT_TYPES = ("IN", "OUT")
MOVEMENT_SOURCES = ("SALE", "PURCHASE", "ADJUST")


class Product(db.Model):
    """
    Product master data.

    STOCK: `stock` is a denormalized counter that is only ever changed by
    inventory_service.adjust_product_stock(), which writes the matching
    StockMovement in the same DB transaction. Catalog edits never touch it.

    BARCODE: optional, unique within a shop. Blank barcodes are stored as NULL
    so any number of products can go without one.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "barcode", name="uq_products_shop_barcode"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price_satang >= 0", name="ck_products_price_nonnegative"),
        db.Index("ix_products_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)

    # Authoritative storage in satang (frontend may only format for display)
    price_satang = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_point = db.Column(db.Integer, nullable=False, default=5)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    shop = db.relationship("Shop", backref=db.backref("products", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.reorder_point

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "barcode": self.barcode,
            "price_satang": self.price_satang,
            "stock": self.stock,
            "reorder_point": self.reorder_point,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock audit trail: one row per stock-affecting operation.

    quantity is always the magnitude; direction lives in `type` (IN/OUT).
    Rows are never updated or deleted. A hard product delete leaves its
    movements behind with product_id cleared (where the DB enforces FKs).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    type = db.Column(db.String(8), nullable=False)  # IN, OUT
    quantity = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(16), nullable=False, index=True)  # SALE, PURCHASE, ADJUST
    note = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == "IN" else -self.quantity

    def to_dict(self, product_name: str | None = None) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": product_name,
            "type": self.type,
            "quantity": self.quantity,
            "source": self.source,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
