# Overview: Stock ledger; the only code path that changes Product.stock.

# backend/smartpos/services/inventory_service.py

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import MOVEMENT_SOURCES
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    require_int,
    require_nonzero_delta,
    require_positive_int,
)
from .concurrency import run_with_retry

"""
Stock Ledger Invariants (authoritative)

- Product.stock never goes negative. A decrement is a single conditional
  UPDATE (... WHERE stock >= :need); there is no read-then-write window for a
  concurrent sale to slip through.
- Every successful stock change appends exactly one StockMovement in the same
  DB transaction: type IN for positive deltas, OUT for negative, quantity is
  the magnitude. Either both rows are committed or neither is.
- Movements are append-only (no updates/deletes).
- A zero, fractional or non-finite delta is rejected before any write.
"""


class InsufficientStockError(ConflictError):
    """Raised when an OUT movement would drive stock below zero."""
    code = "insufficient_stock"


MOVEMENT_NOTE_MAX = 500


def _clean_note(note) -> str | None:
    if note is None:
        return None
    note = str(note).strip()
    if not note:
        return None
    if len(note) > MOVEMENT_NOTE_MAX:
        raise ValidationError(f"note exceeds max length {MOVEMENT_NOTE_MAX}")
    return note


def _apply_delta(
    *,
    product_id: int,
    delta: int,
    source: str,
    note: str | None,
    shop_id: int | None,
) -> StockMovement:
    """Conditional stock update + movement append, flushed but not committed."""
    stmt = update(Product).where(Product.id == product_id)
    if shop_id is not None:
        stmt = stmt.where(Product.shop_id == shop_id)
    if delta < 0:
        stmt = stmt.where(Product.stock >= -delta)
    stmt = stmt.values(stock=Product.stock + delta)

    result = db.session.execute(stmt)

    if result.rowcount == 0:
        # Nothing was written. The follow-up lookup only picks the error message.
        lookup = db.session.query(Product.stock).filter(Product.id == product_id)
        if shop_id is not None:
            lookup = lookup.filter(Product.shop_id == shop_id)
        current = lookup.scalar()
        if current is None:
            raise NotFoundError("product not found", details={"product_id": product_id})
        raise InsufficientStockError(
            "insufficient stock",
            details={
                "product_id": product_id,
                "requested_quantity": -delta,
                "stock": current,
            },
        )

    movement = StockMovement(
        product_id=product_id,
        type="IN" if delta > 0 else "OUT",
        quantity=abs(delta),
        source=source,
        note=note,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def adjust_product_stock(
    product_id: int,
    delta,
    source: str,
    note: str | None = None,
    *,
    shop_id: int | None = None,
    commit: bool = True,
) -> StockMovement:
    """
    Atomically apply a signed stock delta and append its movement.

    commit=False flushes into the caller's transaction (sale creation, product
    creation) and leaves commit/rollback to the caller.

    Raises:
        ValidationError: zero / non-integer / non-finite delta, unknown source
        NotFoundError: product does not exist (in this shop)
        InsufficientStockError: an OUT would make stock negative
    """
    delta = require_nonzero_delta("delta", delta)
    if source not in MOVEMENT_SOURCES:
        raise ValidationError(f"source must be one of {', '.join(MOVEMENT_SOURCES)}")
    note = _clean_note(note)

    if not commit:
        return _apply_delta(
            product_id=product_id, delta=delta, source=source, note=note, shop_id=shop_id
        )

    def _op():
        movement = _apply_delta(
            product_id=product_id, delta=delta, source=source, note=note, shop_id=shop_id
        )
        try:
            db.session.commit()
        except Exception:
            current_app.logger.exception(
                "Stock change for product %s was not committed; stock and movement rolled back",
                product_id,
            )
            raise
        return movement

    return run_with_retry(_op)


def stock_in(*, shop_id: int, product_id: int, quantity, note: str | None = None) -> StockMovement:
    """Receive purchased goods (IN / PURCHASE)."""
    quantity = require_positive_int("quantity", quantity)
    return adjust_product_stock(product_id, quantity, "PURCHASE", note, shop_id=shop_id)


def adjust_stock(*, shop_id: int, product_id: int, delta, note: str | None = None) -> StockMovement:
    """Manual correction (breakage, recount). Source ADJUST, either direction."""
    return adjust_product_stock(product_id, delta, "ADJUST", note, shop_id=shop_id)


def record_sale_stock(*, shop_id: int, product_id: int, quantity: int, sale_id: int) -> StockMovement:
    """OUT / SALE movement inside an open sale transaction (never commits)."""
    quantity = require_positive_int("quantity", quantity)
    return adjust_product_stock(
        product_id,
        -quantity,
        "SALE",
        f"Sale #{sale_id}",
        shop_id=shop_id,
        commit=False,
    )


def list_movements(
    *,
    shop_id: int,
    product_id: int | None = None,
    cursor=None,
    limit=None,
) -> dict:
    """
    Reverse-chronological movements for a shop's products.

    cursor is the id of the last movement the caller has seen; the page holds
    strictly older rows. product_name is read from the live catalog, so a
    rename changes how old movements display.
    """
    config = current_app.config
    if limit is None:
        limit = config.get("MOVEMENT_PAGE_DEFAULT", 50)
    limit = require_int("limit", limit)
    limit = max(1, min(limit, config.get("MOVEMENT_PAGE_MAX", 200)))

    cursor_id = None
    if cursor not in (None, ""):
        cursor_id = require_int("cursor", cursor, minimum=1)

    q = (
        db.session.query(StockMovement, Product.name)
        .join(Product, Product.id == StockMovement.product_id)
        .filter(Product.shop_id == shop_id)
    )

    if product_id is not None:
        exists = db.session.query(Product.id).filter_by(id=product_id, shop_id=shop_id).first()
        if exists is None:
            raise NotFoundError("product not found", details={"product_id": product_id})
        q = q.filter(StockMovement.product_id == product_id)

    if cursor_id is not None:
        q = q.filter(StockMovement.id < cursor_id)

    rows = q.order_by(StockMovement.id.desc()).limit(limit).all()

    next_cursor = rows[-1][0].id if len(rows) == limit else None

    return {
        "items": [movement.to_dict(product_name=name) for movement, name in rows],
        "next_cursor": next_cursor,
        "limit": limit,
    }
