from __future__ import annotations

from ..extensions import db
from ..models import Shop
from ..validation import require_text
from .concurrency import run_with_retry


def create_shop(name: str) -> Shop:
    name = require_text("name", name, max_length=255)

    def _op():
        shop = Shop(name=name, is_active=True)
        db.session.add(shop)
        db.session.commit()
        return shop

    return run_with_retry(_op)


def list_shops(include_inactive: bool = False) -> list[Shop]:
    q = db.session.query(Shop)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(Shop.id.asc()).all()


def ensure_default_shop(name: str = "Main Shop") -> tuple[Shop, bool]:
    """Return the first shop, creating it when none exists. (shop, created)"""
    shop = db.session.query(Shop).order_by(Shop.id.asc()).first()
    if shop is not None:
        return shop, False
    return create_shop(name), True
