# Overview: Product catalog operations scoped to a shop.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    require_int,
    validate_payload,
)
from .inventory_service import adjust_product_stock


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "barcode", "price_satang", "reorder_point"},
    required_on_create={"name", "price_satang"},
)

# stock is deliberately absent: it only moves through the stock ledger
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "barcode", "price_satang", "reorder_point"},
)


def normalize_barcode(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _split_initial_stock(payload: dict) -> tuple[dict, int]:
    payload = dict(payload or {})
    raw = payload.pop("stock", None)
    initial_stock = 0 if raw is None else require_int("stock", raw, minimum=0)
    return payload, initial_stock


def _validated_create_patch(payload: dict) -> tuple[dict, int]:
    payload, initial_stock = _split_initial_stock(payload)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    if "barcode" in patch:
        patch["barcode"] = normalize_barcode(patch["barcode"])
    patch.setdefault("reorder_point", current_app.config.get("DEFAULT_REORDER_POINT", 5))
    return patch, initial_stock


def _ensure_barcode_free(shop_id: int, barcode: str | None, *, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = db.session.query(Product.id).filter_by(shop_id=shop_id, barcode=barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Barcode '{barcode}' is already used by another product")


def list_products(shop_id: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter_by(shop_id=shop_id)
        .order_by(Product.updated_at.desc(), Product.id.desc())
        .all()
    )


def get_product(shop_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, shop_id=shop_id).first()
    if product is None:
        raise NotFoundError("product not found", details={"product_id": product_id})
    return product


def lookup_by_barcode(shop_id: int, barcode: str) -> Product | None:
    barcode = normalize_barcode(barcode)
    if not barcode:
        return None
    return db.session.query(Product).filter_by(shop_id=shop_id, barcode=barcode).first()


def list_low_stock(shop_id: int) -> list[Product]:
    """Products at or below their reorder point, emptiest first."""
    return (
        db.session.query(Product)
        .filter(Product.shop_id == shop_id, Product.stock <= Product.reorder_point)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )


def _insert_product(shop_id: int, patch: dict, initial_stock: int) -> Product:
    product = Product(shop_id=shop_id, stock=0, **patch)
    db.session.add(product)
    db.session.flush()
    if initial_stock > 0:
        adjust_product_stock(
            product.id,
            initial_stock,
            "ADJUST",
            "initial stock",
            shop_id=shop_id,
            commit=False,
        )
    return product


def create_product(*, shop_id: int, payload: dict) -> Product:
    """
    Create a catalog entry.

    A positive initial `stock` is booked through the stock ledger (IN / ADJUST)
    in the same transaction, so the movement history explains every unit.
    """
    patch, initial_stock = _validated_create_patch(payload)
    _ensure_barcode_free(shop_id, patch.get("barcode"))

    try:
        product = _insert_product(shop_id, patch, initial_stock)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Barcode is already used by another product")
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(product)
    return product


def create_products_bulk(*, shop_id: int, rows: list[dict]) -> list[Product]:
    """
    Create many products at once (already-parsed import rows).

    All rows are validated before anything is written; one bad row rejects the
    whole batch with the offending row number.
    """
    if not isinstance(rows, list) or not rows:
        raise ValidationError("products must be a non-empty list")

    prepared: list[tuple[dict, int]] = []
    seen_barcodes: set[str] = set()
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValidationError(f"Row {index}: must be an object", details={"row": index})
        try:
            patch, initial_stock = _validated_create_patch(row)
            barcode = patch.get("barcode")
            if barcode:
                if barcode in seen_barcodes:
                    raise ConflictError(f"Barcode '{barcode}' appears more than once")
                seen_barcodes.add(barcode)
                _ensure_barcode_free(shop_id, barcode)
        except (ValidationError, ConflictError) as e:
            raise type(e)(f"Row {index}: {e}", details={"row": index})
        prepared.append((patch, initial_stock))

    try:
        products = [_insert_product(shop_id, patch, stock) for patch, stock in prepared]
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Barcode is already used by another product")
    except Exception:
        db.session.rollback()
        raise

    return products


def update_product(*, shop_id: int, product_id: int, payload: dict) -> Product:
    payload = dict(payload or {})
    if "stock" in payload:
        raise ValidationError("stock cannot be edited directly; use stock in or adjust")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)
    if "barcode" in patch:
        patch["barcode"] = normalize_barcode(patch["barcode"])

    product = get_product(shop_id, product_id)
    if "barcode" in patch:
        _ensure_barcode_free(shop_id, patch["barcode"], exclude_id=product.id)

    for key, value in patch.items():
        setattr(product, key, value)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Barcode is already used by another product")

    return product


def delete_product(*, shop_id: int, product_id: int) -> None:
    """Hard delete. Sale items keep their name snapshot; movements stay behind."""
    product = get_product(shop_id, product_id)
    db.session.delete(product)
    db.session.commit()
