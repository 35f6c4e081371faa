from __future__ import annotations
import math
import re

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

# Maximum price: ฿9,999,999.99 (999,999,999 satang)
MAX_PRICE_SATANG = 999_999_999

TAX_ID_RE = re.compile(r"^\d{13}$")


# =============================================================================
# Error taxonomy
# =============================================================================

class DomainError(Exception):
    """Base for business-rule failures that carry a stable, UI-facing code."""
    code = "domain_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self), "code": self.code}
        body.update(self.details)
        return body


class ValidationError(DomainError, ValueError):
    """400-level input problem."""
    code = "validation_error"


class NotFoundError(DomainError, LookupError):
    """404-level missing product, sale, customer, invoice or shift."""
    code = "not_found"


class ConflictError(DomainError, ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""
    code = "conflict"


class ConfigurationError(DomainError, ValueError):
    """422-level shop configuration problem."""
    code = "configuration_error"


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def require_int(key: str, value: Any, *, minimum: int | None = None) -> int:
    if value is None:
        raise ValidationError(f"{key} is required")
    result = _coerce_int(key, value)
    if minimum is not None and result < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return result


def require_positive_int(key: str, value: Any) -> int:
    result = require_int(key, value)
    if result <= 0:
        raise ValidationError(f"{key} must be a positive integer")
    return result


def require_nonzero_delta(key: str, value: Any) -> int:
    """
    Stock deltas must be non-zero, finite and integer-valued.

    Integral floats (3.0) and integer strings ("-3") are accepted, like
    require_int; NaN, +/-inf, fractions and bools are not.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{key} must be a non-zero integer")
    if isinstance(value, str):
        value = _coerce_int(key, value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{key} must be finite")
        if not value.is_integer():
            raise ValidationError(f"{key} must be an integer")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f"{key} must be a non-zero integer")
    if value == 0:
        raise ValidationError(f"{key} must be non-zero")
    return value


def require_text(key: str, value: Any, *, max_length: int | None = None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{key} cannot be blank")
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return text


def normalize_tax_id(value: str | None) -> str:
    """Strip spaces and hyphens ("0-1055-12345-67-8" -> "0105512345678")."""
    if value is None:
        return ""
    return re.sub(r"[\s-]", "", str(value))


def validate_tax_id(key: str, value: str | None) -> str:
    cleaned = normalize_tax_id(value)
    if cleaned and not TAX_ID_RE.match(cleaned):
        raise ValidationError(f"{key} must be 13 digits")
    return cleaned


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    """
    if "price_satang" in patch:
        price = patch["price_satang"]
        if price is None or not isinstance(price, int):
            raise ValidationError("price_satang must be an integer")
        if price < 0:
            raise ValidationError("price_satang must be >= 0")
        if price > MAX_PRICE_SATANG:
            raise ValidationError(f"price_satang cannot exceed {MAX_PRICE_SATANG}")

    if "reorder_point" in patch:
        point = patch["reorder_point"]
        if point is None or point < 0:
            raise ValidationError("reorder_point must be >= 0")

    if "barcode" in patch and patch["barcode"] == "":
        patch["barcode"] = None
