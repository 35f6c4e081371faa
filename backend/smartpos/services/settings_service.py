from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Settings
from ..models.settings import SETTINGS_SINGLETON_KEY
from ..validation import ValidationError, validate_tax_id


# field -> (English label, Thai label) used in "seller information incomplete"
SELLER_FIELDS = {
    "seller_name": ("shop name", "ชื่อร้าน"),
    "seller_address": ("shop address", "ที่อยู่ร้าน"),
    "seller_tax_id": ("tax ID", "เลขประจำตัวผู้เสียภาษี"),
}

UPDATABLE_FIELDS = {"vat_enabled", *SELLER_FIELDS}


def get_settings() -> Settings:
    """
    Return the settings singleton, creating it with defaults on first read.

    Two first readers racing each other both try to insert; the unique
    singleton key makes the loser fail, roll back and re-read the winner's row.
    """
    settings = db.session.query(Settings).filter_by(singleton_key=SETTINGS_SINGLETON_KEY).first()
    if settings is not None:
        return settings

    settings = Settings(
        singleton_key=SETTINGS_SINGLETON_KEY,
        vat_enabled=False,
        seller_name="",
        seller_address="",
        seller_tax_id="",
    )
    db.session.add(settings)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        settings = db.session.query(Settings).filter_by(singleton_key=SETTINGS_SINGLETON_KEY).one()
    return settings


def update_settings(patch: dict) -> Settings:
    """
    Partial update. seller_tax_id is stored without spaces or hyphens and must
    be 13 digits when present.
    """
    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = sorted(set(patch) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    cleaned: dict = {}
    if "vat_enabled" in patch:
        if not isinstance(patch["vat_enabled"], bool):
            raise ValidationError("vat_enabled must be a boolean")
        cleaned["vat_enabled"] = patch["vat_enabled"]
    for key in ("seller_name", "seller_address"):
        if key in patch:
            value = patch[key]
            cleaned[key] = "" if value is None else str(value).strip()
    if "seller_tax_id" in patch:
        cleaned["seller_tax_id"] = validate_tax_id("seller_tax_id", patch["seller_tax_id"])

    settings = get_settings()
    for key, value in cleaned.items():
        setattr(settings, key, value)
    db.session.commit()
    return settings


def missing_seller_fields(settings: Settings) -> list[str]:
    """Seller fields that are blank, in display order."""
    return [
        key for key in SELLER_FIELDS
        if not (getattr(settings, key) or "").strip()
    ]


def describe_fields(keys: list[str]) -> str:
    return ", ".join(f"{SELLER_FIELDS[k][0]} ({SELLER_FIELDS[k][1]})" for k in keys)
