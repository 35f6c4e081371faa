from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from flask import current_app, has_app_context


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


# =============================================================================
# Shop-local calendar
# =============================================================================
#
# Timestamps are stored UTC-naive. "Today", shift dates and daily/monthly report
# buckets are shop-local, defined by a fixed UTC offset from config.

def shop_tz() -> timezone:
    minutes = 420
    if has_app_context():
        minutes = int(current_app.config.get("SHOP_UTC_OFFSET_MINUTES", minutes))
    return timezone(timedelta(minutes=minutes))


def to_local(dt: datetime) -> datetime:
    """UTC-naive -> shop-local naive."""
    return dt.replace(tzinfo=timezone.utc).astimezone(shop_tz()).replace(tzinfo=None)


def local_date(dt: datetime | None = None) -> date:
    """Shop-local calendar date of a UTC-naive instant (default: now)."""
    return to_local(dt or utcnow()).date()


def local_midnight_utc(day: date) -> datetime:
    """UTC-naive instant of 00:00 shop-local time on `day`."""
    local = datetime(day.year, day.month, day.day, tzinfo=shop_tz())
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC-naive window [start, end) covering a shop-local day."""
    start = local_midnight_utc(day)
    return start, local_midnight_utc(day + timedelta(days=1))
