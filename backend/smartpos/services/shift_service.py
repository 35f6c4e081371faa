"""
Shift Ledger Service - cash-drawer open/close reconciliation

WHY: Each shift is a period of cash accountability. At close, the drawer
count is compared with what the drawer should hold.

DESIGN PRINCIPLES:
- At most one open shift per shop, across all days. A shift left open
  yesterday blocks opening a new one until it is closed.
- shift_number counts from 1 within each shop-local calendar day
- Sales figures are recomputed from the sales table at close time over
  [start_time, end_time), never accumulated, so retrying a failed close is safe
- Closed shifts are immutable; there is no reopen
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Shift
from ..models.registers import SHIFT_STATUSES
from ..time_utils import local_date, utcnow
from ..validation import ConflictError, ValidationError, require_int
from .concurrency import lock_for_update, run_with_retry
from .sales_service import sales_in_window


class ShiftAlreadyOpenError(ConflictError):
    """Raised when opening a shift while another one is still open."""
    code = "shift_already_open"


class NoOpenShiftError(ConflictError):
    """Raised when closing without an open shift."""
    code = "no_open_shift"


def get_open_shift(shop_id: int) -> Shift | None:
    """The shop's open shift, whatever day it was opened on."""
    return db.session.query(Shift).filter_by(shop_id=shop_id, status="open").first()


def get_today_shift(shop_id: int) -> Shift | None:
    """Open shift if any, else the latest shift dated today, else None."""
    open_shift = get_open_shift(shop_id)
    if open_shift is not None:
        return open_shift
    return (
        db.session.query(Shift)
        .filter_by(shop_id=shop_id, shift_date=local_date())
        .order_by(Shift.shift_number.desc())
        .first()
    )


def list_shifts(
    shop_id: int,
    shift_date: date | None = None,
    status: str | None = None,
    limit=30,
) -> list[Shift]:
    limit = max(1, min(require_int("limit", limit), 200))
    q = db.session.query(Shift).filter_by(shop_id=shop_id)
    if status is not None:
        if status not in SHIFT_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(SHIFT_STATUSES)}")
        q = q.filter_by(status=status)
    if shift_date is not None:
        q = q.filter_by(shift_date=shift_date)
    return q.order_by(Shift.start_time.desc(), Shift.id.desc()).limit(limit).all()


def _next_shift_number(shop_id: int, shift_date: date) -> int:
    current = (
        db.session.query(func.max(Shift.shift_number))
        .filter_by(shop_id=shop_id, shift_date=shift_date)
        .scalar()
    )
    return (current or 0) + 1


def open_shift(
    *,
    shop_id: int,
    opening_cash_satang,
    notes: str | None = None,
    now: datetime | None = None,
) -> Shift:
    """
    Open a new shift.

    The open-shift check gives the friendly error; the partial unique index on
    (shop_id) WHERE status='open' is what actually guarantees a single open
    shift when two terminals race, and its violation maps to the same error.

    Raises:
        ValidationError: opening cash missing or negative
        ShiftAlreadyOpenError: the shop already has an open shift
    """
    opening_cash = require_int("opening_cash_satang", opening_cash_satang, minimum=0)

    def _op():
        existing_open = get_open_shift(shop_id)
        if existing_open is not None:
            raise ShiftAlreadyOpenError(
                "shift already open",
                details={"shift_id": existing_open.id, "shift_number": existing_open.shift_number},
            )

        started = now or utcnow()
        shift_date = local_date(started)

        shift = Shift(
            shop_id=shop_id,
            shift_number=_next_shift_number(shop_id, shift_date),
            shift_date=shift_date,
            start_time=started,
            opening_cash_satang=opening_cash,
            expected_cash_satang=opening_cash,  # No sales yet
            total_sales_satang=0,
            cash_sales_satang=0,
            credit_sales_satang=0,
            sale_count=0,
            status="open",
            notes=notes,
        )
        db.session.add(shift)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ShiftAlreadyOpenError("shift already open")
        return shift

    return run_with_retry(_op)


def close_shift(
    *,
    shop_id: int,
    actual_cash_satang,
    notes: str | None = None,
    now: datetime | None = None,
) -> Shift:
    """
    Close the open shift and reconcile cash.

    expected_cash = opening_cash + cash sales in [start_time, now)
    cash_difference = actual_cash - expected_cash (positive = surplus)

    Raises:
        ValidationError: actual cash missing or negative
        NoOpenShiftError: nothing to close
    """
    actual_cash = require_int("actual_cash_satang", actual_cash_satang, minimum=0)

    def _op():
        shift = lock_for_update(
            db.session.query(Shift).filter_by(shop_id=shop_id, status="open")
        ).first()
        if shift is None:
            raise NoOpenShiftError("no open shift")

        ended = now or utcnow()
        totals = sales_in_window(shop_id, shift.start_time, ended)

        expected_cash = shift.opening_cash_satang + totals["cash_satang"]

        shift.status = "closed"
        shift.end_time = ended
        shift.cash_sales_satang = totals["cash_satang"]
        shift.credit_sales_satang = totals["credit_satang"]
        shift.total_sales_satang = totals["total_satang"]
        shift.sale_count = totals["count"]
        shift.expected_cash_satang = expected_cash
        shift.actual_cash_satang = actual_cash
        shift.closing_cash_satang = actual_cash
        shift.cash_difference_satang = actual_cash - expected_cash
        if notes is not None:
            shift.notes = notes

        db.session.commit()
        return shift

    return run_with_retry(_op)
