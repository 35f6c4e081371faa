# Overview: Read-only sales reporting over shop-local calendar days and months.

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Sale, SaleItem
from ..time_utils import local_date, local_day_bounds, local_midnight_utc, to_local
from ..validation import require_int
from .products_service import list_low_stock
from .sales_service import GRAND_TOTAL, sales_in_window


def _window(shop_id: int, start_day: date, end_day: date) -> dict:
    """Totals for shop-local days [start_day, end_day)."""
    totals = sales_in_window(shop_id, local_midnight_utc(start_day), local_midnight_utc(end_day))
    return {"total_satang": totals["total_satang"], "sale_count": totals["count"]}


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _add_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def sales_summary(shop_id: int, today: date | None = None) -> dict:
    """Today, this week (from Monday) and this month."""
    today = today or local_date()
    tomorrow = today + timedelta(days=1)
    week_start = today - timedelta(days=today.weekday())
    return {
        "today": _window(shop_id, today, tomorrow),
        "week": _window(shop_id, week_start, tomorrow),
        "month": _window(shop_id, _month_start(today), tomorrow),
    }


def _bucketed_sales(shop_id: int, start_day: date, end_day: date, key) -> dict:
    rows = (
        db.session.query(Sale.created_at, GRAND_TOTAL.label("grand_total"))
        .filter(
            Sale.shop_id == shop_id,
            Sale.created_at >= local_midnight_utc(start_day),
            Sale.created_at < local_midnight_utc(end_day),
        )
        .all()
    )
    buckets: dict = defaultdict(lambda: {"total_satang": 0, "sale_count": 0})
    for created_at, grand_total in rows:
        bucket = buckets[key(to_local(created_at).date())]
        bucket["total_satang"] += int(grand_total or 0)
        bucket["sale_count"] += 1
    return buckets


def daily_sales(shop_id: int, days=7, today: date | None = None) -> list[dict]:
    """One row per local day, oldest first, zero-filled."""
    days = max(1, min(require_int("days", days), 366))
    today = today or local_date()
    first = today - timedelta(days=days - 1)

    buckets = _bucketed_sales(shop_id, first, today + timedelta(days=1), lambda d: d)
    result = []
    for offset in range(days):
        day = first + timedelta(days=offset)
        result.append({"date": day.isoformat(), **buckets.get(day, {"total_satang": 0, "sale_count": 0})})
    return result


def monthly_sales(shop_id: int, months=6, today: date | None = None) -> list[dict]:
    """One row per local month (YYYY-MM), oldest first, zero-filled."""
    months = max(1, min(require_int("months", months), 60))
    today = today or local_date()
    first = _add_months(_month_start(today), -(months - 1))

    buckets = _bucketed_sales(
        shop_id, first, today + timedelta(days=1), lambda d: d.strftime("%Y-%m")
    )
    result = []
    for offset in range(months):
        label = _add_months(first, offset).strftime("%Y-%m")
        result.append({"month": label, **buckets.get(label, {"total_satang": 0, "sale_count": 0})})
    return result


def top_products(shop_id: int, limit=5) -> list[dict]:
    """Best sellers by quantity, grouped on the sale-time name snapshot."""
    limit = max(1, min(require_int("limit", limit), 100))
    rows = (
        db.session.query(
            SaleItem.product_name,
            func.sum(SaleItem.quantity).label("quantity"),
            func.sum(SaleItem.total_price_satang).label("revenue"),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(Sale.shop_id == shop_id)
        .group_by(SaleItem.product_name)
        .order_by(func.sum(SaleItem.quantity).desc(), SaleItem.product_name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_name": name,
            "quantity": int(quantity or 0),
            "revenue_satang": int(revenue or 0),
        }
        for name, quantity, revenue in rows
    ]


def dashboard(shop_id: int) -> dict:
    start, end = local_day_bounds(local_date())
    today = sales_in_window(shop_id, start, end)

    low_stock = list_low_stock(shop_id)

    debt_row = (
        db.session.query(
            func.count(Customer.id),
            func.coalesce(func.sum(Customer.total_debt_satang), 0),
        )
        .filter(Customer.shop_id == shop_id, Customer.total_debt_satang > 0)
        .one()
    )
    top_debtors = (
        db.session.query(Customer)
        .filter(Customer.shop_id == shop_id, Customer.total_debt_satang > 0)
        .order_by(Customer.total_debt_satang.desc(), Customer.id.asc())
        .limit(5)
        .all()
    )

    return {
        "today_sales_satang": today["total_satang"],
        "today_sale_count": today["count"],
        "low_stock_count": len(low_stock),
        "low_stock_products": [p.to_dict() for p in low_stock[:5]],
        "debtor_count": int(debt_row[0] or 0),
        "total_debt_satang": int(debt_row[1] or 0),
        "top_debtors": [c.to_dict() for c in top_debtors],
    }
