# Overview: Pytest coverage for shift open/close reconciliation.

from datetime import date, datetime, timedelta

import pytest
from smartpos.extensions import db
from smartpos.models import Shift
from smartpos.services import products_service, sales_service, shift_service
from smartpos.services.shift_service import NoOpenShiftError, ShiftAlreadyOpenError
from smartpos.validation import ValidationError


# 10:00 Bangkok time on 1 March 2024
OPENED_AT = datetime(2024, 3, 1, 3, 0)


@pytest.fixture
def baht100(shop):
    """฿100.00 item with plenty of stock."""
    return products_service.create_product(
        shop_id=shop.id, payload={"name": "Item 100", "price_satang": 10000, "stock": 100}
    )


def _sell(shop, product, qty, at, payment_type="cash"):
    return sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": qty}],
        payment_type=payment_type,
        customer_name="ป้าแดง" if payment_type == "credit" else None,
        now=at,
    )


class TestOpenShift:
    def test_open_initializes_expected_cash(self, shop):
        shift = shift_service.open_shift(shop_id=shop.id, opening_cash_satang=50000, now=OPENED_AT)

        assert shift.status == "open"
        assert shift.shift_number == 1
        assert shift.shift_date == date(2024, 3, 1)
        assert shift.expected_cash_satang == 50000
        assert shift.sale_count == 0
        assert shift.end_time is None

    def test_negative_opening_cash_rejected(self, shop):
        with pytest.raises(ValidationError):
            shift_service.open_shift(shop_id=shop.id, opening_cash_satang=-1)

    def test_missing_opening_cash_rejected(self, shop):
        with pytest.raises(ValidationError):
            shift_service.open_shift(shop_id=shop.id, opening_cash_satang=None)

    def test_second_open_rejected(self, shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)

        with pytest.raises(ShiftAlreadyOpenError) as exc:
            shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        assert exc.value.code == "shift_already_open"

    def test_shift_left_open_yesterday_blocks(self, shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)

        with pytest.raises(ShiftAlreadyOpenError):
            shift_service.open_shift(
                shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT + timedelta(days=1)
            )

    def test_shops_are_independent(self, shop, other_shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        other = shift_service.open_shift(shop_id=other_shop.id, opening_cash_satang=0, now=OPENED_AT)
        assert other.shift_number == 1

    def test_unique_index_catches_race(self, shop, monkeypatch):
        """Both callers pass the open-shift check; only the first insert wins."""
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        monkeypatch.setattr(shift_service, "get_open_shift", lambda shop_id: None)

        with pytest.raises(ShiftAlreadyOpenError):
            shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)

        open_count = db.session.query(Shift).filter_by(shop_id=shop.id, status="open").count()
        assert open_count == 1


class TestShiftNumbering:
    def test_numbers_count_up_within_a_day(self, shop):
        for expected in (1, 2, 3):
            start = OPENED_AT + timedelta(hours=expected)
            shift = shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=start)
            assert shift.shift_number == expected
            shift_service.close_shift(shop_id=shop.id, actual_cash_satang=0, now=start + timedelta(minutes=30))

    def test_numbering_restarts_on_next_local_day(self, shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        shift_service.close_shift(shop_id=shop.id, actual_cash_satang=0, now=OPENED_AT + timedelta(hours=8))

        # 17:30 UTC is 00:30 on 2 March in Bangkok
        late = datetime(2024, 3, 1, 17, 30)
        shift = shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=late)

        assert shift.shift_date == date(2024, 3, 2)
        assert shift.shift_number == 1


class TestCloseShift:
    def test_close_reconciles_cash(self, shop, baht100):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=50000, now=OPENED_AT)

        _sell(shop, baht100, 5, OPENED_AT + timedelta(hours=1))
        _sell(shop, baht100, 7, OPENED_AT + timedelta(hours=2))
        _sell(shop, baht100, 1, OPENED_AT + timedelta(hours=3), "credit")
        _sell(shop, baht100, 2, OPENED_AT + timedelta(hours=4), "credit")

        shift = shift_service.close_shift(
            shop_id=shop.id, actual_cash_satang=168000, now=OPENED_AT + timedelta(hours=8)
        )

        assert shift.status == "closed"
        assert shift.cash_sales_satang == 120000
        assert shift.credit_sales_satang == 30000
        assert shift.total_sales_satang == 150000
        assert shift.sale_count == 4
        assert shift.expected_cash_satang == 170000
        assert shift.actual_cash_satang == 168000
        assert shift.closing_cash_satang == 168000
        assert shift.cash_difference_satang == -2000
        assert shift.end_time == OPENED_AT + timedelta(hours=8)

    def test_window_is_half_open(self, shop, baht100):
        _sell(shop, baht100, 1, OPENED_AT - timedelta(seconds=1))
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        _sell(shop, baht100, 2, OPENED_AT)
        closed_at = OPENED_AT + timedelta(hours=1)
        _sell(shop, baht100, 4, closed_at)

        shift = shift_service.close_shift(shop_id=shop.id, actual_cash_satang=20000, now=closed_at)

        assert shift.sale_count == 1
        assert shift.cash_sales_satang == 20000
        assert shift.cash_difference_satang == 0

    def test_vat_sales_count_at_grand_total(self, shop, baht100, vat_settings):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        _sell(shop, baht100, 1, OPENED_AT + timedelta(minutes=5))

        shift = shift_service.close_shift(
            shop_id=shop.id, actual_cash_satang=10700, now=OPENED_AT + timedelta(hours=1)
        )
        assert shift.cash_sales_satang == 10700
        assert shift.cash_difference_satang == 0

    def test_close_without_open_shift(self, shop):
        with pytest.raises(NoOpenShiftError) as exc:
            shift_service.close_shift(shop_id=shop.id, actual_cash_satang=0)
        assert exc.value.code == "no_open_shift"

    def test_closed_shift_cannot_be_closed_again(self, shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        shift_service.close_shift(shop_id=shop.id, actual_cash_satang=0, now=OPENED_AT + timedelta(hours=1))

        with pytest.raises(NoOpenShiftError):
            shift_service.close_shift(shop_id=shop.id, actual_cash_satang=0)

    def test_negative_actual_cash_rejected(self, shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        with pytest.raises(ValidationError):
            shift_service.close_shift(shop_id=shop.id, actual_cash_satang=-5)
        assert shift_service.get_open_shift(shop.id) is not None


class TestShiftQueries:
    def test_list_filters(self, shop):
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        shift_service.close_shift(shop_id=shop.id, actual_cash_satang=0, now=OPENED_AT + timedelta(hours=1))
        shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT + timedelta(hours=2))

        assert len(shift_service.list_shifts(shop.id)) == 2
        assert [s.status for s in shift_service.list_shifts(shop.id, status="open")] == ["open"]
        assert len(shift_service.list_shifts(shop.id, shift_date=date(2024, 3, 1))) == 2
        assert shift_service.list_shifts(shop.id, shift_date=date(2024, 3, 2)) == []

        with pytest.raises(ValidationError):
            shift_service.list_shifts(shop.id, status="paused")

    def test_today_shift_prefers_open_shift(self, shop):
        assert shift_service.get_today_shift(shop.id) is None

        # Opened on an earlier day and never closed
        shift = shift_service.open_shift(shop_id=shop.id, opening_cash_satang=0, now=OPENED_AT)
        assert shift_service.get_today_shift(shop.id).id == shift.id
