# Overview: Pytest coverage for the stock ledger and movement listing.

"""
Stock Ledger Tests

- Stock never goes below zero; a rejected OUT writes nothing
- Every successful change appends exactly one movement whose quantity is
  |delta| and whose type follows the sign of delta
- Sum of signed movement quantities equals current stock
- Movement listing: newest first, cursor pages, clamped page size
"""

import math

import pytest
from smartpos.extensions import db
from smartpos.models import Product, StockMovement
from smartpos.services import inventory_service, products_service, sales_service
from smartpos.services.inventory_service import InsufficientStockError
from smartpos.validation import NotFoundError, ValidationError


def _movements(product_id):
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.asc())
        .all()
    )


def _stock(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id).stock


class TestAdjustProductStock:
    def test_initial_stock_is_booked_as_adjust_movement(self, product):
        movements = _movements(product.id)
        assert len(movements) == 1
        assert movements[0].type == "IN"
        assert movements[0].source == "ADJUST"
        assert movements[0].quantity == 10
        assert movements[0].note == "initial stock"

    def test_positive_delta_appends_in_movement(self, shop, product):
        movement = inventory_service.stock_in(shop_id=shop.id, product_id=product.id, quantity=12, note="PO-118")

        assert movement.type == "IN"
        assert movement.quantity == 12
        assert movement.source == "PURCHASE"
        assert movement.note == "PO-118"
        assert _stock(product.id) == 22

    def test_negative_delta_appends_out_movement(self, shop, product):
        movement = inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta=-4)

        assert movement.type == "OUT"
        assert movement.quantity == 4
        assert movement.source == "ADJUST"
        assert _stock(product.id) == 6

    def test_decrement_to_exactly_zero_is_allowed(self, shop, product):
        inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta=-10)
        assert _stock(product.id) == 0

    def test_insufficient_stock_writes_nothing(self, shop, product):
        before = len(_movements(product.id))

        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta=-11)

        assert exc.value.code == "insufficient_stock"
        assert exc.value.details["stock"] == 10
        assert _stock(product.id) == 10
        assert len(_movements(product.id)) == before

    @pytest.mark.parametrize("bad", [0, 1.5, math.nan, math.inf, -math.inf, True, None, "abc", "1.5", "0"])
    def test_rejects_invalid_delta(self, shop, product, bad):
        with pytest.raises(ValidationError):
            inventory_service.adjust_product_stock(product.id, bad, "ADJUST", shop_id=shop.id)
        assert _stock(product.id) == 10

    def test_integral_float_delta_is_accepted(self, shop, product):
        inventory_service.adjust_product_stock(product.id, 3.0, "ADJUST", shop_id=shop.id)
        assert _stock(product.id) == 13

    def test_integer_string_delta_matches_stock_in_coercion(self, shop, product):
        inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta="-3")
        inventory_service.stock_in(shop_id=shop.id, product_id=product.id, quantity="2")
        assert _stock(product.id) == 9

    def test_unknown_source_rejected(self, shop, product):
        with pytest.raises(ValidationError):
            inventory_service.adjust_product_stock(product.id, 1, "GIFT", shop_id=shop.id)

    def test_unknown_product_is_not_found(self, shop):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(shop_id=shop.id, product_id=99999, delta=1)

    def test_other_shops_product_is_not_found(self, other_shop, product):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(shop_id=other_shop.id, product_id=product.id, delta=-1)
        assert _stock(product.id) == 10

    def test_stock_in_requires_positive_quantity(self, shop, product):
        with pytest.raises(ValidationError):
            inventory_service.stock_in(shop_id=shop.id, product_id=product.id, quantity=-5)

    def test_overlong_note_rejected(self, shop, product):
        with pytest.raises(ValidationError):
            inventory_service.stock_in(shop_id=shop.id, product_id=product.id, quantity=1, note="x" * 501)

    def test_signed_movements_sum_to_stock(self, shop, product):
        inventory_service.stock_in(shop_id=shop.id, product_id=product.id, quantity=7)
        inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta=-3)
        with pytest.raises(InsufficientStockError):
            inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta=-100)
        inventory_service.adjust_stock(shop_id=shop.id, product_id=product.id, delta=-14)

        assert sum(m.signed_quantity for m in _movements(product.id)) == _stock(product.id) == 0


class TestSaleScenario:
    """stock 10, reorder point 5: sell 3, sell 5, then try 5 more."""

    def test_end_to_end(self, shop, product):
        low_ids = lambda: [p.id for p in products_service.list_low_stock(shop.id)]

        sale = sales_service.create_sale(shop_id=shop.id, items=[{"product_id": product.id, "quantity": 3}])
        assert _stock(product.id) == 7
        out = [m for m in _movements(product.id) if m.type == "OUT"]
        assert len(out) == 1
        assert out[0].quantity == 3
        assert out[0].source == "SALE"
        assert out[0].note == f"Sale #{sale.id}"
        assert product.id not in low_ids()

        sales_service.create_sale(shop_id=shop.id, items=[{"product_id": product.id, "quantity": 5}])
        assert _stock(product.id) == 2
        assert product.id in low_ids()

        movement_count = len(_movements(product.id))
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(shop_id=shop.id, items=[{"product_id": product.id, "quantity": 5}])
        assert _stock(product.id) == 2
        assert len(_movements(product.id)) == movement_count


class TestListMovements:
    def _seed(self, shop, product, count):
        for _ in range(count):
            inventory_service.stock_in(shop_id=shop.id, product_id=product.id, quantity=1)

    def test_newest_first_with_product_name(self, shop, product):
        self._seed(shop, product, 2)

        page = inventory_service.list_movements(shop_id=shop.id)
        ids = [item["id"] for item in page["items"]]

        assert ids == sorted(ids, reverse=True)
        assert len(ids) == 3
        assert all(item["product_name"] == "น้ำดื่ม 600ml" for item in page["items"])
        assert page["next_cursor"] is None

    def test_cursor_pages_do_not_overlap(self, shop, product):
        self._seed(shop, product, 4)  # 5 movements including initial stock

        first = inventory_service.list_movements(shop_id=shop.id, limit=2)
        second = inventory_service.list_movements(shop_id=shop.id, limit=2, cursor=first["next_cursor"])
        third = inventory_service.list_movements(shop_id=shop.id, limit=2, cursor=second["next_cursor"])

        seen = [i["id"] for page in (first, second, third) for i in page["items"]]
        assert len(seen) == 5
        assert len(set(seen)) == 5
        assert seen == sorted(seen, reverse=True)
        assert third["next_cursor"] is None

    def test_limit_is_clamped(self, app, shop, product):
        page = inventory_service.list_movements(shop_id=shop.id, limit=10_000)
        assert page["limit"] == app.config["MOVEMENT_PAGE_MAX"]

        page = inventory_service.list_movements(shop_id=shop.id, limit=0)
        assert page["limit"] == 1

    def test_filters_by_product_and_shop(self, shop, other_shop, product):
        other = products_service.create_product(
            shop_id=other_shop.id, payload={"name": "Soap", "price_satang": 1500, "stock": 3}
        )
        second = products_service.create_product(
            shop_id=shop.id, payload={"name": "Rice 5kg", "price_satang": 18500, "stock": 2}
        )

        everything = inventory_service.list_movements(shop_id=shop.id)
        assert {i["product_id"] for i in everything["items"]} == {product.id, second.id}

        only_rice = inventory_service.list_movements(shop_id=shop.id, product_id=second.id)
        assert [i["product_id"] for i in only_rice["items"]] == [second.id]

        with pytest.raises(NotFoundError):
            inventory_service.list_movements(shop_id=shop.id, product_id=other.id)

    def test_rename_changes_displayed_name(self, shop, product):
        products_service.update_product(shop_id=shop.id, product_id=product.id, payload={"name": "Water 600ml"})

        page = inventory_service.list_movements(shop_id=shop.id)
        assert page["items"][0]["product_name"] == "Water 600ml"
