# Overview: Pytest coverage for the full tax invoice register.

from datetime import datetime

import pytest
from smartpos.extensions import db
from smartpos.models import FullTaxInvoice
from smartpos.services import invoice_service, products_service, sales_service, settings_service
from smartpos.services.invoice_service import (
    InvoiceCancelledError,
    InvoiceExistsError,
    NotEligibleError,
    SellerInfoIncompleteError,
)
from smartpos.validation import NotFoundError, ValidationError


ISSUED_2024 = datetime(2024, 6, 1, 5, 0)
BUYER = {"buyer_name": "บริษัท ตัวอย่าง จำกัด", "buyer_address": "1 ถนนสีลม กรุงเทพฯ"}


def _sale(shop, product, qty=1):
    return sales_service.create_sale(shop_id=shop.id, items=[{"product_id": product.id, "quantity": qty}])


def _issue(shop, sale, now=ISSUED_2024, **overrides):
    kwargs = dict(BUYER)
    kwargs.update(overrides)
    return invoice_service.create_invoice(shop_id=shop.id, sale_id=sale.id, now=now, **kwargs)


class TestEligibility:
    def test_issue_snapshots_sale_and_seller(self, shop, product, vat_settings):
        sale = _sale(shop, product, 2)
        invoice = _issue(shop, sale, buyer_tax_id="0105-512345-678")

        assert invoice.invoice_number == "TAX-2024-000001"
        assert invoice.status == "issued"
        assert invoice.subtotal_satang == 4000
        assert invoice.vat_amount_satang == 280
        assert invoice.total_with_vat_satang == 4280
        assert invoice.seller_tax_id == "0105512345678"
        assert invoice.buyer_tax_id == "0105512345678"

        settings_service.update_settings({"seller_name": "New Name"})
        db.session.expire_all()
        assert db.session.get(FullTaxInvoice, invoice.id).seller_name == "ร้านป้าแดง"

    def test_sale_without_vat_not_eligible(self, shop, product):
        sale = _sale(shop, product)

        with pytest.raises(NotEligibleError) as exc:
            _issue(shop, sale)
        assert exc.value.code == "not_eligible_for_full_tax_invoice"

    def test_second_invoice_for_sale_rejected(self, shop, product, vat_settings):
        sale = _sale(shop, product)
        _issue(shop, sale)

        with pytest.raises(InvoiceExistsError):
            _issue(shop, sale)

    def test_missing_tax_id_named_in_error(self, shop, product, vat_settings):
        sale = _sale(shop, product)
        settings_service.update_settings({"seller_tax_id": ""})

        with pytest.raises(SellerInfoIncompleteError) as exc:
            _issue(shop, sale)

        assert exc.value.details["missing_fields"] == ["seller_tax_id"]
        assert "เลขประจำตัวผู้เสียภาษี" in str(exc.value)
        assert "tax ID" in str(exc.value)
        assert invoice_service.get_invoice_for_sale(shop.id, sale.id) is None

    def test_all_missing_seller_fields_listed(self, shop, product, vat_settings):
        sale = _sale(shop, product)
        settings_service.update_settings({"seller_name": " ", "seller_address": "", "seller_tax_id": None})

        with pytest.raises(SellerInfoIncompleteError) as exc:
            _issue(shop, sale)
        assert exc.value.details["missing_fields"] == ["seller_name", "seller_address", "seller_tax_id"]

    def test_checks_run_in_order(self, shop, product, vat_settings):
        """An existing invoice is reported before incomplete seller settings."""
        sale = _sale(shop, product)
        _issue(shop, sale)
        settings_service.update_settings({"seller_tax_id": ""})

        with pytest.raises(InvoiceExistsError):
            _issue(shop, sale)

    def test_unknown_sale(self, shop):
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(shop_id=shop.id, sale_id=424242, **BUYER)

    def test_other_shops_sale_is_not_found(self, shop, other_shop, product, vat_settings):
        sale = _sale(shop, product)
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(shop_id=other_shop.id, sale_id=sale.id, **BUYER)

    @pytest.mark.parametrize("overrides", [
        {"buyer_name": "  "},
        {"buyer_address": None},
        {"buyer_tax_id": "12345"},
    ])
    def test_buyer_validation(self, shop, product, vat_settings, overrides):
        sale = _sale(shop, product)
        with pytest.raises(ValidationError):
            _issue(shop, sale, **overrides)


class TestNumbering:
    def test_numbers_increase_and_are_never_reused(self, shop, product, vat_settings):
        sales = [_sale(shop, product) for _ in range(4)]

        first = _issue(shop, sales[0])
        second = _issue(shop, sales[1])
        invoice_service.cancel_invoice(shop_id=shop.id, invoice_id=second.id)
        third = _issue(shop, sales[2])

        assert first.invoice_number == "TAX-2024-000001"
        assert second.invoice_number == "TAX-2024-000002"
        assert third.invoice_number == "TAX-2024-000003"

        cancelled = invoice_service.get_invoice(shop.id, second.id)
        assert cancelled.status == "cancelled"
        assert cancelled.invoice_number == "TAX-2024-000002"

    def test_new_year_restarts_sequence(self, shop, product, vat_settings):
        a, b = _sale(shop, product), _sale(shop, product)

        _issue(shop, a, now=datetime(2024, 12, 31, 10, 0))
        # 2024-12-31 18:00 UTC is already 1 January 2025 in Bangkok
        invoice = _issue(shop, b, now=datetime(2024, 12, 31, 18, 0))

        assert invoice.invoice_number == "TAX-2025-000001"

    def test_sequence_seeded_from_existing_numbers(self, shop, product, vat_settings):
        legacy_sale, sale = _sale(shop, product), _sale(shop, product)
        db.session.add(FullTaxInvoice(
            shop_id=shop.id,
            sale_id=legacy_sale.id,
            invoice_number="TAX-2024-000041",
            seller_name="x", seller_address="x", seller_tax_id="0105512345678",
            buyer_name="x", buyer_address="x",
            subtotal_satang=0, vat_amount_satang=0, total_with_vat_satang=0,
            issued_date=ISSUED_2024,
            status="issued",
        ))
        db.session.commit()

        assert _issue(shop, sale).invoice_number == "TAX-2024-000042"

    def test_shops_have_separate_sequences(self, shop, other_shop, product, vat_settings):
        other_product = products_service.create_product(
            shop_id=other_shop.id, payload={"name": "Soap", "price_satang": 1500, "stock": 5}
        )
        _issue(shop, _sale(shop, product))
        invoice = invoice_service.create_invoice(
            shop_id=other_shop.id,
            sale_id=_sale(other_shop, other_product).id,
            now=ISSUED_2024,
            **BUYER,
        )
        assert invoice.invoice_number == "TAX-2024-000001"


class TestCancelAndQueries:
    def test_cancel_twice_rejected(self, shop, product, vat_settings):
        invoice = _issue(shop, _sale(shop, product))

        cancelled = invoice_service.cancel_invoice(shop_id=shop.id, invoice_id=invoice.id)
        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None

        with pytest.raises(InvoiceCancelledError):
            invoice_service.cancel_invoice(shop_id=shop.id, invoice_id=invoice.id)

    def test_cancel_unknown_invoice(self, shop):
        with pytest.raises(NotFoundError):
            invoice_service.cancel_invoice(shop_id=shop.id, invoice_id=999)

    def test_cancelled_sale_cannot_get_second_invoice(self, shop, product, vat_settings):
        sale = _sale(shop, product)
        invoice = _issue(shop, sale)
        invoice_service.cancel_invoice(shop_id=shop.id, invoice_id=invoice.id)

        with pytest.raises(InvoiceExistsError):
            _issue(shop, sale)

    def test_list_filters(self, shop, product, vat_settings):
        a = _issue(shop, _sale(shop, product))
        _issue(shop, _sale(shop, product))
        invoice_service.cancel_invoice(shop_id=shop.id, invoice_id=a.id)

        assert len(invoice_service.list_invoices(shop.id)) == 2
        assert [i.id for i in invoice_service.list_invoices(shop.id, status="cancelled")] == [a.id]
        assert len(invoice_service.list_invoices(shop.id, year=2024)) == 2
        assert invoice_service.list_invoices(shop.id, year=2023) == []

        with pytest.raises(ValidationError):
            invoice_service.list_invoices(shop.id, status="void")

    def test_sale_tax_data(self, shop, product, vat_settings):
        sale = _sale(shop, product, 3)

        data = invoice_service.get_sale_tax_data(shop.id, sale.id)
        assert data["subtotal_satang"] == 6000
        assert data["vat_rate_bps"] == 700
        assert data["vat_amount_satang"] == 420
        assert data["total_with_vat_satang"] == 6420
        assert data["invoice_id"] is None
        assert data["items"][0]["quantity"] == 3

    def test_sale_tax_data_requires_vat(self, shop, product):
        with pytest.raises(NotEligibleError):
            invoice_service.get_sale_tax_data(shop.id, _sale(shop, product).id)
