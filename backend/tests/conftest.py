"""
Pytest fixtures for SmartPOS backend tests.

Provides an in-memory database, per-test cleanup, shop/product fixtures and a
test client that sends the X-Shop-Id header.
"""

import pytest
from smartpos import create_app
from smartpos.extensions import db
from smartpos.models import Shop
from smartpos.services import products_service, settings_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'VAT_RATE_BPS': 700,
        'SHOP_UTC_OFFSET_MINUTES': 420,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test, schema kept."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def shop(db_session):
    shop = Shop(name="ร้านป้าแดง", is_active=True)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def other_shop(db_session):
    shop = Shop(name="Other Shop", is_active=True)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def product(shop):
    """Stock 10, reorder point 5, price ฿20.00."""
    return products_service.create_product(
        shop_id=shop.id,
        payload={"name": "น้ำดื่ม 600ml", "price_satang": 2000, "reorder_point": 5, "stock": 10},
    )


@pytest.fixture(scope='function')
def vat_settings(db_session):
    """VAT on, seller identity complete."""
    return settings_service.update_settings({
        "vat_enabled": True,
        "seller_name": "ร้านป้าแดง",
        "seller_address": "99 ถนนสุขุมวิท กรุงเทพฯ 10110",
        "seller_tax_id": "0-1055-12345-67-8",
    })


@pytest.fixture(scope='function')
def client(app, shop):
    """Test client bound to `shop`."""
    return ShopClient(app.test_client(), shop.id)


class ShopClient:
    """Thin wrapper adding X-Shop-Id to every request."""

    def __init__(self, client, shop_id: int):
        self._client = client
        self.shop_id = shop_id

    def _headers(self, kwargs):
        headers = dict(kwargs.pop("headers", {}) or {})
        headers.setdefault("X-Shop-Id", str(self.shop_id))
        return headers

    def get(self, url, **kwargs):
        return self._client.get(url, headers=self._headers(kwargs), **kwargs)

    def post(self, url, **kwargs):
        return self._client.post(url, headers=self._headers(kwargs), **kwargs)

    def put(self, url, **kwargs):
        return self._client.put(url, headers=self._headers(kwargs), **kwargs)

    def patch(self, url, **kwargs):
        return self._client.patch(url, headers=self._headers(kwargs), **kwargs)

    def delete(self, url, **kwargs):
        return self._client.delete(url, headers=self._headers(kwargs), **kwargs)

    @property
    def raw(self):
        return self._client
