"""
Pytest fixtures for barpos backend tests.

Provides the app built from TestConfig, a per-test wiped database, service
objects bound to the test session (business day pinned to UTC), and
product/sale factories.
"""

import itertools
from datetime import timezone

import pytest

from barpos import create_app
from barpos.config import TestConfig
from barpos.extensions import db
from barpos.services.finance_service import FinanceBook
from barpos.services.ledger_service import StockLedger
from barpos.services.pending_bill_service import PendingBillBook
from barpos.services.product_service import ProductCatalog
from barpos.services.reporting_service import ReportingFacade
from barpos.services.sales_service import SaleProcessor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def catalog(db_session):
    return ProductCatalog(db_session)


@pytest.fixture
def ledger(db_session):
    return StockLedger(db_session, business_tz=timezone.utc)


@pytest.fixture
def processor(db_session, ledger):
    return SaleProcessor(db_session, ledger, business_tz=timezone.utc)


@pytest.fixture
def bills(db_session):
    return PendingBillBook(db_session, business_tz=timezone.utc)


@pytest.fixture
def finance(db_session):
    return FinanceBook(db_session)


@pytest.fixture
def reports(db_session):
    return ReportingFacade(db_session, business_tz=timezone.utc)


@pytest.fixture
def make_product(catalog, ledger):
    """Add a product and optionally set its opening godown/counter stock."""
    seq = itertools.count(1)

    def _make(godown=0, counter=0, **overrides):
        n = next(seq)
        payload = {
            "name": f"Product {n}",
            "sku": f"SKU-{n:03d}",
            "price": 100,
            "cost": 60,
            "category": "Beer",
        }
        payload.update(overrides)
        product = catalog.add_product(payload)
        if godown or counter:
            ledger.adjust_stock(product.id, godown, counter)
        return product

    return _make


@pytest.fixture
def sale_payload():
    """Build a camelCase sale payload from (product, quantity) lines at a fixed unit price."""

    def _build(sale_number, lines, unit_price=10, **overrides):
        items = [
            {
                "productId": product_id,
                "quantity": quantity,
                "unitPrice": unit_price,
                "totalPrice": unit_price * quantity,
            }
            for product_id, quantity in lines
        ]
        payload = {
            "saleNumber": sale_number,
            "saleType": "table",
            "tableNumber": "T1",
            "totalAmount": sum(item["totalPrice"] for item in items),
            "paymentMethod": "cash",
            "saleDate": "2026-10-19T12:00:00Z",
            "items": items,
        }
        payload.update(overrides)
        return payload

    return _build
