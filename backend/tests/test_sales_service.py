# Overview: Pytest coverage for the sale transaction processor.

"""
Sale Transaction Tests

Prove that a sale, its items and its counter deductions are all-or-nothing:
- Successful sales deduct counter stock and log 'out' movements per line
- A failing line leaves no Sale, SaleItem or StockMovement behind
- Duplicate sale numbers are rejected without touching the first sale
"""

import pytest

from barpos.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidInput,
    NotFoundError,
    TransactionError,
)
from barpos.models import Sale, SaleItem, StockMovement
from barpos.services.ledger_service import StockLedger
from barpos.services.sales_service import SaleProcessor


def _counter(ledger, product_id):
    return ledger.get_record(product_id).counter_stock


class TestCreateSale:
    def test_two_lines_deduct_counter_and_log_out_movements(
        self, db_session, ledger, processor, make_product, sale_payload
    ):
        product = make_product(godown=5, counter=10)

        sale = processor.create_sale(sale_payload("S-100", [(product.id, 2), (product.id, 1)]))

        assert _counter(ledger, product.id) == 7
        assert ledger.get_record(product.id).godown_stock == 5
        outs = (
            db_session.query(StockMovement)
            .filter_by(product_id=product.id, movement_type="out")
            .order_by(StockMovement.id.asc())
            .all()
        )
        assert [m.quantity for m in outs] == [2, 1]
        assert all(m.reference_id == sale.id for m in outs)
        assert all(m.from_location == "counter" and m.to_location is None for m in outs)
        assert len(sale.items) == 2
        assert float(sale.total_amount) == 30.0

    def test_sale_dict_carries_item_names(self, processor, make_product, sale_payload):
        product = make_product(counter=4, name="Kingfisher Beer", variant="330ml")

        sale = processor.create_sale(sale_payload("S-101", [(product.id, 1)]))
        data = processor.get_sale(sale.id).to_dict(with_items=True)

        assert data["sale_number"] == "S-101"
        assert data["items"][0]["name"] == "Kingfisher Beer (330ml)"
        assert data["items"][0]["total_price"] == 10.0

    def test_missing_product_rolls_back_everything(
        self, db_session, ledger, processor, make_product, sale_payload
    ):
        product = make_product(counter=10)
        movements_before = db_session.query(StockMovement).count()

        with pytest.raises(TransactionError) as exc_info:
            processor.create_sale(sale_payload("S-200", [(product.id, 2), (999999, 1)]))

        assert isinstance(exc_info.value.__cause__, NotFoundError)
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert db_session.query(StockMovement).count() == movements_before
        assert _counter(ledger, product.id) == 10

    def test_short_counter_stock_aborts_sale(self, db_session, ledger, processor, make_product, sale_payload):
        plenty = make_product(counter=10)
        scarce = make_product(godown=50, counter=1)

        with pytest.raises(TransactionError) as exc_info:
            processor.create_sale(sale_payload("S-201", [(plenty.id, 3), (scarce.id, 2)]))

        assert isinstance(exc_info.value.__cause__, InsufficientStockError)
        assert _counter(ledger, plenty.id) == 10
        assert _counter(ledger, scarce.id) == 1
        assert db_session.query(Sale).count() == 0

    def test_lenient_floor_lets_counter_go_negative(self, db_session, make_product, sale_payload):
        product = make_product(counter=1)
        lenient = StockLedger(db_session, allow_negative_stock=True)

        SaleProcessor(db_session, lenient).create_sale(sale_payload("S-202", [(product.id, 3)]))

        assert _counter(lenient, product.id) == -2

    def test_invalid_payload_writes_nothing(self, db_session, processor, make_product, sale_payload):
        product = make_product(counter=10)

        with pytest.raises(InvalidInput):
            processor.create_sale(sale_payload("S-203", [(product.id, 2)], totalAmount=-1))

        assert db_session.query(Sale).count() == 0


class TestDuplicateRejection:
    def test_second_sale_with_same_number_conflicts(
        self, db_session, ledger, processor, make_product, sale_payload
    ):
        product = make_product(counter=10)
        first = processor.create_sale(sale_payload("S-300", [(product.id, 2)]))
        first_id = first.id

        with pytest.raises(ConflictError):
            processor.create_sale(sale_payload("S-300", [(product.id, 5)]))

        sales = db_session.query(Sale).all()
        assert [s.id for s in sales] == [first_id]
        assert [item.quantity for item in sales[0].items] == [2]
        assert _counter(ledger, product.id) == 8


class TestGetSale:
    def test_unknown_sale(self, processor):
        with pytest.raises(NotFoundError):
            processor.get_sale(424242)
