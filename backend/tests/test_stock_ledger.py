# Overview: Pytest coverage for the stock ledger: transfers, adjustments, receiving and conservation.

import pytest

from barpos.errors import InsufficientStockError, InvalidInput, NotFoundError
from barpos.models import DailyTransfer, InventoryRecord, StockMovement
from barpos.services import ledger_service
from barpos.services.ledger_service import StockLedger


def _stock(ledger, product_id):
    record = ledger.get_record(product_id)
    return record.godown_stock, record.counter_stock


def _movements(db_session, product_id, movement_type=None):
    query = db_session.query(StockMovement).filter_by(product_id=product_id)
    if movement_type:
        query = query.filter_by(movement_type=movement_type)
    return query.order_by(StockMovement.id.asc()).all()


class TestTransfer:
    def test_transfer_moves_quantity_and_logs_one_movement(self, db_session, ledger, make_product):
        product = make_product(godown=10, counter=2)
        before = len(_movements(db_session, product.id))

        result = ledger.transfer(product.id, 5, "godown", "counter")

        assert result["transferred"] is True
        assert _stock(ledger, product.id) == (5, 7)
        movements = _movements(db_session, product.id)
        assert len(movements) == before + 1
        movement = movements[-1]
        assert movement.id == result["movement_id"]
        assert movement.movement_type == "transfer"
        assert movement.quantity == 5
        assert movement.from_location == "godown"
        assert movement.to_location == "counter"

    def test_transfer_back_to_godown(self, ledger, make_product):
        product = make_product(godown=1, counter=4)
        ledger.transfer(product.id, 4, "counter", "godown")
        assert _stock(ledger, product.id) == (5, 0)

    def test_insufficient_source_stock_changes_nothing(self, db_session, ledger, make_product):
        product = make_product(godown=3, counter=0)
        before = len(_movements(db_session, product.id))

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.transfer(product.id, 5, "godown", "counter")

        assert exc_info.value.details["available"] == 3
        assert _stock(ledger, product.id) == (3, 0)
        assert len(_movements(db_session, product.id)) == before

    def test_lenient_floor_allows_negative_stock(self, db_session, make_product):
        product = make_product(godown=3, counter=0)
        lenient = StockLedger(db_session, allow_negative_stock=True)

        lenient.transfer(product.id, 5, "godown", "counter")

        assert _stock(lenient, product.id) == (-2, 5)

    @pytest.mark.parametrize("quantity,source,target", [
        (0, "godown", "counter"),
        (-1, "godown", "counter"),
        (2, "godown", "godown"),
        (2, "cellar", "counter"),
    ])
    def test_invalid_requests_are_rejected(self, ledger, make_product, quantity, source, target):
        product = make_product(godown=10)
        with pytest.raises(InvalidInput):
            ledger.transfer(product.id, quantity, source, target)
        assert _stock(ledger, product.id) == (10, 0)

    def test_unknown_product(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.transfer(999999, 1, "godown", "counter")


class TestAdjustStock:
    def test_adjust_logs_one_adjustment_per_changed_location(self, db_session, ledger, catalog):
        product = catalog.add_product({"name": "Naan", "sku": "NAAN", "price": 30, "cost": 15})

        result = ledger.adjust_stock(product.id, 40, 15)
        assert result == {"updated": True}
        assert _stock(ledger, product.id) == (40, 15)

        result = ledger.adjust_stock(product.id, 35, 15)
        assert result == {"updated": True}

        adjustments = _movements(db_session, product.id, "adjustment")
        assert [(m.quantity, m.from_location, m.to_location) for m in adjustments] == [
            (40, None, "godown"),
            (15, None, "counter"),
            (5, "godown", None),
        ]

    def test_unchanged_values_write_nothing(self, db_session, ledger, make_product):
        product = make_product(godown=8, counter=2)
        before = len(_movements(db_session, product.id))

        assert ledger.adjust_stock(product.id, 8, 2) == {"updated": False}
        assert len(_movements(db_session, product.id)) == before

    def test_negative_targets_are_rejected(self, ledger, make_product):
        product = make_product(godown=8)
        with pytest.raises(InvalidInput):
            ledger.adjust_stock(product.id, -1, 0)

    def test_unknown_product(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.adjust_stock(999999, 1, 1)


class TestReceiveAndBatch:
    def test_receive_stock_books_an_in_movement(self, db_session, ledger, make_product):
        product = make_product(godown=5)

        movement = ledger.receive_stock(product.id, 24, notes="Delivery")

        assert _stock(ledger, product.id) == (29, 0)
        assert movement.movement_type == "in"
        assert movement.to_location == "godown"
        assert movement.from_location is None

    def test_transfer_batch_files_a_daily_summary(self, db_session, ledger, make_product):
        beer = make_product(godown=20, counter=0)
        rum = make_product(godown=10, counter=1)

        summary = ledger.transfer_batch(
            [{"productId": beer.id, "quantity": 6}, {"product_id": rum.id, "quantity": 4}],
            "godown",
            "counter",
            "2026-10-19",
        )

        assert _stock(ledger, beer.id) == (14, 6)
        assert _stock(ledger, rum.id) == (6, 5)
        assert summary.total_items == 2
        assert summary.total_quantity == 10
        assert summary.transfer_date.isoformat() == "2026-10-19"
        assert [line["quantity"] for line in summary.items] == [6, 4]
        assert len(ledger.list_daily_transfers("2026-10-19", "2026-10-19")) == 1
        assert ledger.list_daily_transfers("2026-10-20", None) == []

    def test_failing_line_rolls_back_the_whole_batch(self, db_session, ledger, make_product):
        beer = make_product(godown=20)
        rum = make_product(godown=1)

        with pytest.raises(InsufficientStockError):
            ledger.transfer_batch(
                [{"productId": beer.id, "quantity": 6}, {"productId": rum.id, "quantity": 4}],
            )

        assert _stock(ledger, beer.id) == (20, 0)
        assert _stock(ledger, rum.id) == (1, 0)
        assert db_session.query(DailyTransfer).count() == 0
        assert _movements(db_session, beer.id, "transfer") == []

    def test_empty_batch_is_rejected(self, ledger):
        with pytest.raises(InvalidInput):
            ledger.transfer_batch([])


class TestMovementLog:
    def test_list_movements_newest_first_and_bounded(self, ledger, make_product):
        product = make_product(godown=50)
        for quantity in (1, 2, 3):
            ledger.transfer(product.id, quantity, "godown", "counter")

        movements = ledger.list_movements(2)

        assert [m.quantity for m in movements] == [3, 2]

    def test_list_movements_rejects_bad_limit(self, ledger):
        with pytest.raises(InvalidInput):
            ledger.list_movements(0)
        with pytest.raises(InvalidInput):
            ledger.list_movements("--5")

    def test_list_movements_limit_is_capped(self, db_session, ledger, make_product, monkeypatch):
        monkeypatch.setattr(ledger_service, "MAX_MOVEMENT_LIMIT", 2)
        product = make_product(godown=50)
        for quantity in (1, 2, 3):
            ledger.transfer(product.id, quantity, "godown", "counter")

        assert len(ledger.list_movements(100_000_000)) == 2

    def test_conservation_holds_across_operations(self, db_session, ledger, make_product):
        product = make_product(godown=10, counter=2)
        ledger.transfer(product.id, 5, "godown", "counter")
        ledger.receive_stock(product.id, 12, "godown")
        ledger.transfer(product.id, 3, "counter", "godown")
        ledger.adjust_stock(product.id, 11, 1)

        record = db_session.query(InventoryRecord).filter_by(product_id=product.id).one()
        assert record.total_stock == ledger.movement_balance(product.id) == 12
