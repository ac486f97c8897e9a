# Overview: Pytest coverage for the unit-of-work helper and store-backed sequences.

import threading

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from barpos import create_app
from barpos.config import TestConfig
from barpos.errors import ConflictError, StorageError, TransactionError
from barpos.extensions import db
from barpos.models import Sale
from barpos.providers import product_catalog, reporting, sale_processor, stock_ledger
from barpos.services.concurrency import run_atomic
from barpos.services.document_service import next_sequence_number


def _locked():
    return OperationalError("UPDATE inventory", {}, Exception("database is locked"))


class TestRunAtomic:
    def test_retries_lock_conflicts_then_succeeds(self, db_session):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) < 3:
                raise _locked()
            return "done"

        assert run_atomic(db_session, _op, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_exhausted_retries_surface_as_storage_error(self, db_session):
        def _op():
            raise _locked()

        with pytest.raises(StorageError) as exc_info:
            run_atomic(db_session, _op, attempts=2, backoff_base=0)
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_unique_violation_is_a_conflict(self, db_session):
        def _op():
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: sales.sale_number"))

        with pytest.raises(ConflictError) as exc_info:
            run_atomic(db_session, _op)
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_other_integrity_errors_abort_the_transaction(self, db_session):
        def _op():
            raise IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

        with pytest.raises(TransactionError):
            run_atomic(db_session, _op)


class TestSequences:
    def test_numbers_are_allocated_in_order(self, db_session):
        numbers = [run_atomic(db_session, lambda: next_sequence_number(db_session, "SALE-191026")) for _ in range(3)]
        assert numbers == [1, 2, 3]
        assert run_atomic(db_session, lambda: next_sequence_number(db_session, "BILL-191026")) == 1

    def test_rolled_back_allocation_is_reused(self, db_session):
        run_atomic(db_session, lambda: next_sequence_number(db_session, "SALE-191026"))

        def _op():
            next_sequence_number(db_session, "SALE-191026")
            raise RuntimeError("sale failed")

        with pytest.raises(RuntimeError):
            run_atomic(db_session, _op)

        assert run_atomic(db_session, lambda: next_sequence_number(db_session, "SALE-191026")) == 2


@pytest.fixture
def file_backed_app(tmp_path):
    """App on a file-backed SQLite database so threads get real connections."""

    class ThreadedConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'ledger.sqlite3'}"
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False, "timeout": 30}}

    app = create_app(ThreadedConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


class TestConcurrentLedgerCalls:
    WORKERS = 4
    CALLS_PER_WORKER = 10

    def _run(self, app, work, outcomes, failures):
        def _worker(worker_id):
            with app.app_context():
                for n in range(self.CALLS_PER_WORKER):
                    try:
                        work(worker_id, n)
                        outcomes.append(work.__name__)
                    except StorageError:
                        # Lock contention that outlived the retries; rolled back
                        outcomes.append("gave-up")
                    except Exception as exc:  # noqa: BLE001
                        failures.append(exc)
                    finally:
                        db.session.remove()

        return [threading.Thread(target=_worker, args=(i,)) for i in range(self.WORKERS)]

    def test_transfers_and_sales_on_one_product_lose_no_updates(self, file_backed_app, sale_payload):
        with file_backed_app.app_context():
            product = product_catalog().add_product({"name": "Kingfisher", "sku": "KF-330", "price": 10, "cost": 6})
            product_id = product.id
            stock_ledger().adjust_stock(product_id, 500, 200)
            db.session.remove()

        def transfer(worker_id, n):
            stock_ledger().transfer(product_id, 1, "godown", "counter")

        def sale(worker_id, n):
            sale_processor().create_sale(sale_payload(f"T{worker_id}-{n}", [(product_id, 1)]))

        outcomes, failures = [], []
        threads = self._run(file_backed_app, transfer, outcomes, failures)
        threads += self._run(file_backed_app, sale, outcomes, failures)
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert failures == []
        transfers = outcomes.count("transfer")
        sales = outcomes.count("sale")
        assert transfers + sales > 0

        with file_backed_app.app_context():
            ledger = stock_ledger()
            record = ledger.get_record(product_id)
            assert (record.godown_stock, record.counter_stock) == (500 - transfers, 200 + transfers - sales)
            assert record.godown_stock + record.counter_stock == ledger.movement_balance(product_id)
            assert db.session.query(Sale).count() == sales
            assert reporting().stock_discrepancies() == []
