# Overview: Pytest coverage for the flask CLI groups.

from barpos.models import Product, StockMovement


class TestSystemCommands:
    def test_seed_is_idempotent_and_ledger_consistent(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "seed"])
        assert result.exit_code == 0, result.output
        assert "Added 10 products" in result.output

        again = runner.invoke(args=["system", "seed"])
        assert "Added 0 products, skipped 10" in again.output

        kingfisher = db_session.query(Product).filter_by(sku="KF-330").one()
        assert (kingfisher.inventory.godown_stock, kingfisher.inventory.counter_stock) == (50, 10)

        check = runner.invoke(args=["inventory", "check"])
        assert check.exit_code == 0
        assert "PASS" in check.output

    def test_reset_clears_everything(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed"])

        result = runner.invoke(args=["system", "reset", "--yes"])

        assert result.exit_code == 0
        assert db_session.query(Product).count() == 0
        assert db_session.query(StockMovement).count() == 0


class TestInventoryCommands:
    def test_movements_listing(self, app, db_session):
        runner = app.test_cli_runner()
        assert "No stock movements recorded." in runner.invoke(args=["inventory", "movements"]).output

        runner.invoke(args=["system", "seed"])
        result = runner.invoke(args=["inventory", "movements", "--limit", "2"])

        assert result.exit_code == 0
        lines = [line for line in result.output.splitlines() if line.strip()]
        assert len(lines) == 3  # header + 2 rows
        assert "adjustment" in lines[1]
