# Overview: Pytest coverage for spendings and counter balances.

from decimal import Decimal

import pytest

from barpos.errors import InvalidInput, NotFoundError
from barpos.models import CounterBalance


def _spending(**overrides):
    payload = {
        "description": "Ice blocks",
        "amount": 120,
        "category": "Supplies",
        "spendingDate": "2026-10-19",
    }
    payload.update(overrides)
    return payload


class TestSpendings:
    def test_add_list_and_total(self, finance):
        finance.add_spending(_spending())
        finance.add_spending(_spending(description="Gas", amount=480.5, category="Utilities"))
        finance.add_spending(_spending(spendingDate="2026-10-18", amount=10))

        day = finance.list_spendings("2026-10-19", "2026-10-19")
        assert sorted(s.description for s in day) == ["Gas", "Ice blocks"]
        assert finance.daily_spendings_total("2026-10-19") == Decimal("600.50")
        assert finance.spending_categories() == ["Supplies", "Utilities"]
        assert [s.description for s in finance.list_spendings(category="Utilities")] == ["Gas"]

    def test_update_and_delete(self, finance):
        spending = finance.add_spending(_spending())
        spending_id = spending.id

        updated = finance.update_spending(spending_id, _spending(amount=99))
        assert updated.amount == Decimal("99.00")

        finance.delete_spending(spending_id)
        assert finance.list_spendings() == []
        with pytest.raises(NotFoundError):
            finance.delete_spending(spending_id)

    def test_invalid_spending(self, finance):
        with pytest.raises(InvalidInput):
            finance.add_spending(_spending(amount=-3))
        with pytest.raises(InvalidInput):
            finance.add_spending(_spending(spendingDate=None))

    def test_no_spendings_is_zero(self, finance):
        assert finance.daily_spendings_total("2026-10-19") == Decimal("0.00")


class TestCounterBalance:
    def test_save_is_an_upsert_per_date(self, db_session, finance):
        finance.save_counter_balance({"balanceDate": "2026-10-19", "openingBalance": 100})
        finance.save_counter_balance({"balanceDate": "2026-10-19", "openingBalance": 100, "closingBalance": 640})

        assert db_session.query(CounterBalance).count() == 1
        balance = finance.get_counter_balance("2026-10-19")
        assert balance.closing_balance == Decimal("640.00")

    def test_previous_closing_balance(self, finance):
        assert finance.previous_closing_balance("2026-10-19") == Decimal("0.00")

        finance.save_counter_balance({"balanceDate": "2026-10-15", "closingBalance": 300})
        finance.save_counter_balance({"balanceDate": "2026-10-17", "closingBalance": 450})
        finance.save_counter_balance({"balanceDate": "2026-10-19", "closingBalance": 999})

        assert finance.previous_closing_balance("2026-10-19") == Decimal("450.00")

    def test_update_and_list(self, finance):
        balance = finance.save_counter_balance({"balanceDate": "2026-10-19", "openingBalance": 50})
        finance.save_counter_balance({"balanceDate": "2026-10-20", "openingBalance": 60})

        updated = finance.update_counter_balance(balance.id, {"openingBalance": 55, "closingBalance": 70})
        assert updated.opening_balance == Decimal("55.00")
        assert updated.balance_date.isoformat() == "2026-10-19"

        listed = finance.list_counter_balances("2026-10-01", "2026-10-31")
        assert [b.balance_date.isoformat() for b in listed] == ["2026-10-20", "2026-10-19"]

    def test_missing_day_returns_none(self, finance):
        assert finance.get_counter_balance("2026-10-19") is None
        with pytest.raises(NotFoundError):
            finance.update_counter_balance(31337, {"openingBalance": 1})
