# Overview: Spendings and the daily counter cash balance.

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func

from ..errors import InvalidInput, NotFoundError
from ..models import CounterBalance, Spending
from ..time_utils import parse_iso_date
from ..validation import coerce_int, parse_date_range, validate_counter_balance, validate_spending
from .concurrency import lock_for_update, run_atomic

logger = logging.getLogger(__name__)


def _as_day(value, label: str):
    try:
        day = parse_iso_date(value)
    except ValueError:
        raise InvalidInput(f"{label} must be an ISO-8601 date")
    if day is None:
        raise InvalidInput(f"{label} is required")
    return day


class FinanceBook:
    def __init__(self, session):
        self.session = session

    # Spendings

    def _spending(self, spending_id, *, lock: bool = False) -> Spending:
        spending_id = coerce_int(spending_id, "spendingId", minimum=1)
        query = self.session.query(Spending).filter(Spending.id == spending_id)
        if lock:
            query = lock_for_update(query)
        spending = query.first()
        if spending is None:
            raise NotFoundError(f"Spending {spending_id} not found")
        return spending

    def add_spending(self, payload: dict) -> Spending:
        fields = validate_spending(payload)

        def _op():
            spending = Spending(**fields)
            self.session.add(spending)
            self.session.flush()
            return spending

        spending = run_atomic(self.session, _op)
        logger.info("Recorded spending %s: %s %s", spending.id, spending.category, spending.amount)
        return spending

    def update_spending(self, spending_id: int, payload: dict) -> Spending:
        fields = validate_spending(payload)

        def _op():
            spending = self._spending(spending_id, lock=True)
            for key, value in fields.items():
                setattr(spending, key, value)
            self.session.flush()
            return spending

        return run_atomic(self.session, _op)

    def delete_spending(self, spending_id: int) -> None:
        def _op():
            self.session.delete(self._spending(spending_id, lock=True))
            self.session.flush()

        run_atomic(self.session, _op)
        logger.info("Deleted spending %s", spending_id)

    def list_spendings(self, start=None, end=None, category: str | None = None) -> list[Spending]:
        start_dt, end_dt = parse_date_range(start, end)
        query = self.session.query(Spending)
        if start_dt:
            query = query.filter(Spending.spending_date >= start_dt.date())
        if end_dt:
            query = query.filter(Spending.spending_date <= end_dt.date())
        if category:
            query = query.filter(Spending.category == category)
        return query.order_by(Spending.spending_date.desc(), Spending.id.desc()).all()

    def spending_categories(self) -> list[str]:
        rows = self.session.query(Spending.category).distinct().order_by(Spending.category.asc()).all()
        return [row[0] for row in rows]

    def daily_spendings_total(self, day) -> Decimal:
        day = _as_day(day, "date")
        total = (
            self.session.query(func.coalesce(func.sum(Spending.amount), 0))
            .filter(Spending.spending_date == day)
            .scalar()
        )
        return Decimal(str(total or 0)).quantize(Decimal("0.01"))

    # Counter balance

    def save_counter_balance(self, payload: dict) -> CounterBalance:
        """Insert or replace the balance row for payload's date."""
        fields = validate_counter_balance(payload)

        def _op():
            balance = lock_for_update(
                self.session.query(CounterBalance).filter(CounterBalance.balance_date == fields["balance_date"])
            ).first()
            if balance is None:
                balance = CounterBalance(balance_date=fields["balance_date"])
                self.session.add(balance)
            balance.opening_balance = fields["opening_balance"]
            balance.closing_balance = fields["closing_balance"]
            balance.notes = fields["notes"]
            self.session.flush()
            return balance

        balance = run_atomic(self.session, _op)
        logger.info("Saved counter balance for %s", balance.balance_date)
        return balance

    def update_counter_balance(self, balance_id: int, payload: dict) -> CounterBalance:
        balance_id = coerce_int(balance_id, "balanceId", minimum=1)
        fields = validate_counter_balance(payload, require_date=False)

        def _op():
            balance = lock_for_update(
                self.session.query(CounterBalance).filter(CounterBalance.id == balance_id)
            ).first()
            if balance is None:
                raise NotFoundError(f"Counter balance {balance_id} not found")
            for key, value in fields.items():
                setattr(balance, key, value)
            self.session.flush()
            return balance

        return run_atomic(self.session, _op)

    def get_counter_balance(self, day) -> CounterBalance | None:
        day = _as_day(day, "date")
        return self.session.query(CounterBalance).filter(CounterBalance.balance_date == day).first()

    def list_counter_balances(self, start=None, end=None) -> list[CounterBalance]:
        start_dt, end_dt = parse_date_range(start, end)
        query = self.session.query(CounterBalance)
        if start_dt:
            query = query.filter(CounterBalance.balance_date >= start_dt.date())
        if end_dt:
            query = query.filter(CounterBalance.balance_date <= end_dt.date())
        return query.order_by(CounterBalance.balance_date.desc()).all()

    def previous_closing_balance(self, day) -> Decimal:
        """Closing balance of the latest day before `day`; zero when none exists."""
        day = _as_day(day, "date")
        closing = (
            self.session.query(CounterBalance.closing_balance)
            .filter(CounterBalance.balance_date < day)
            .order_by(CounterBalance.balance_date.desc())
            .limit(1)
            .scalar()
        )
        return Decimal(str(closing)) if closing is not None else Decimal("0.00")
