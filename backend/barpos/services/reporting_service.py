# Overview: Read-only reporting facade; aggregates sales, stock and spendings for report consumers.

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import contains_eager, joinedload

from ..errors import InvalidInput
from ..models import InventoryRecord, Product, Sale, SaleItem, Spending, StockMovement
from ..models.sales import SALE_TYPE_PARCEL, SALE_TYPE_TABLE
from ..time_utils import parse_iso_date, to_utc_z, utc_day_bounds
from ..validation import coerce_int, parse_date_range
from .finance_service import FinanceBook
from .ledger_service import signed_movement_quantity

"""
Reporting contract (authoritative)

- Nothing here writes. Two calls with the same filters and no writes in
  between return identical results (every ordering has an id tie-break).
- "Empty means no data": filters that match nothing return empty lists and
  zero totals, never errors.
- Date ranges are inclusive; a bare date covers the whole business day
  (business_tz, or host local time when None). Sale timestamps are stored
  in UTC, so day bounds are converted before filtering.
- Money leaves as floats rounded to cents.
"""

logger = logging.getLogger(__name__)


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


def _in_range(query, column, start_dt, end_dt):
    if start_dt:
        query = query.filter(column >= start_dt)
    if end_dt:
        query = query.filter(column <= end_dt)
    return query


class ReportingFacade:
    def __init__(self, session, *, top_sellers_limit: int = 10, business_tz=None):
        self.session = session
        self.top_sellers_limit = top_sellers_limit
        self.business_tz = business_tz

    def _sale_range(self, start, end):
        return parse_date_range(start, end, utc=True, tz=self.business_tz)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def inventory(self) -> list[dict]:
        products = (
            self.session.query(Product)
            .options(joinedload(Product.inventory))
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )
        return [p.to_dict() for p in products]

    def low_stock_products(self) -> list[dict]:
        """Products with godown + counter <= min_stock_level, lowest stock first."""
        total = InventoryRecord.godown_stock + InventoryRecord.counter_stock
        rows = (
            self.session.query(Product)
            .join(InventoryRecord, InventoryRecord.product_id == Product.id)
            .options(contains_eager(Product.inventory))
            .filter(total <= InventoryRecord.min_stock_level)
            .order_by(total.asc(), Product.name.asc(), Product.id.asc())
            .all()
        )
        return [p.to_dict() for p in rows]

    def stock_discrepancies(self) -> list[dict]:
        """
        Products whose cached godown + counter differs from the movement log.

        An empty list means the ledger is consistent.
        """
        balances = dict(
            self.session.query(StockMovement.product_id, func.sum(signed_movement_quantity()))
            .group_by(StockMovement.product_id)
            .all()
        )
        records = (
            self.session.query(InventoryRecord, Product)
            .join(Product, Product.id == InventoryRecord.product_id)
            .order_by(Product.id.asc())
            .all()
        )
        out = []
        for record, product in records:
            expected = int(balances.get(product.id) or 0)
            if record.total_stock != expected:
                out.append({
                    "product_id": product.id,
                    "name": product.display_name,
                    "godown_stock": record.godown_stock,
                    "counter_stock": record.counter_stock,
                    "cached_total": record.total_stock,
                    "movement_balance": expected,
                    "difference": record.total_stock - expected,
                })
        return out

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def top_selling_items(self, start=None, end=None, limit: int | None = None) -> list[dict]:
        """
        Products ranked by quantity sold.

        A failing query is logged and reported as no data.
        """
        limit = coerce_int(limit, "limit", minimum=1) if limit is not None else self.top_sellers_limit
        start_dt, end_dt = self._sale_range(start, end)

        quantity = func.sum(SaleItem.quantity).label("total_quantity")
        revenue = func.sum(SaleItem.total_price).label("total_revenue")
        query = (
            self.session.query(Product.id, Product.name, Product.variant, quantity, revenue)
            .join(SaleItem, SaleItem.product_id == Product.id)
            .join(Sale, Sale.id == SaleItem.sale_id)
        )
        query = _in_range(query, Sale.sale_date, start_dt, end_dt)
        try:
            rows = (
                query.group_by(Product.id, Product.name, Product.variant)
                .order_by(quantity.desc(), Product.id.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Top sellers query failed; reporting no data")
            return []

        return [
            {
                "product_id": row.id,
                "name": row.name,
                "variant": row.variant,
                "total_quantity": int(row.total_quantity or 0),
                "total_revenue": _money(row.total_revenue),
            }
            for row in rows
        ]

    def sales_in_range(self, start=None, end=None) -> dict:
        """Sales (newest first) with their item counts, plus range totals."""
        start_dt, end_dt = self._sale_range(start, end)
        item_count = (
            self.session.query(SaleItem.sale_id, func.sum(SaleItem.quantity).label("item_count"))
            .group_by(SaleItem.sale_id)
            .subquery()
        )
        query = (
            self.session.query(Sale, func.coalesce(item_count.c.item_count, 0))
            .outerjoin(item_count, item_count.c.sale_id == Sale.id)
        )
        query = _in_range(query, Sale.sale_date, start_dt, end_dt)
        rows = query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()

        sales = []
        total_amount = tax_amount = discount_amount = Decimal("0")
        for sale, count in rows:
            data = sale.to_dict()
            data["item_count"] = int(count or 0)
            sales.append(data)
            total_amount += sale.total_amount or 0
            tax_amount += sale.tax_amount or 0
            discount_amount += sale.discount_amount or 0

        return {
            "start": to_utc_z(start_dt),
            "end": to_utc_z(end_dt),
            "sales": sales,
            "summary": {
                "sales_count": len(sales),
                "total_amount": _money(total_amount),
                "tax_amount": _money(tax_amount),
                "discount_amount": _money(discount_amount),
            },
        }

    def sales_with_details(self, start=None, end=None) -> list[dict]:
        """Per-sale revenue, cost of goods and profit, newest first."""
        start_dt, end_dt = self._sale_range(start, end)
        cost = func.coalesce(func.sum(SaleItem.quantity * Product.cost), 0).label("total_cost")
        query = (
            self.session.query(Sale, cost)
            .outerjoin(SaleItem, SaleItem.sale_id == Sale.id)
            .outerjoin(Product, Product.id == SaleItem.product_id)
        )
        query = _in_range(query, Sale.sale_date, start_dt, end_dt)
        rows = query.group_by(Sale.id).order_by(Sale.sale_date.desc(), Sale.id.desc()).all()

        details = []
        for sale, total_cost in rows:
            data = sale.to_dict(with_items=True)
            data["total_cost"] = _money(total_cost)
            data["profit"] = _money(Decimal(str(sale.total_amount or 0)) - Decimal(str(total_cost or 0)))
            details.append(data)
        return details

    # ------------------------------------------------------------------
    # Spendings
    # ------------------------------------------------------------------

    def spendings_in_range(self, start=None, end=None) -> list[dict]:
        return [s.to_dict() for s in FinanceBook(self.session).list_spendings(start, end)]

    def spendings_total(self, start=None, end=None) -> float:
        start_dt, end_dt = parse_date_range(start, end)
        query = self.session.query(func.coalesce(func.sum(Spending.amount), 0))
        if start_dt:
            query = query.filter(Spending.spending_date >= start_dt.date())
        if end_dt:
            query = query.filter(Spending.spending_date <= end_dt.date())
        return _money(query.scalar())

    # ------------------------------------------------------------------
    # Daily summary
    # ------------------------------------------------------------------

    def daily_summary(self, day) -> dict:
        """End-of-day figures for the daily report."""
        try:
            day = parse_iso_date(day)
        except ValueError:
            raise InvalidInput("date must be an ISO-8601 date")
        if day is None:
            raise InvalidInput("date is required")
        start_dt, end_dt = utc_day_bounds(day, self.business_tz)

        by_type = dict(
            _in_range(
                self.session.query(Sale.sale_type, func.count(Sale.id)),
                Sale.sale_date, start_dt, end_dt,
            ).group_by(Sale.sale_type).all()
        )
        revenue = _in_range(
            self.session.query(func.coalesce(func.sum(Sale.total_amount), 0)),
            Sale.sale_date, start_dt, end_dt,
        ).scalar()
        cost = _in_range(
            self.session.query(func.coalesce(func.sum(SaleItem.quantity * Product.cost), 0))
            .select_from(SaleItem)
            .join(Sale, Sale.id == SaleItem.sale_id)
            .join(Product, Product.id == SaleItem.product_id),
            Sale.sale_date, start_dt, end_dt,
        ).scalar()

        finance = FinanceBook(self.session)
        spendings = finance.daily_spendings_total(day)
        balance = finance.get_counter_balance(day)
        if balance is not None:
            opening = Decimal(str(balance.opening_balance or 0))
        else:
            opening = finance.previous_closing_balance(day)

        revenue = Decimal(str(revenue or 0))
        cost = Decimal(str(cost or 0))
        net_income = revenue - spendings

        return {
            "date": day.isoformat(),
            "table_sales": int(by_type.get(SALE_TYPE_TABLE, 0)),
            "parcel_sales": int(by_type.get(SALE_TYPE_PARCEL, 0)),
            "total_sales": int(sum(by_type.values())),
            "revenue": _money(revenue),
            "cost": _money(cost),
            "profit": _money(revenue - cost),
            "spendings": _money(spendings),
            "opening_balance": _money(opening),
            "net_income": _money(net_income),
            "total_balance": _money(opening + net_income),
            "top_items": self.top_selling_items(day, day, limit=5),
            "low_stock": self.low_stock_products(),
        }
