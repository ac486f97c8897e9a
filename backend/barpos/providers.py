# Overview: Builds service objects bound to the app's session and configuration.

from flask import current_app

from .extensions import db
from .services.finance_service import FinanceBook
from .services.ledger_service import StockLedger
from .services.pending_bill_service import PendingBillBook
from .services.product_service import ProductCatalog
from .services.reporting_service import ReportingFacade
from .services.sales_service import SaleProcessor
from .time_utils import resolve_timezone


def business_tz():
    return resolve_timezone(current_app.config.get("BUSINESS_TIMEZONE"))


def stock_ledger() -> StockLedger:
    return StockLedger(
        db.session,
        allow_negative_stock=current_app.config.get("ALLOW_NEGATIVE_STOCK", False),
        business_tz=business_tz(),
    )


def sale_processor() -> SaleProcessor:
    return SaleProcessor(db.session, stock_ledger(), business_tz=business_tz())


def product_catalog() -> ProductCatalog:
    return ProductCatalog(db.session)


def pending_bills() -> PendingBillBook:
    return PendingBillBook(db.session, business_tz=business_tz())


def finance_book() -> FinanceBook:
    return FinanceBook(db.session)


def reporting() -> ReportingFacade:
    return ReportingFacade(
        db.session,
        top_sellers_limit=current_app.config.get("TOP_SELLERS_LIMIT", 10),
        business_tz=business_tz(),
    )
