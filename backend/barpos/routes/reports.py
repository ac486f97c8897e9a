# Overview: Read-only report endpoints backed by the reporting facade.

# backend/barpos/routes/reports.py
from flask import Blueprint, request

from ..providers import reporting

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/top-sellers")
def top_sellers():
    items = reporting().top_selling_items(
        request.args.get("start"),
        request.args.get("end"),
        limit=request.args.get("limit"),
    )
    return {"items": items, "count": len(items)}


@reports_bp.get("/sales")
def sales_report():
    return reporting().sales_in_range(request.args.get("start"), request.args.get("end"))


@reports_bp.get("/spendings")
def spendings_report():
    facade = reporting()
    start, end = request.args.get("start"), request.args.get("end")
    items = facade.spendings_in_range(start, end)
    return {"items": items, "count": len(items), "total": facade.spendings_total(start, end)}


@reports_bp.get("/low-stock")
def low_stock_report():
    items = reporting().low_stock_products()
    return {"items": items, "count": len(items)}


@reports_bp.get("/daily-summary")
def daily_summary():
    """End-of-day figures; ?date=YYYY-MM-DD."""
    return reporting().daily_summary(request.args.get("date"))
