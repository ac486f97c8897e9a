# Overview: Flask API routes for sales; recording a sale deducts counter stock atomically.

# backend/barpos/routes/sales.py
from flask import Blueprint, current_app, request

from ..providers import reporting, sale_processor

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale():
    """
    Record a completed sale.

    Body: saleNumber, saleType, tableNumber, customerName, customerPhone,
    totalAmount, taxAmount, discountAmount, paymentMethod, saleDate, items[]
    where each item is {productId, quantity, unitPrice, totalPrice}.
    """
    payload = request.get_json(silent=True) or {}
    sale = sale_processor().create_sale(payload)
    current_app.logger.info("Sale %s recorded via API", sale.sale_number)
    return {"sale": sale.to_dict(with_items=True)}, 201


@sales_bp.get("")
def list_sales():
    """Sales in an inclusive date range (start/end query params), newest first."""
    return reporting().sales_in_range(request.args.get("start"), request.args.get("end"))


@sales_bp.get("/details")
def list_sales_with_details():
    items = reporting().sales_with_details(request.args.get("start"), request.args.get("end"))
    return {"items": items, "count": len(items)}


@sales_bp.get("/<int:sale_id>")
def get_sale(sale_id: int):
    return {"sale": sale_processor().get_sale(sale_id).to_dict(with_items=True)}
