# Overview: Flask API routes for pending bills (saved drafts) and their promotion into sales.

# backend/barpos/routes/pending_bills.py
from flask import Blueprint, current_app, request

from ..providers import pending_bills, sale_processor

pending_bills_bp = Blueprint("pending_bills", __name__, url_prefix="/api/pending-bills")


@pending_bills_bp.get("")
def list_pending_bills():
    bills = pending_bills().list(request.args.get("search"))
    return {"items": [b.to_dict() for b in bills], "count": len(bills)}


@pending_bills_bp.post("")
def save_pending_bill():
    payload = request.get_json(silent=True) or {}
    bill = pending_bills().save(payload)
    return {"pending_bill": bill.to_dict()}, 201


@pending_bills_bp.get("/<int:bill_id>")
def get_pending_bill(bill_id: int):
    return {"pending_bill": pending_bills().get(bill_id).to_dict()}


@pending_bills_bp.put("/<int:bill_id>")
def update_pending_bill(bill_id: int):
    payload = request.get_json(silent=True) or {}
    bill = pending_bills().update(bill_id, payload)
    return {"pending_bill": bill.to_dict()}


@pending_bills_bp.delete("/<int:bill_id>")
def delete_pending_bill(bill_id: int):
    pending_bills().delete(bill_id)
    return {"deleted": True}


@pending_bills_bp.post("/<int:bill_id>/clear")
def clear_pending_bill(bill_id: int):
    """Promote the bill into a sale; the bill is removed in the same transaction."""
    result = sale_processor().clear_pending_bill(bill_id)
    current_app.logger.info("Pending bill %s cleared as sale %s", bill_id, result["sale_number"])
    return result, 201
