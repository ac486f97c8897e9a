# backend/barpos/routes/finance.py
"""
Spendings and counter cash balance routes.

Dates are ISO-8601 calendar dates (YYYY-MM-DD). List endpoints take
optional inclusive start/end query params.
"""
from flask import Blueprint, request

from ..providers import finance_book

finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


@finance_bp.get("/spendings")
def list_spendings():
    spendings = finance_book().list_spendings(
        request.args.get("start"),
        request.args.get("end"),
        category=request.args.get("category"),
    )
    return {"items": [s.to_dict() for s in spendings], "count": len(spendings)}


@finance_bp.post("/spendings")
def add_spending():
    payload = request.get_json(silent=True) or {}
    return {"spending": finance_book().add_spending(payload).to_dict()}, 201


@finance_bp.put("/spendings/<int:spending_id>")
def update_spending(spending_id: int):
    payload = request.get_json(silent=True) or {}
    return {"spending": finance_book().update_spending(spending_id, payload).to_dict()}


@finance_bp.delete("/spendings/<int:spending_id>")
def delete_spending(spending_id: int):
    finance_book().delete_spending(spending_id)
    return {"deleted": True}


@finance_bp.get("/spendings/categories")
def spending_categories():
    return {"categories": finance_book().spending_categories()}


@finance_bp.get("/spendings/daily-total")
def daily_spendings_total():
    total = finance_book().daily_spendings_total(request.args.get("date"))
    return {"date": request.args.get("date"), "total": float(total)}


@finance_bp.get("/counter-balance")
def list_counter_balances():
    balances = finance_book().list_counter_balances(request.args.get("start"), request.args.get("end"))
    return {"items": [b.to_dict() for b in balances], "count": len(balances)}


@finance_bp.post("/counter-balance")
def save_counter_balance():
    payload = request.get_json(silent=True) or {}
    return {"counter_balance": finance_book().save_counter_balance(payload).to_dict()}, 201


@finance_bp.put("/counter-balance/<int:balance_id>")
def update_counter_balance(balance_id: int):
    payload = request.get_json(silent=True) or {}
    return {"counter_balance": finance_book().update_counter_balance(balance_id, payload).to_dict()}


@finance_bp.get("/counter-balance/<string:day>")
def get_counter_balance(day: str):
    balance = finance_book().get_counter_balance(day)
    return {"counter_balance": balance.to_dict() if balance else None}


@finance_bp.get("/counter-balance/<string:day>/previous-closing")
def previous_closing_balance(day: str):
    return {"date": day, "previous_closing": float(finance_book().previous_closing_balance(day))}
