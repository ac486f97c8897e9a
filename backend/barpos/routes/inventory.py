# backend/barpos/routes/inventory.py
"""
Stock ledger routes.

Every write here is one unit of work: it either applies completely or
answers with an error and changes nothing.

Payload keys may be camelCase (desktop shell) or snake_case.
"""
from flask import Blueprint, current_app, request

from ..providers import reporting, stock_ledger

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _arg(payload: dict, snake: str, camel: str, default=None):
    if snake in payload:
        return payload[snake]
    return payload.get(camel, default)


@inventory_bp.get("")
def list_inventory():
    items = reporting().inventory()
    return {"items": items, "count": len(items)}


@inventory_bp.get("/low-stock")
def low_stock():
    items = reporting().low_stock_products()
    return {"items": items, "count": len(items)}


@inventory_bp.post("/transfer")
def transfer_stock():
    """Move quantity between godown and counter."""
    payload = request.get_json(silent=True) or {}
    result = stock_ledger().transfer(
        _arg(payload, "product_id", "productId"),
        payload.get("quantity"),
        _arg(payload, "from_location", "fromLocation"),
        _arg(payload, "to_location", "toLocation"),
        notes=payload.get("notes"),
    )
    return result


@inventory_bp.post("/transfer-batch")
def transfer_batch():
    """Daily godown -> counter restock in one transaction."""
    payload = request.get_json(silent=True) or {}
    summary = stock_ledger().transfer_batch(
        payload.get("items"),
        _arg(payload, "from_location", "fromLocation", "godown"),
        _arg(payload, "to_location", "toLocation", "counter"),
        _arg(payload, "transfer_date", "transferDate"),
    )
    return {"daily_transfer": summary.to_dict()}, 201


@inventory_bp.get("/daily-transfers")
def list_daily_transfers():
    transfers = stock_ledger().list_daily_transfers(request.args.get("start"), request.args.get("end"))
    return {"items": [t.to_dict() for t in transfers], "count": len(transfers)}


@inventory_bp.post("/receive")
def receive_stock():
    payload = request.get_json(silent=True) or {}
    movement = stock_ledger().receive_stock(
        _arg(payload, "product_id", "productId"),
        payload.get("quantity"),
        payload.get("location", "godown"),
        notes=payload.get("notes"),
    )
    return {"movement": movement.to_dict()}, 201


@inventory_bp.put("/<int:product_id>")
def adjust_stock(product_id: int):
    """Absolute correction of both stock counters."""
    payload = request.get_json(silent=True) or {}
    result = stock_ledger().adjust_stock(
        product_id,
        _arg(payload, "godown_stock", "godownStock"),
        _arg(payload, "counter_stock", "counterStock"),
        notes=payload.get("notes"),
    )
    if result["updated"]:
        current_app.logger.info("Stock for product %s corrected via API", product_id)
    return result


@inventory_bp.get("/movements")
def list_movements():
    limit = request.args.get("limit", current_app.config.get("STOCK_MOVEMENT_LIMIT", 30))
    product_id = request.args.get("product_id", type=int)
    movements = stock_ledger().list_movements(limit, product_id=product_id)
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}


@inventory_bp.get("/discrepancies")
def stock_discrepancies():
    items = reporting().stock_discrepancies()
    return {"items": items, "count": len(items), "consistent": not items}
