# Overview: Stock ledger; owns godown/counter quantities and the movement audit trail.

from __future__ import annotations

import json
import logging

from sqlalchemy import and_, case, func, update

from ..errors import InsufficientStockError, InvalidInput, NotFoundError
from ..models import DailyTransfer, InventoryRecord, Product, StockMovement
from ..models.inventory import (
    LOCATION_COUNTER,
    LOCATION_GODOWN,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TRANSFER,
)
from ..time_utils import business_date, parse_iso_date, utcnow
from ..validation import coerce_int, parse_date_range, validate_location
from .concurrency import lock_for_update, run_atomic

"""
Stock Ledger Invariants (authoritative)

- InventoryRecord.godown_stock / counter_stock are a cache of the movement log.
  For every product: godown + counter == sum of signed movement quantities.
- StockLedger is the only writer of InventoryRecord and StockMovement.
- Movements are append-only: never updated, never deleted.
- Every public write runs as one unit of work (run_atomic). Inner helpers
  (apply_transfer, record_sale_deduction) only flush, so callers such as the
  sale processor can fold them into a larger transaction.
- Decrements are single conditional UPDATEs. With the floor enforced
  (allow_negative_stock=False) a decrement that would go below zero matches
  no row and fails with InsufficientStockError; concurrent calls on the same
  product serialize in the database rather than losing updates.
"""

logger = logging.getLogger(__name__)

MAX_MOVEMENT_LIMIT = 500

_STOCK_COLUMNS = {
    LOCATION_GODOWN: InventoryRecord.godown_stock,
    LOCATION_COUNTER: InventoryRecord.counter_stock,
}


def signed_movement_quantity():
    """SQL expression for a movement's net effect on total stock."""
    return case(
        (and_(StockMovement.from_location.isnot(None), StockMovement.to_location.isnot(None)), 0),
        (StockMovement.to_location.isnot(None), StockMovement.quantity),
        (StockMovement.from_location.isnot(None), -StockMovement.quantity),
        else_=0,
    )


class StockLedger:
    def __init__(self, session, *, allow_negative_stock: bool = False, business_tz=None):
        self.session = session
        self.allow_negative_stock = allow_negative_stock
        self.business_tz = business_tz

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, product_id: int, *, lock: bool = False) -> InventoryRecord:
        query = self.session.query(InventoryRecord).filter_by(product_id=product_id)
        if lock:
            query = lock_for_update(query)
        record = query.first()
        if record is None:
            raise NotFoundError(f"Product {product_id} not found")
        return record

    def list_movements(self, limit: int = 30, *, product_id: int | None = None) -> list[StockMovement]:
        """Most recent first, bounded by limit (capped at MAX_MOVEMENT_LIMIT). Read-only."""
        limit = min(coerce_int(limit, "limit", minimum=1), MAX_MOVEMENT_LIMIT)
        query = self.session.query(StockMovement)
        if product_id is not None:
            query = query.filter(StockMovement.product_id == product_id)
        return (
            query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )

    def movement_balance(self, product_id: int) -> int:
        """Net stock implied by the movement log for one product."""
        total = (
            self.session.query(func.coalesce(func.sum(signed_movement_quantity()), 0))
            .filter(StockMovement.product_id == product_id)
            .scalar()
        )
        return int(total or 0)

    def list_daily_transfers(self, start=None, end=None) -> list[DailyTransfer]:
        start_dt, end_dt = parse_date_range(start, end)
        query = self.session.query(DailyTransfer)
        if start_dt:
            query = query.filter(DailyTransfer.transfer_date >= start_dt.date())
        if end_dt:
            query = query.filter(DailyTransfer.transfer_date <= end_dt.date())
        return query.order_by(DailyTransfer.created_at.desc(), DailyTransfer.transfer_date.desc(),
                              DailyTransfer.id.desc()).all()

    # ------------------------------------------------------------------
    # Inner writes (flush only; caller owns the transaction)
    # ------------------------------------------------------------------

    def _shift(self, product_id: int, location: str, delta: int) -> None:
        column = _STOCK_COLUMNS[location]
        stmt = update(InventoryRecord).where(InventoryRecord.product_id == product_id)
        if delta < 0 and not self.allow_negative_stock:
            stmt = stmt.where(column >= -delta)
        stmt = stmt.values({column.key: column + delta})

        result = self.session.execute(stmt)
        if result.rowcount:
            return

        record = self.session.query(InventoryRecord).filter_by(product_id=product_id).first()
        if record is None:
            raise NotFoundError(f"Product {product_id} not found")
        available = getattr(record, column.key)
        raise InsufficientStockError(
            f"Insufficient {location} stock for product {product_id}. "
            f"Available: {available}, requested: {-delta}",
            details={"product_id": product_id, "location": location,
                     "available": available, "requested": -delta},
        )

    def _append_movement(
        self,
        *,
        product_id: int,
        movement_type: str,
        quantity: int,
        from_location: str | None = None,
        to_location: str | None = None,
        reference_id: int | None = None,
        notes: str | None = None,
    ) -> StockMovement:
        movement = StockMovement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            from_location=from_location,
            to_location=to_location,
            reference_id=reference_id,
            notes=notes,
            created_at=utcnow(),
        )
        self.session.add(movement)
        self.session.flush()
        return movement

    def apply_transfer(
        self,
        product_id: int,
        quantity: int,
        from_location: str,
        to_location: str,
        notes: str | None = None,
    ) -> StockMovement:
        product_id = coerce_int(product_id, "productId", minimum=1)
        quantity = coerce_int(quantity, "quantity", minimum=1)
        from_location = validate_location(from_location, "fromLocation")
        to_location = validate_location(to_location, "toLocation")
        if from_location == to_location:
            raise InvalidInput("fromLocation and toLocation must differ")

        self._shift(product_id, from_location, -quantity)
        self._shift(product_id, to_location, quantity)
        return self._append_movement(
            product_id=product_id,
            movement_type=MOVEMENT_TRANSFER,
            quantity=quantity,
            from_location=from_location,
            to_location=to_location,
            notes=notes,
        )

    def record_sale_deduction(self, product_id: int, quantity: int, sale_id: int) -> StockMovement:
        """
        Take sold quantity off the counter and log an 'out' movement.

        Internal to the sale processor: runs inside its transaction and
        never commits.
        """
        self._shift(product_id, LOCATION_COUNTER, -quantity)
        return self._append_movement(
            product_id=product_id,
            movement_type=MOVEMENT_OUT,
            quantity=quantity,
            from_location=LOCATION_COUNTER,
            reference_id=sale_id,
        )

    # ------------------------------------------------------------------
    # Public atomic operations
    # ------------------------------------------------------------------

    def transfer(
        self,
        product_id: int,
        quantity: int,
        from_location: str,
        to_location: str,
        notes: str | None = None,
    ) -> dict:
        """Move stock between godown and counter; all-or-nothing."""
        def _op():
            return self.apply_transfer(product_id, quantity, from_location, to_location, notes)

        movement = run_atomic(self.session, _op)
        logger.info(
            "Transferred %s x product %s from %s to %s",
            movement.quantity, movement.product_id, movement.from_location, movement.to_location,
        )
        return {"transferred": True, "movement_id": movement.id}

    def transfer_batch(
        self,
        items: list[dict],
        from_location: str = LOCATION_GODOWN,
        to_location: str = LOCATION_COUNTER,
        transfer_date=None,
    ) -> DailyTransfer:
        """
        Apply several transfers as one unit of work and file a DailyTransfer summary.

        items: [{"productId": 1, "quantity": 5}, ...]. Any failing line rolls
        back every line.
        """
        if not isinstance(items, list) or not items:
            raise InvalidInput("Transfer items are required and must be a non-empty array")
        from_location = validate_location(from_location, "fromLocation")
        to_location = validate_location(to_location, "toLocation")
        try:
            day = parse_iso_date(transfer_date) or business_date(tz=self.business_tz)
        except ValueError:
            raise InvalidInput("transferDate must be an ISO-8601 date")

        def _op():
            transferred = []
            for index, item in enumerate(items, start=1):
                if not isinstance(item, dict):
                    raise InvalidInput(f"Item {index}: must be an object")
                product_id = item.get("productId", item.get("product_id"))
                movement = self.apply_transfer(
                    product_id,
                    item.get("quantity"),
                    from_location,
                    to_location,
                    notes=f"Daily transfer {day.isoformat()}",
                )
                product = self.session.get(Product, movement.product_id)
                transferred.append({
                    "product_id": movement.product_id,
                    "name": product.display_name if product else None,
                    "quantity": movement.quantity,
                })

            summary = DailyTransfer(
                transfer_date=day,
                from_location=from_location,
                to_location=to_location,
                total_items=len(transferred),
                total_quantity=sum(line["quantity"] for line in transferred),
                items_transferred=json.dumps(transferred),
            )
            self.session.add(summary)
            self.session.flush()
            return summary

        summary = run_atomic(self.session, _op)
        logger.info("Daily transfer %s filed: %s items, %s units",
                    summary.id, summary.total_items, summary.total_quantity)
        return summary

    def receive_stock(
        self,
        product_id: int,
        quantity: int,
        location: str = LOCATION_GODOWN,
        notes: str | None = None,
    ) -> StockMovement:
        """Book incoming stock (deliveries) into a location with an 'in' movement."""
        product_id = coerce_int(product_id, "productId", minimum=1)
        quantity = coerce_int(quantity, "quantity", minimum=1)
        location = validate_location(location)

        def _op():
            self._shift(product_id, location, quantity)
            return self._append_movement(
                product_id=product_id,
                movement_type=MOVEMENT_IN,
                quantity=quantity,
                to_location=location,
                notes=notes,
            )

        movement = run_atomic(self.session, _op)
        logger.info("Received %s x product %s into %s", quantity, product_id, location)
        return movement

    def adjust_stock(
        self,
        product_id: int,
        godown_stock: int,
        counter_stock: int,
        notes: str | None = None,
    ) -> dict:
        """
        Overwrite both stock counters (manual correction).

        Each location whose value changes gets an 'adjustment' movement for
        the difference, so the movement log stays the system of record.
        """
        product_id = coerce_int(product_id, "productId", minimum=1)
        targets = {
            LOCATION_GODOWN: coerce_int(godown_stock, "godownStock", minimum=0),
            LOCATION_COUNTER: coerce_int(counter_stock, "counterStock", minimum=0),
        }

        def _op():
            record = self.get_record(product_id, lock=True)
            changed = False
            for location, target in targets.items():
                column = _STOCK_COLUMNS[location].key
                delta = target - (getattr(record, column) or 0)
                if delta == 0:
                    continue
                setattr(record, column, target)
                self._append_movement(
                    product_id=product_id,
                    movement_type=MOVEMENT_ADJUSTMENT,
                    quantity=abs(delta),
                    from_location=location if delta < 0 else None,
                    to_location=location if delta > 0 else None,
                    notes=notes or "Manual stock correction",
                )
                changed = True
            self.session.flush()
            return changed

        changed = run_atomic(self.session, _op)
        if changed:
            logger.info("Adjusted stock for product %s to godown=%s counter=%s",
                        product_id, targets[LOCATION_GODOWN], targets[LOCATION_COUNTER])
        return {"updated": changed}
