# Overview: Pending bill drafts; saved, edited and discarded here, promoted by the sale processor.

from __future__ import annotations

import json
import logging

from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError
from ..models import PendingBill
from ..time_utils import business_date
from ..validation import coerce_int, validate_pending_bill
from .concurrency import lock_for_update, run_atomic
from .document_service import next_bill_number

logger = logging.getLogger(__name__)


def serialize_items(items: list[dict]) -> str:
    """Store line items the way the POS screens send them (camelCase, float money)."""
    lines = []
    for line in items:
        stored = {
            "productId": line["product_id"],
            "quantity": line["quantity"],
            "unitPrice": float(line["unit_price"]),
            "totalPrice": float(line["total_price"]),
        }
        if line.get("name"):
            stored["name"] = line["name"]
        lines.append(stored)
    return json.dumps(lines)


class PendingBillBook:
    def __init__(self, session, *, business_tz=None):
        self.session = session
        self.business_tz = business_tz

    def _load(self, bill_id, *, lock: bool = False) -> PendingBill:
        bill_id = coerce_int(bill_id, "pendingBillId", minimum=1)
        query = self.session.query(PendingBill).filter(PendingBill.id == bill_id)
        if lock:
            query = lock_for_update(query)
        bill = query.first()
        if bill is None:
            raise NotFoundError(f"Pending bill {bill_id} not found")
        return bill

    def get(self, bill_id: int) -> PendingBill:
        return self._load(bill_id)

    def list(self, search: str | None = None) -> list[PendingBill]:
        """Newest first. search matches bill number, customer or table."""
        query = self.session.query(PendingBill)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                PendingBill.bill_number.ilike(pattern),
                PendingBill.customer_name.ilike(pattern),
                PendingBill.table_number.ilike(pattern),
            ))
        return query.order_by(PendingBill.created_at.desc(), PendingBill.id.desc()).all()

    def save(self, payload: dict) -> PendingBill:
        fields = validate_pending_bill(payload)

        def _op():
            columns = dict(fields)
            bill_number = columns.pop("bill_number") or next_bill_number(
                self.session, business_date(tz=self.business_tz)
            )
            items = columns.pop("items")
            bill = PendingBill(bill_number=bill_number, items=serialize_items(items), **columns)
            self.session.add(bill)
            self.session.flush()
            return bill

        try:
            bill = run_atomic(self.session, _op)
        except ConflictError as exc:
            raise ConflictError("A pending bill with this number already exists",
                                details=exc.details) from exc
        logger.info("Saved pending bill %s (%s)", bill.id, bill.bill_number)
        return bill

    def update(self, bill_id: int, payload: dict) -> PendingBill:
        """Replace a draft's contents; the bill number never changes."""
        fields = validate_pending_bill(payload, partial=True)

        def _op():
            bill = self._load(bill_id, lock=True)
            bill.items = serialize_items(fields["items"])
            for key, value in fields.items():
                if key != "items":
                    setattr(bill, key, value)
            self.session.flush()
            return bill

        bill = run_atomic(self.session, _op)
        logger.info("Updated pending bill %s", bill.id)
        return bill

    def delete(self, bill_id: int) -> None:
        """Discard a draft. Terminal: the bill can no longer be cleared."""
        def _op():
            bill = self._load(bill_id, lock=True)
            self.session.delete(bill)
            self.session.flush()

        run_atomic(self.session, _op)
        logger.info("Discarded pending bill %s", bill_id)
