# Overview: Sale transaction processor; sale rows, line items and counter deductions commit as one unit.

from __future__ import annotations

import logging

from sqlalchemy.orm import selectinload

from ..errors import ConflictError, InsufficientStockError, NotFoundError, TransactionError
from ..models import PendingBill, Product, Sale, SaleItem
from ..time_utils import business_date, utcnow
from ..validation import coerce_int, validate_line_items, validate_sale
from .concurrency import lock_for_update, run_atomic
from .document_service import next_sale_number

"""
Sale Transaction Invariants (authoritative)

- A sale, its items and their 'out' movements are written in one
  transaction. If any line fails nothing survives: no Sale, no SaleItem,
  no StockMovement, no counter change.
- Sales are immutable once committed; there is no update or delete path.
- sale_number is unique. Caller-supplied numbers that collide fail with
  ConflictError and leave the existing sale untouched.
- Clearing a pending bill deletes it in the same transaction that creates
  the sale. A failed clear leaves the bill in place for retry.
"""

logger = logging.getLogger(__name__)

SALE_HEADER_FIELDS = (
    "sale_number",
    "sale_type",
    "table_number",
    "customer_name",
    "customer_phone",
    "total_amount",
    "tax_amount",
    "discount_amount",
    "payment_method",
    "sale_date",
)


class SaleProcessor:
    def __init__(self, session, ledger, *, business_tz=None):
        self.session = session
        self.ledger = ledger
        self.business_tz = business_tz

    def get_sale(self, sale_id: int) -> Sale:
        sale_id = coerce_int(sale_id, "saleId", minimum=1)
        sale = (
            self.session.query(Sale)
            .options(selectinload(Sale.items).selectinload(SaleItem.product))
            .filter(Sale.id == sale_id)
            .first()
        )
        if sale is None:
            raise NotFoundError(f"Sale {sale_id} not found")
        return sale

    def _apply_sale(self, fields: dict) -> Sale:
        """Insert the sale, its items and their deductions. Flush only."""
        existing = self.session.query(Sale.id).filter(Sale.sale_number == fields["sale_number"]).first()
        if existing is not None:
            raise ConflictError(f"Sale number {fields['sale_number']} already exists",
                                details={"sale_number": fields["sale_number"]})

        sale = Sale(**{key: fields[key] for key in SALE_HEADER_FIELDS})
        self.session.add(sale)
        self.session.flush()

        for index, line in enumerate(fields["items"], start=1):
            if self.session.get(Product, line["product_id"]) is None:
                raise NotFoundError(f"Item {index}: product {line['product_id']} not found",
                                    details={"product_id": line["product_id"]})
            self.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                total_price=line["total_price"],
            ))
            self.ledger.record_sale_deduction(line["product_id"], line["quantity"], sale.id)

        self.session.flush()
        return sale

    def _apply_or_abort(self, fields: dict) -> Sale:
        try:
            return self._apply_sale(fields)
        except (NotFoundError, InsufficientStockError) as exc:
            raise TransactionError(
                f"Sale {fields['sale_number']} was not recorded: {exc.message}",
                details=exc.details,
            ) from exc

    def create_sale(self, payload: dict) -> Sale:
        """
        Record a completed sale.

        Input problems raise InvalidInput before anything is written. Once
        writing starts, a missing product or short counter stock aborts the
        whole sale with TransactionError.
        """
        fields = validate_sale(payload)
        sale = run_atomic(self.session, lambda: self._apply_or_abort(fields))
        logger.info("Created sale %s (%s) with %d items", sale.id, sale.sale_number, len(fields["items"]))
        return sale

    def clear_pending_bill(self, bill_id: int) -> dict:
        """
        Promote a pending bill into a finalized sale and delete the bill.

        The sale gets a freshly allocated DDMMYYNNN number, DDMMYY being the
        business day (business_tz, or host local time when None).
        """
        bill_id = coerce_int(bill_id, "pendingBillId", minimum=1)

        def _op():
            bill = lock_for_update(self.session.query(PendingBill).filter(PendingBill.id == bill_id)).first()
            if bill is None:
                raise NotFoundError(f"Pending bill {bill_id} not found")

            try:
                items = validate_line_items(bill.item_list(), label="Bill items")
            except ValueError as exc:
                raise TransactionError(f"Pending bill {bill_id} has unreadable items") from exc

            now = utcnow()
            fields = {
                "sale_number": next_sale_number(self.session, business_date(now, self.business_tz)),
                "sale_type": bill.sale_type,
                "table_number": bill.table_number,
                "customer_name": bill.customer_name,
                "customer_phone": bill.customer_phone,
                "total_amount": bill.total_amount,
                "tax_amount": bill.tax_amount,
                "discount_amount": bill.discount_amount,
                "payment_method": bill.payment_method,
                "sale_date": now,
                "items": items,
            }
            sale = self._apply_or_abort(fields)
            self.session.delete(bill)
            self.session.flush()
            return sale

        sale = run_atomic(self.session, _op)
        logger.info("Cleared pending bill %s into sale %s (%s)", bill_id, sale.id, sale.sale_number)
        return {
            "sale_id": sale.id,
            "sale_number": sale.sale_number,
            "sale_data": sale.to_dict(with_items=True),
        }
