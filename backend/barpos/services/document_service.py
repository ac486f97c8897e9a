# Overview: Store-backed allocation of business-facing document numbers.

from __future__ import annotations

from datetime import date

from sqlalchemy import update

from ..models import DocumentSequence, Sale
from ..time_utils import business_date


def next_sequence_number(session, sequence_key: str) -> int:
    """
    Atomically allocate the next number for a sequence key.

    Runs inside the caller's transaction: the increment commits or rolls
    back together with the document that consumes the number. The UPDATE
    takes the row lock first, so two writers never receive the same number.
    """
    if not sequence_key:
        raise ValueError("sequence_key is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.sequence_key == sequence_key)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = session.execute(stmt)
    if not result.rowcount:
        # First number for this key. A racing insert from another writer
        # fails the unique key and surfaces as ConflictError from run_atomic.
        session.add(DocumentSequence(sequence_key=sequence_key, next_number=2))
        session.flush()
        return 1

    session.flush()
    current = (
        session.query(DocumentSequence.next_number)
        .filter_by(sequence_key=sequence_key)
        .scalar()
    )
    return current - 1


def next_sale_number(session, day: date | None = None) -> str:
    """
    Allocate a human-readable sale number: DDMMYY + per-day sequence.

    `day` is the business day (default: today in the host's local time).
    The sequence is zero-padded to three digits and keeps growing past 999.
    Numbers already taken by caller-supplied sales are skipped.
    """
    day_code = (day or business_date()).strftime("%d%m%y")
    key = f"SALE-{day_code}"

    while True:
        candidate = f"{day_code}{next_sequence_number(session, key):03d}"
        taken = session.query(Sale.id).filter_by(sale_number=candidate).first()
        if taken is None:
            return candidate


def next_bill_number(session, day: date | None = None) -> str:
    """Default number for a saved draft: PB-DDMMYY + per-day sequence."""
    day_code = (day or business_date()).strftime("%d%m%y")
    return f"PB-{day_code}{next_sequence_number(session, f'BILL-{day_code}'):03d}"
