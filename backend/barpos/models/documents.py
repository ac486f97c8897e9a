from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Store-backed counters for business-facing document numbers.

    One row per sequence key (e.g. "SALE-191026" for sales promoted on
    19 Oct 2026). next_number is the number the next caller receives.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("sequence_key", name="uq_document_sequences_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sequence_key = db.Column(db.String(64), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
