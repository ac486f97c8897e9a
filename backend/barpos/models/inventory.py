from __future__ import annotations

import json

from ..extensions import db
from barpos.time_utils import to_utc_z

MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_TRANSFER = "transfer"
MOVEMENT_ADJUSTMENT = "adjustment"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_TRANSFER, MOVEMENT_ADJUSTMENT)

LOCATION_GODOWN = "godown"
LOCATION_COUNTER = "counter"
LOCATIONS = (LOCATION_GODOWN, LOCATION_COUNTER)


class StockMovement(db.Model):
    """
    Append-only audit record of one stock quantity change.

    Rows are never updated or deleted. quantity is always positive; the
    direction comes from from_location / to_location:
    - only to_location set   -> stock entered that location (+quantity)
    - only from_location set -> stock left that location (-quantity)
    - both set               -> moved between locations (net 0)
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    from_location = db.Column(db.String(16), nullable=True)
    to_location = db.Column(db.String(16), nullable=True)

    # sale id when the movement is sale-induced
    reference_id = db.Column(db.Integer, nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    product = db.relationship("Product")

    @property
    def signed_quantity(self) -> int:
        if self.from_location and self.to_location:
            return 0
        if self.to_location:
            return self.quantity
        if self.from_location:
            return -self.quantity
        return 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.display_name if self.product else None,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "from_location": self.from_location,
            "to_location": self.to_location,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class DailyTransfer(db.Model):
    """Summary of one godown -> counter restocking run."""
    __tablename__ = "daily_transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transfer_date = db.Column(db.Date, nullable=False, index=True)
    from_location = db.Column(db.String(16), nullable=False)
    to_location = db.Column(db.String(16), nullable=False)
    total_items = db.Column(db.Integer, nullable=False, default=0)
    total_quantity = db.Column(db.Integer, nullable=False, default=0)
    items_transferred = db.Column(db.Text, nullable=False, default="[]")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def items(self) -> list:
        try:
            return json.loads(self.items_transferred or "[]")
        except ValueError:
            return []

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_date": self.transfer_date.isoformat() if self.transfer_date else None,
            "from_location": self.from_location,
            "to_location": self.to_location,
            "total_items": self.total_items,
            "total_quantity": self.total_quantity,
            "items_transferred": self.items,
            "created_at": to_utc_z(self.created_at),
        }
