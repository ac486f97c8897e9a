from __future__ import annotations

import json

from ..extensions import db
from barpos.time_utils import to_utc_z
from ._money import money_out

SALE_TYPE_TABLE = "table"
SALE_TYPE_PARCEL = "parcel"
SALE_TYPES = (SALE_TYPE_TABLE, SALE_TYPE_PARCEL)


class Sale(db.Model):
    """
    Completed sale. Written once by SaleProcessor, never updated.

    sale_number is the business-facing display number; id is the immutable
    identifier that stock movements reference.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_number = db.Column(db.String(64), nullable=False, unique=True)
    sale_type = db.Column(db.String(16), nullable=False, default=SALE_TYPE_TABLE)
    table_number = db.Column(db.String(32), nullable=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, with_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "sale_type": self.sale_type,
            "table_number": self.table_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "total_amount": money_out(self.total_amount),
            "tax_amount": money_out(self.tax_amount),
            "discount_amount": money_out(self.discount_amount),
            "payment_method": self.payment_method,
            "sale_date": to_utc_z(self.sale_date),
            "created_at": to_utc_z(self.created_at),
        }
        if with_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Individual line items on a sale. total_price == quantity * unit_price."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "name": self.product.display_name if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_out(self.unit_price),
            "total_price": money_out(self.total_price),
        }


class PendingBill(db.Model):
    """
    Saved-but-not-finalized sale draft.

    Terminal transitions: cleared (promoted into Sale + SaleItems + movements,
    then deleted) or deleted (discarded). Items are stored as a JSON list of
    {productId, quantity, unitPrice, totalPrice, name?}.
    """
    __tablename__ = "pending_bills"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    bill_number = db.Column(db.String(64), nullable=False, unique=True)
    sale_type = db.Column(db.String(16), nullable=False, default=SALE_TYPE_TABLE)
    table_number = db.Column(db.String(32), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    items = db.Column(db.Text, nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def item_list(self) -> list[dict]:
        """Decode the stored items; raises ValueError on corrupt data."""
        items = json.loads(self.items or "[]")
        if not isinstance(items, list):
            raise ValueError("pending bill items must be a list")
        return items

    def to_dict(self) -> dict:
        try:
            items = self.item_list()
        except ValueError:
            items = []
        return {
            "id": self.id,
            "bill_number": self.bill_number,
            "sale_type": self.sale_type,
            "table_number": self.table_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "items": items,
            "subtotal": money_out(self.subtotal),
            "tax_amount": money_out(self.tax_amount),
            "discount_amount": money_out(self.discount_amount),
            "total_amount": money_out(self.total_amount),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
