from __future__ import annotations

from ..extensions import db
from barpos.time_utils import to_utc_z
from ._money import money_out


class Product(db.Model):
    """
    Product master data.

    SKU is required and unique; barcode is optional but unique when present.
    A product always has exactly one InventoryRecord, created in the same
    transaction as the product and removed with it (ON DELETE CASCADE).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=False)
    variant = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost = db.Column(db.Numeric(12, 2), nullable=False)

    category = db.Column(db.String(64), nullable=True, index=True)
    unit = db.Column(db.String(32), nullable=False, default="pcs")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    inventory = db.relationship(
        "InventoryRecord",
        uselist=False,
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.variant})" if self.variant else self.name

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self, with_stock: bool = True) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "barcode": self.barcode,
            "name": self.name,
            "variant": self.variant,
            "description": self.description,
            "price": money_out(self.price),
            "cost": money_out(self.cost),
            "category": self.category,
            "unit": self.unit,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if with_stock and self.inventory is not None:
            data.update(self.inventory.stock_dict())
        return data


class InventoryRecord(db.Model):
    """
    Materialized godown/counter stock for one product.

    This row is a cache of the sum of StockMovement rows for the product.
    Only StockLedger writes it.
    """
    __tablename__ = "inventory"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    godown_stock = db.Column(db.Integer, nullable=False, default=0)
    counter_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    max_stock_level = db.Column(db.Integer, nullable=False, default=1000)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="inventory")

    @property
    def total_stock(self) -> int:
        return (self.godown_stock or 0) + (self.counter_stock or 0)

    @property
    def is_low(self) -> bool:
        return self.total_stock <= (self.min_stock_level or 0)

    def stock_dict(self) -> dict:
        return {
            "godown_stock": self.godown_stock,
            "counter_stock": self.counter_stock,
            "total_stock": self.total_stock,
            "min_stock_level": self.min_stock_level,
            "max_stock_level": self.max_stock_level,
        }

    def to_dict(self) -> dict:
        data = {"product_id": self.product_id, "updated_at": to_utc_z(self.updated_at)}
        data.update(self.stock_dict())
        return data
