# Overview: Product catalog operations; every product is created together with its inventory row.

from __future__ import annotations

import logging

from sqlalchemy.orm import joinedload

from ..errors import ConflictError, InvalidInput, NotFoundError
from ..models import InventoryRecord, Product, SaleItem, StockMovement
from ..validation import validate_product, validate_stock_levels
from .concurrency import lock_for_update, run_atomic

logger = logging.getLogger(__name__)


class ProductCatalog:
    """
    Product master data.

    add_product and delete_product keep the one-product/one-inventory-row
    pairing: the row is inserted in the same transaction as the product and
    removed by ON DELETE CASCADE.
    """

    def __init__(self, session):
        self.session = session

    def _load(self, product_id: int, *, lock: bool = False) -> Product:
        query = self.session.query(Product).filter(Product.id == product_id)
        if lock:
            # FOR UPDATE cannot cover the nullable side of an outer join
            query = lock_for_update(query)
        else:
            query = query.options(joinedload(Product.inventory))
        product = query.first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def get_product(self, product_id: int) -> Product:
        return self._load(product_id)

    def find_by_barcode(self, barcode: str) -> Product:
        if not isinstance(barcode, str) or not barcode.strip():
            raise InvalidInput("barcode is required")
        product = (
            self.session.query(Product)
            .options(joinedload(Product.inventory))
            .filter(Product.barcode == barcode.strip())
            .first()
        )
        if product is None:
            raise NotFoundError(f"No product with barcode {barcode.strip()}")
        return product

    def list_products(
        self,
        *,
        category: str | None = None,
        page: int | None = None,
        per_page: int | None = None,
    ) -> dict:
        """
        Products joined with their stock levels, ordered by name.

        Without page the whole catalog is returned; with page the result is
        sliced (per_page defaults to 20, capped at 100).
        """
        base_query = self.session.query(Product).options(joinedload(Product.inventory))
        if category:
            base_query = base_query.filter(Product.category == category)
        base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

        if page is None:
            products = base_query.all()
            return {"items": [p.to_dict() for p in products], "count": len(products)}

        per_page = min(per_page or 20, 100)
        page = max(page, 1)
        total = base_query.count()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1
        products = base_query.offset((page - 1) * per_page).limit(per_page).all()

        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    def add_product(self, payload: dict) -> Product:
        """Validate, insert the product and a zeroed inventory row atomically."""
        fields = validate_product(payload)

        def _op():
            product = Product(**fields)
            product.inventory = InventoryRecord(godown_stock=0, counter_stock=0)
            self.session.add(product)
            self.session.flush()
            return product

        try:
            product = run_atomic(self.session, _op)
        except ConflictError as exc:
            raise ConflictError("A product with this SKU or barcode already exists",
                                details=exc.details) from exc
        logger.info("Added product %s (sku=%s)", product.id, product.sku)
        return product

    def update_product(self, product_id: int, payload: dict) -> Product:
        fields = validate_product(payload)

        def _op():
            product = self._load(product_id, lock=True)
            for key, value in fields.items():
                setattr(product, key, value)
            self.session.flush()
            return product

        try:
            product = run_atomic(self.session, _op)
        except ConflictError as exc:
            raise ConflictError("A product with this SKU or barcode already exists",
                                details=exc.details) from exc
        logger.info("Updated product %s", product.id)
        return product

    def delete_product(self, product_id: int) -> None:
        """
        Remove a product and its inventory row.

        Products referenced by sale items or stock movements are history and
        cannot be deleted.
        """
        def _op():
            product = self._load(product_id, lock=True)
            sold = self.session.query(SaleItem.id).filter(SaleItem.product_id == product.id).first()
            moved = self.session.query(StockMovement.id).filter(StockMovement.product_id == product.id).first()
            if sold is not None or moved is not None:
                raise ConflictError(
                    f"Product {product.id} has sales or stock history and cannot be deleted"
                )
            self.session.delete(product)
            self.session.flush()

        run_atomic(self.session, _op)
        logger.info("Deleted product %s", product_id)

    def set_stock_levels(self, product_id: int, payload: dict) -> InventoryRecord:
        """Update reorder thresholds; stock quantities are untouched."""
        levels = validate_stock_levels(payload)

        def _op():
            product = self._load(product_id, lock=True)
            record = product.inventory
            if record is None:
                raise NotFoundError(f"Product {product_id} has no inventory record")
            low = levels.get("min_stock_level", record.min_stock_level)
            high = levels.get("max_stock_level", record.max_stock_level)
            if low > high:
                raise InvalidInput("min_stock_level cannot exceed max_stock_level")
            record.min_stock_level = low
            record.max_stock_level = high
            self.session.flush()
            return record

        return run_atomic(self.session, _op)
