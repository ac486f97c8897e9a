# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/barpos/routes/products.py
from flask import Blueprint, current_app, request

from ..providers import product_catalog

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products joined with their stock levels.

    Query params:
    - category: str (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return product_catalog().list_products(
        category=request.args.get("category"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
def create_product():
    payload = request.get_json(silent=True) or {}
    product = product_catalog().add_product(payload)
    current_app.logger.info("Product %s created via API", product.id)
    return {"product": product.to_dict()}, 201


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    return {"product": product_catalog().get_product(product_id).to_dict()}


@products_bp.get("/barcode/<string:barcode>")
def get_product_by_barcode(barcode: str):
    return {"product": product_catalog().find_by_barcode(barcode).to_dict()}


@products_bp.put("/<int:product_id>")
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}
    product = product_catalog().update_product(product_id, payload)
    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
def delete_product(product_id: int):
    product_catalog().delete_product(product_id)
    return {"deleted": True}


@products_bp.put("/<int:product_id>/stock-levels")
def set_stock_levels(product_id: int):
    payload = request.get_json(silent=True) or {}
    record = product_catalog().set_stock_levels(product_id, payload)
    return {"inventory": record.to_dict()}
