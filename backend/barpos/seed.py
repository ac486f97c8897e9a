# Overview: Sample catalog and opening stock for demos and manual testing.

from __future__ import annotations

import logging

from .errors import ConflictError
from .models import Product

logger = logging.getLogger(__name__)

SAMPLE_PRODUCTS = [
    {"name": "Kingfisher Beer", "variant": "330ml", "sku": "KF-330", "barcode": "1234567890001",
     "price": 80.00, "cost": 60.00, "category": "Beer",
     "description": "Kingfisher Premium Beer 330ml bottle", "unit": "bottle"},
    {"name": "Kingfisher Beer", "variant": "650ml", "sku": "KF-650", "barcode": "1234567890002",
     "price": 150.00, "cost": 120.00, "category": "Beer",
     "description": "Kingfisher Premium Beer 650ml bottle", "unit": "bottle"},
    {"name": "Chicken Tikka", "variant": "Full", "sku": "CT-FULL", "barcode": "1234567890003",
     "price": 280.00, "cost": 180.00, "category": "Non-Veg",
     "description": "Boneless chicken tikka - full portion", "unit": "plate"},
    {"name": "Chicken Tikka", "variant": "Half", "sku": "CT-HALF", "barcode": "1234567890004",
     "price": 160.00, "cost": 100.00, "category": "Non-Veg",
     "description": "Boneless chicken tikka - half portion", "unit": "plate"},
    {"name": "Paneer Butter Masala", "variant": "Regular", "sku": "PBM-REG", "barcode": "1234567890005",
     "price": 220.00, "cost": 140.00, "category": "Veg",
     "description": "Rich and creamy paneer butter masala", "unit": "plate"},
    {"name": "Naan", "variant": "Plain", "sku": "NAAN-PLAIN", "barcode": "1234567890006",
     "price": 30.00, "cost": 15.00, "category": "Bread",
     "description": "Fresh tandoor naan bread", "unit": "pcs"},
    {"name": "Naan", "variant": "Butter", "sku": "NAAN-BUTTER", "barcode": "1234567890007",
     "price": 40.00, "cost": 20.00, "category": "Bread",
     "description": "Butter naan bread", "unit": "pcs"},
    {"name": "Whiskey", "variant": "Royal Stag 60ml", "sku": "RS-60", "barcode": "1234567890008",
     "price": 120.00, "cost": 90.00, "category": "Spirits",
     "description": "Royal Stag whiskey 60ml peg", "unit": "glass"},
    {"name": "Whiskey", "variant": "Royal Stag 30ml", "sku": "RS-30", "barcode": "1234567890009",
     "price": 80.00, "cost": 60.00, "category": "Spirits",
     "description": "Royal Stag whiskey 30ml peg", "unit": "glass"},
    {"name": "Jeera Rice", "variant": "Regular", "sku": "JR-REG", "barcode": "1234567890010",
     "price": 120.00, "cost": 70.00, "category": "Rice",
     "description": "Aromatic jeera rice", "unit": "plate"},
]

# sku -> (godown, counter); CT-FULL starts out of stock
SAMPLE_STOCK = {
    "KF-330": (50, 10),
    "KF-650": (30, 8),
    "CT-FULL": (0, 0),
    "CT-HALF": (20, 5),
    "PBM-REG": (25, 6),
    "NAAN-PLAIN": (40, 15),
    "NAAN-BUTTER": (35, 12),
    "RS-60": (20, 4),
    "RS-30": (25, 6),
    "JR-REG": (30, 8),
}


def seed_sample_data(catalog, ledger) -> dict:
    """
    Add the sample catalog and set opening stock.

    Goes through the same entry points as the UI. Products whose SKU already
    exists are skipped and keep their current stock.
    """
    added = []
    for payload in SAMPLE_PRODUCTS:
        try:
            product = catalog.add_product(payload)
        except ConflictError:
            logger.info("Product %s already exists, skipping", payload["sku"])
            continue
        added.append(product.sku)

    for sku in added:
        product = catalog.session.query(Product).filter_by(sku=sku).one()
        godown, counter = SAMPLE_STOCK[sku]
        ledger.adjust_stock(product.id, godown, counter, notes="Opening stock")

    logger.info("Seeded %d sample products", len(added))
    return {"added": added, "skipped": len(SAMPLE_PRODUCTS) - len(added)}
