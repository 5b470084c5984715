"""Seed a demo catalog: a few products and clients to try the bot with."""
import logging
from decimal import Decimal

from bizops.db.init_db import init_db
from bizops.db.session import SessionLocal
from bizops.models.client import Client
from bizops.models.product import Product

logger = logging.getLogger(__name__)

PRODUCTS = [
    {"name": "Chips 40g", "price": "2.50", "category": "Snacks", "external_id": "CH-40", "stock": 120},
    {"name": "Chips 150g", "price": "6.90", "category": "Snacks", "external_id": "CH-150", "stock": 60},
    {"name": "Cola 500ml", "price": "1.80", "category": "Drinks", "external_id": "CO-500", "stock": 200},
    {"name": "Cola 1.5L", "price": "3.40", "category": "Drinks", "external_id": "CO-1500", "stock": 90},
    {"name": "Orange juice 1L", "price": "4.20", "category": "Drinks", "external_id": "OJ-1000", "stock": 45},
    {"name": "Chocolate bar", "price": "1.20", "category": "Sweets", "external_id": "SW-CHOC", "stock": 300},
    {"name": "Gummy bears 100g", "price": "2.10", "category": "Sweets", "external_id": "SW-GUM", "stock": 140},
]

CLIENTS = [
    {"name": "Corner Market", "contact": "555-0101", "address": "12 Main St", "category": "Retail", "route": "North"},
    {"name": "Sunrise Kiosk", "contact": "555-0102", "address": "3 Beach Ave", "category": "Kiosk", "route": "South"},
    {"name": "Green Grocer", "contact": "555-0103", "address": "88 Elm Rd", "category": "Retail", "route": "North"},
]


def seed_catalog():
    init_db()
    db = SessionLocal()
    try:
        added_products = 0
        for item in PRODUCTS:
            if db.query(Product).filter(Product.external_id == item["external_id"]).first():
                continue
            db.add(Product(**{**item, "price": Decimal(item["price"]), "source": "seed"}))
            added_products += 1

        added_clients = 0
        for item in CLIENTS:
            if db.query(Client).filter(Client.name == item["name"]).first():
                continue
            db.add(Client(**item))
            added_clients += 1

        db.commit()
        logger.info(f"Seeded {added_products} products and {added_clients} clients")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed_catalog()
