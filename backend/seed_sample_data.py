"""Seed sample data for local development and demos.

Populates categories, suppliers, supplies, batches, a few stock movements
and 30 days of usage history. Does nothing if any category already exists.

Usage:
    cd backend
    python seed_sample_data.py
"""

import logging
import random
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

import app.models  # noqa: F401  registers every table on Base.metadata
from app.core.clock import utc_now
from app.core.config import settings
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models import (
    Category,
    InventoryBatch,
    MovementType,
    StockMovement,
    Supplier,
    Supply,
    UsageAnalytics,
)

logger = logging.getLogger("seed")

CATEGORIES = [
    ("Medications", "Pharmaceutical drugs and medicines", "#3B82F6"),
    ("Medical Devices", "Medical equipment and devices", "#10B981"),
    ("Surgical Supplies", "Surgical instruments and supplies", "#F59E0B"),
    ("Personal Protective Equipment", "PPE and safety equipment", "#EF4444"),
    ("Diagnostic Supplies", "Testing and diagnostic materials", "#8B5CF6"),
]

SUPPLIERS = [
    dict(name="MedSupply Corp", contact_email="orders@medsupply.com", contact_phone="+1-555-0101",
         address="123 Medical Way, Healthcare City, HC 12345",
         performance_rating=Decimal("4.5"), average_delivery_time=3),
    dict(name="HealthTech Solutions", contact_email="sales@healthtech.com", contact_phone="+1-555-0102",
         address="456 Innovation Blvd, Tech Valley, TV 67890",
         performance_rating=Decimal("4.2"), average_delivery_time=5),
    dict(name="Global Medical Supplies", contact_email="info@globalmed.com", contact_phone="+1-555-0103",
         address="789 Supply Chain Dr, Distribution Hub, DH 54321",
         performance_rating=Decimal("4.0"), average_delivery_time=7),
]

# (name, description, category index, supplier index, sku, barcode, unit, cost,
#  min, max, reorder point, reorder qty, refrigerated, shelf life days, base daily usage)
SUPPLIES = [
    ("Surgical Masks", "Disposable 3-layer surgical masks for medical procedures", 3, 0,
     "SM-001", "123456789012", "pieces", "0.25", 1000, 10000, 2000, 5000, False, 1095, 50),
    ("Nitrile Gloves", "Powder-free nitrile examination gloves", 3, 0,
     "NG-001", "234567890123", "pieces", "0.15", 2000, 20000, 3000, 10000, False, 1825, 100),
    ("Syringes 10ml", "Sterile disposable syringes 10ml with needle", 1, 1,
     "SY-010", "345678901234", "pieces", "0.75", 500, 5000, 800, 2000, False, 1825, 20),
    ("Gauze Pads 4x4", "Sterile gauze pads for wound care", 2, 2,
     "GP-44", "456789012345", "pieces", "0.50", 1000, 8000, 1500, 3000, False, 1095, 30),
    ("Ibuprofen 200mg", "Pain relief medication, 200mg tablets", 0, 1,
     "IB-200", "567890123456", "tablets", "0.05", 5000, 50000, 8000, 20000, False, 1095, 200),
    ("COVID-19 Rapid Test", "Rapid antigen test for COVID-19 detection", 4, 0,
     "CV-RT", "678901234567", "tests", "12.50", 100, 1000, 200, 500, True, 730, 5),
]

# (supply index, batch number, quantity, expires in days, received days ago, cost, location, notes)
BATCHES = [
    (0, "SM001-2024-01", 3000, 365, 30, "0.25", "Main Storage", "Regular stock replenishment"),
    (0, "SM001-2024-02", 2000, 400, 15, "0.23", "Main Storage", "Bulk purchase discount"),
    (1, "NG001-2024-01", 8000, 730, 45, "0.15", "Main Storage", "Large batch order"),
    (2, "SY010-2024-01", 1200, 1095, 20, "0.75", "Pharmacy", "Standard restock"),
    (3, "GP44-2024-01", 800, 730, 60, "0.50", "Surgery Ward", "Running low - needs reorder"),
    (4, "IB200-2024-01", 15000, 730, 10, "0.05", "Pharmacy", "Fresh stock"),
    (5, "CVRT-2024-01", 150, 30, 90, "12.50", "Cold Storage", "Expiring soon - use first"),
]

# (supply index, quantity, reason, location, notes); logged after the batches above
MOVEMENTS = [
    (0, 200, "Daily ward usage", "Ward A", "Regular consumption"),
    (1, 500, "Emergency department usage", "Emergency", "High usage day"),
    (2, 50, "Vaccination clinic", "Clinic", "Routine vaccinations"),
]


def seed():
    """Insert sample data unless the catalog already has categories."""
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if db.query(Category).first() is not None:
            logger.info("Sample data already exists")
            return False
        _seed_all(db)
        db.commit()
        logger.info("Sample data initialized successfully")
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error seeding sample data")
        raise
    finally:
        db.close()


def _seed_all(db):
    now = utc_now()
    rng = random.Random(42)

    categories = [Category(name=n, description=d, color=c) for n, d, c in CATEGORIES]
    suppliers = [Supplier(**fields) for fields in SUPPLIERS]
    db.add_all(categories + suppliers)
    db.flush()

    supplies = []
    for (name, description, cat, sup, sku, barcode, unit, cost,
         minimum, maximum, rp, rq, cold, shelf_life, _usage) in SUPPLIES:
        supplies.append(Supply(
            name=name,
            description=description,
            category_id=categories[cat].id,
            supplier_id=suppliers[sup].id,
            sku=sku,
            barcode=barcode,
            unit_of_measure=unit,
            unit_cost=Decimal(cost),
            minimum_stock=minimum,
            maximum_stock=maximum,
            reorder_point=rp,
            reorder_quantity=rq,
            requires_refrigeration=cold,
            shelf_life_days=shelf_life,
        ))
    db.add_all(supplies)
    db.flush()
    logger.info(f"  + {len(categories)} categories, {len(suppliers)} suppliers, {len(supplies)} supplies")

    stock = {}
    for idx, number, qty, expires_in, received_ago, cost, location, notes in BATCHES:
        db.add(InventoryBatch(
            supply_id=supplies[idx].id,
            batch_number=number,
            quantity=qty,
            expiration_date=now + timedelta(days=expires_in),
            received_date=now - timedelta(days=received_ago),
            unit_cost=Decimal(cost),
            location=location,
            notes=notes,
        ))
        stock[idx] = stock.get(idx, 0) + qty
    logger.info(f"  + {len(BATCHES)} batches")

    for idx, qty, reason, location, notes in MOVEMENTS:
        db.add(StockMovement(
            supply_id=supplies[idx].id,
            movement_type=MovementType.OUT.value,
            quantity=qty,
            previous_stock=stock[idx] + qty,
            new_stock=stock[idx],
            reason=reason,
            location=location,
            notes=notes,
        ))

    today = now.date()
    for offset in range(30):
        day = today - timedelta(days=offset)
        for supply, row in zip(supplies, SUPPLIES):
            usage = int(row[-1] * (0.75 + rng.random() * 0.5))
            if usage > 0:
                db.add(UsageAnalytics(supply_id=supply.id, date=day, quantity_used=usage))
    logger.info("  + 30 days of usage history")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    seed()
