"""Tests for the sample data seeding script."""

from app.models import Category, InventoryBatch, StockMovement, Supplier, Supply, UsageAnalytics
from app.services.stock_service import stock_for_supply
from seed_sample_data import _seed_all


def test_seed_populates_catalog(db_session):
    _seed_all(db_session)
    db_session.commit()

    assert db_session.query(Category).count() == 5
    assert db_session.query(Supplier).count() == 3
    assert db_session.query(Supply).count() == 6
    assert db_session.query(InventoryBatch).count() == 7
    assert db_session.query(StockMovement).count() == 3
    assert db_session.query(UsageAnalytics).count() == 6 * 30

    masks = db_session.query(Supply).filter(Supply.sku == "SM-001").one()
    assert stock_for_supply(db_session, masks) == 5000
    movement = db_session.query(StockMovement).filter(StockMovement.supply_id == masks.id).one()
    assert (movement.previous_stock, movement.new_stock) == (5200, 5000)
