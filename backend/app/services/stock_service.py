"""Stock aggregation and FEFO consumption.

Stock on hand for a supply is always the sum of its batch quantities. The
functions here are pure over lists of batches so they can be used both on
ORM rows and in unit tests.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.clock import utc_now
from app.core.exceptions import InsufficientStock
from app.models.stock import InventoryBatch
from app.models.supply import Supply

logger = logging.getLogger(__name__)


class StockStatus(str, Enum):
    """Stock level classification of a supply."""

    CRITICAL = "critical"
    LOW = "low"
    NORMAL = "normal"


# Sort rank used by supply listings: critical first
STATUS_RANK = {StockStatus.CRITICAL: 0, StockStatus.LOW: 1, StockStatus.NORMAL: 2}


def current_stock(batches: Iterable[InventoryBatch]) -> int:
    """Sum of quantities over every batch, quarantined ones included."""
    return sum(b.quantity for b in batches)


def stock_value(batches: Iterable[InventoryBatch]) -> float:
    """Sum of quantity x unit cost over every batch."""
    return float(sum(b.quantity * (b.unit_cost or 0) for b in batches))


def classify_stock_status(stock: int, reorder_point: int, minimum_stock: int) -> StockStatus:
    """Classify a stock level against a supply's thresholds."""
    if stock <= reorder_point:
        return StockStatus.CRITICAL
    if stock <= minimum_stock:
        return StockStatus.LOW
    return StockStatus.NORMAL


def fefo_sort(batches: Iterable[InventoryBatch]) -> List[InventoryBatch]:
    """Order batches first-expiry-first-out; batches without an expiry go last.

    Ties keep their original (insertion) order.
    """
    return sorted(
        batches,
        key=lambda b: (b.expiration_date is None, b.expiration_date or datetime.max),
    )


def consume_fefo(
    batches: Sequence[InventoryBatch],
    quantity: int,
    supply_name: str = "",
) -> List[Tuple[InventoryBatch, int]]:
    """Decrement batches in FEFO order until ``quantity`` is taken.

    Returns (batch, taken) pairs for every batch touched. Raises
    InsufficientStock, leaving every batch unchanged, when the batches do not
    hold enough in total.
    """
    available = current_stock(batches)
    if quantity > available:
        raise InsufficientStock(supply_name, available, quantity)

    taken: List[Tuple[InventoryBatch, int]] = []
    remaining = quantity
    for batch in fefo_sort(batches):
        if remaining <= 0:
            break
        if batch.quantity <= 0:
            continue
        take = min(batch.quantity, remaining)
        batch.quantity -= take
        remaining -= take
        taken.append((batch, take))
    return taken


def expiring_batches(
    batches: Iterable[InventoryBatch],
    days: int,
    now: Optional[datetime] = None,
) -> List[InventoryBatch]:
    """Batches with stock that expire within ``days`` (already expired included)."""
    now = now or utc_now()
    cutoff = now + timedelta(days=days)
    return fefo_sort(
        b for b in batches
        if b.quantity > 0 and b.expiration_date is not None and b.expiration_date <= cutoff
    )


def batches_for_supply(db: Session, supply_id: int) -> List[InventoryBatch]:
    """All batches of a supply in insertion order."""
    return (
        db.query(InventoryBatch)
        .filter(InventoryBatch.supply_id == supply_id)
        .order_by(InventoryBatch.id)
        .all()
    )


def stock_for_supply(db: Session, supply: Supply) -> int:
    """Current stock of a supply read from its batches."""
    return current_stock(batches_for_supply(db, supply.id))
