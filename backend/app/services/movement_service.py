"""Stock movement recording.

Batches are the stock of record. Every movement adjusts batches first and
then appends a ledger entry snapshotting the supply's total stock before and
after, so the ledger always agrees with the batches it describes.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.clock import utc_now
from app.core.exceptions import InsufficientStock, InvalidOperation, NotFound
from app.models.analytics import UsageAnalytics
from app.models.stock import OUTBOUND_TYPES, InventoryBatch, MovementType, StockMovement
from app.models.supply import Supply
from app.services import audit_service
from app.services.alert_service import create_reorder_alert
from app.services.stock_service import (
    batches_for_supply,
    consume_fefo,
    current_stock,
    fefo_sort,
)

logger = logging.getLogger(__name__)

INBOUND_TYPES = frozenset({MovementType.IN, MovementType.ADJUSTMENT})

SCAN_ACTIONS = {
    "receive": MovementType.IN,
    "dispense": MovementType.OUT,
}


class MovementService:
    """Records stock movements, batch receipts and barcode scans."""

    def __init__(self, db: Session):
        self.db = db

    def _get_supply(self, supply_id: int) -> Supply:
        supply = self.db.get(Supply, supply_id)
        if supply is None:
            raise NotFound("Supply not found")
        return supply

    def _get_batch(self, supply: Supply, batch_id: int) -> InventoryBatch:
        batch = self.db.get(InventoryBatch, batch_id)
        if batch is None or batch.supply_id != supply.id:
            raise NotFound("Batch not found")
        return batch

    def record_movement(
        self,
        supply_id: int,
        movement_type: MovementType,
        quantity: int,
        reason: str,
        location: Optional[str] = None,
        batch_id: Optional[int] = None,
        notes: Optional[str] = None,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """Apply a movement to the supply's batches and append it to the ledger.

        Returns:
            Dict with previous_quantity, new_quantity and movement_id.
        """
        now = now or utc_now()
        movement_type = MovementType(movement_type)
        if quantity <= 0:
            raise InvalidOperation("Quantity must be greater than zero")

        supply = self._get_supply(supply_id)
        batches = batches_for_supply(self.db, supply.id)
        previous = current_stock(batches)
        batch = self._get_batch(supply, batch_id) if batch_id is not None else None

        if movement_type in INBOUND_TYPES:
            new = previous + quantity
            if batch is not None:
                batch.quantity += quantity
            else:
                if not location:
                    raise InvalidOperation("Location is required to receive stock")
                prefix = "RCV" if movement_type == MovementType.IN else "ADJ"
                batch = InventoryBatch(
                    supply_id=supply.id,
                    batch_number=f"{prefix}-{now:%Y%m%d%H%M%S}",
                    quantity=quantity,
                    received_date=now,
                    unit_cost=supply.unit_cost,
                    location=location,
                )
                self.db.add(batch)
                self.db.flush()

        elif movement_type in OUTBOUND_TYPES:
            new = previous - quantity
            if new < 0:
                raise InsufficientStock(supply.name, previous, quantity)
            if batch is not None:
                if batch.quantity < quantity:
                    raise InsufficientStock(supply.name, batch.quantity, quantity)
                batch.quantity -= quantity
            else:
                taken = consume_fefo(batches, quantity, supply.name)
                if len(taken) == 1:
                    batch = taken[0][0]

        else:  # transfer
            if batch is None:
                raise InvalidOperation("Transfer requires a batch")
            if not location:
                raise InvalidOperation("Transfer requires a destination location")
            if batch.quantity < quantity:
                raise InsufficientStock(supply.name, batch.quantity, quantity)
            batch.location = location
            new = previous

        movement = StockMovement(
            ts=now,
            supply_id=supply.id,
            batch_id=batch.id if batch is not None else None,
            movement_type=movement_type.value,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new,
            reason=reason,
            location=location,
            notes=notes,
            user_id=user_id,
        )
        self.db.add(movement)
        self.db.flush()

        if movement_type == MovementType.OUT:
            self._record_usage(supply.id, quantity, now)

        audit_service.log_action(
            action="STOCK_MOVEMENT",
            entity_type="supply",
            entity_id=supply.id,
            user_id=user_id,
            old_values={"stock": previous},
            new_values={
                "stock": new,
                "movement_type": movement_type.value,
                "quantity": quantity,
                "movement_id": movement.id,
            },
            db=self.db,
        )

        if new <= supply.reorder_point:
            create_reorder_alert(self.db, supply, new)

        logger.info(
            f"Stock movement {movement_type.value} x{quantity} on supply {supply.id}: "
            f"{previous} -> {new}"
        )
        return {
            "previous_quantity": previous,
            "new_quantity": new,
            "movement_id": movement.id,
        }

    def _record_usage(self, supply_id: int, quantity: int, now: datetime) -> None:
        """Add dispensed quantity to the supply's usage row for the day."""
        day = now.date()
        row = (
            self.db.query(UsageAnalytics)
            .filter(UsageAnalytics.supply_id == supply_id, UsageAnalytics.date == day)
            .first()
        )
        if row is None:
            self.db.add(UsageAnalytics(supply_id=supply_id, date=day, quantity_used=quantity))
            self.db.flush()
        else:
            row.quantity_used += quantity

    def add_batch(
        self,
        supply_id: int,
        batch_number: str,
        quantity: int,
        location: str,
        expiration_date: Optional[datetime] = None,
        unit_cost: Optional[Decimal] = None,
        notes: Optional[str] = None,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> InventoryBatch:
        """Receive a new batch and record the matching inbound movement."""
        now = now or utc_now()
        if quantity <= 0:
            raise InvalidOperation("Quantity must be greater than zero")

        supply = self._get_supply(supply_id)
        previous = current_stock(batches_for_supply(self.db, supply.id))

        batch = InventoryBatch(
            supply_id=supply.id,
            batch_number=batch_number,
            quantity=quantity,
            expiration_date=expiration_date,
            received_date=now,
            unit_cost=unit_cost if unit_cost is not None else supply.unit_cost,
            location=location,
            notes=notes,
        )
        self.db.add(batch)
        self.db.flush()

        new = previous + quantity
        movement = StockMovement(
            ts=now,
            supply_id=supply.id,
            batch_id=batch.id,
            movement_type=MovementType.IN.value,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new,
            reason=f"Batch {batch_number} received",
            location=location,
            notes=notes,
            user_id=user_id,
        )
        self.db.add(movement)
        self.db.flush()

        audit_service.log_action(
            action="CREATE_BATCH",
            entity_type="inventory_batch",
            entity_id=batch.id,
            user_id=user_id,
            new_values={
                "supply_id": supply.id,
                "batch_number": batch_number,
                "quantity": quantity,
                "expiration_date": expiration_date,
                "location": location,
            },
            db=self.db,
        )

        if new <= supply.reorder_point:
            create_reorder_alert(self.db, supply, new)

        logger.info(f"Received batch {batch_number} of supply {supply.id} (x{quantity})")
        return batch

    def scan_barcode(
        self,
        barcode: str,
        action: str = "lookup",
        quantity: Optional[int] = None,
        location: Optional[str] = None,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Look up a supply by barcode, or receive/dispense stock against it."""
        supply = self.db.query(Supply).filter(Supply.barcode == barcode).first()
        if supply is None:
            raise NotFound("Supply not found for barcode")

        if action == "lookup":
            batches = batches_for_supply(self.db, supply.id)
            return {
                "supply": supply,
                "current_stock": current_stock(batches),
                "batches": fefo_sort(batches)[:5],
            }

        if action not in SCAN_ACTIONS:
            raise InvalidOperation(f"Unknown scan action '{action}'")
        if not quantity or not location:
            raise InvalidOperation("Quantity and location are required for receive/dispense")

        result = self.record_movement(
            supply_id=supply.id,
            movement_type=SCAN_ACTIONS[action],
            quantity=quantity,
            reason=f"Barcode scan - {action}",
            location=location,
            user_id=user_id,
            now=now,
        )
        return {
            "success": True,
            "supply": supply,
            "previous_stock": result["previous_quantity"],
            "new_stock": result["new_quantity"],
            "action": action,
        }

    def movement_history(
        self,
        supply_id: Optional[int] = None,
        movement_type: Optional[MovementType] = None,
        limit: int = 50,
    ) -> List[StockMovement]:
        """Newest ledger entries first."""
        query = self.db.query(StockMovement)
        if supply_id is not None:
            query = query.filter(StockMovement.supply_id == supply_id)
        if movement_type is not None:
            query = query.filter(StockMovement.movement_type == MovementType(movement_type).value)
        return query.order_by(StockMovement.ts.desc(), StockMovement.id.desc()).limit(limit).all()
