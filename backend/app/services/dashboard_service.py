"""Read-side views: supply listings, supply detail, dashboard and usage trends.

Every stock figure here is derived from batches through stock_service so the
listing, detail, dashboard and analytics views always agree.
"""

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.clock import utc_now
from app.core.config import settings
from app.core.exceptions import NotFound
from app.models.alert import Alert
from app.models.analytics import UsageAnalytics
from app.models.stock import InventoryBatch, StockMovement
from app.models.supply import Supply
from app.services.alert_service import serialize_alert
from app.services.forecasting_service import usage_window_start
from app.services.stock_service import (
    STATUS_RANK,
    StockStatus,
    batches_for_supply,
    classify_stock_status,
    current_stock,
    expiring_batches,
    fefo_sort,
    stock_value,
)

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_batch(batch: InventoryBatch) -> Dict[str, Any]:
    return {
        "id": batch.id,
        "supply_id": batch.supply_id,
        "batch_number": batch.batch_number,
        "quantity": batch.quantity,
        "expiration_date": _iso(batch.expiration_date),
        "received_date": _iso(batch.received_date),
        "unit_cost": float(batch.unit_cost or 0),
        "location": batch.location,
        "is_quarantined": batch.is_quarantined,
        "notes": batch.notes,
    }


def serialize_movement(movement: StockMovement) -> Dict[str, Any]:
    return {
        "id": movement.id,
        "ts": _iso(movement.ts),
        "supply_id": movement.supply_id,
        "batch_id": movement.batch_id,
        "movement_type": movement.movement_type,
        "quantity": movement.quantity,
        "previous_stock": movement.previous_stock,
        "new_stock": movement.new_stock,
        "reason": movement.reason,
        "location": movement.location,
        "notes": movement.notes,
        "user_id": movement.user_id,
    }


def serialize_supply(supply: Supply) -> Dict[str, Any]:
    return {
        "id": supply.id,
        "name": supply.name,
        "description": supply.description,
        "category_id": supply.category_id,
        "supplier_id": supply.supplier_id,
        "sku": supply.sku,
        "barcode": supply.barcode,
        "unit_of_measure": supply.unit_of_measure,
        "unit_cost": float(supply.unit_cost or 0),
        "minimum_stock": supply.minimum_stock,
        "maximum_stock": supply.maximum_stock,
        "reorder_point": supply.reorder_point,
        "reorder_quantity": supply.reorder_quantity,
        "is_controlled_substance": supply.is_controlled_substance,
        "requires_refrigeration": supply.requires_refrigeration,
        "shelf_life_days": supply.shelf_life_days,
        "is_active": supply.is_active,
        "created_at": _iso(supply.created_at),
        "updated_at": _iso(supply.updated_at),
    }


class DashboardService:
    """Aggregated read views for one session."""

    def __init__(self, db: Session):
        self.db = db

    def list_supplies(
        self,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        low_stock_only: bool = False,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Active supplies with stock figures, most urgent first."""
        now = now or utc_now()
        query = self.db.query(Supply).filter(Supply.is_active.is_(True))
        if category_id is not None:
            query = query.filter(Supply.category_id == category_id)
        if search:
            query = query.filter(Supply.name.ilike(f"%{search}%"))

        items = []
        for supply in query.all():
            batches = batches_for_supply(self.db, supply.id)
            stock = current_stock(batches)
            status = classify_stock_status(stock, supply.reorder_point, supply.minimum_stock)
            if low_stock_only and status == StockStatus.NORMAL:
                continue

            expiring = expiring_batches(batches, settings.expiration_window_days, now)
            item = serialize_supply(supply)
            item.update({
                "current_stock": stock,
                "stock_status": status.value,
                "category_name": supply.category.name if supply.category else None,
                "supplier_name": supply.supplier.name if supply.supplier else None,
                "expiring_quantity": sum(b.quantity for b in expiring),
                "next_expiration": _iso(expiring[0].expiration_date) if expiring else None,
            })
            items.append(item)

        items.sort(key=lambda i: (STATUS_RANK[StockStatus(i["stock_status"])], i["name"].lower()))
        return items

    def supply_detail(self, supply_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """One supply with its batches, recent movements and usage analytics."""
        now = now or utc_now()
        supply = self.db.get(Supply, supply_id)
        if supply is None:
            raise NotFound("Supply not found")

        batches = batches_for_supply(self.db, supply.id)
        stock = current_stock(batches)
        movements = (
            self.db.query(StockMovement)
            .filter(StockMovement.supply_id == supply.id)
            .order_by(StockMovement.ts.desc(), StockMovement.id.desc())
            .limit(20)
            .all()
        )

        used = (
            self.db.query(func.coalesce(func.sum(UsageAnalytics.quantity_used), 0))
            .filter(
                UsageAnalytics.supply_id == supply.id,
                UsageAnalytics.date >= usage_window_start(now),
            )
            .scalar()
        )
        average_daily_usage = int(used) / settings.usage_window_days
        days_until_stockout = (
            math.floor(stock / average_daily_usage) if average_daily_usage > 0 else None
        )

        detail = serialize_supply(supply)
        detail.update({
            "category_name": supply.category.name if supply.category else None,
            "supplier_name": supply.supplier.name if supply.supplier else None,
            "batches": [serialize_batch(b) for b in fefo_sort(batches)],
            "recent_movements": [serialize_movement(m) for m in movements],
            "analytics": {
                "current_stock": stock,
                "total_value": round(stock_value(batches), 2),
                "average_daily_usage": round(average_daily_usage, 1),
                "days_until_stockout": days_until_stockout,
                "stock_status": classify_stock_status(
                    stock, supply.reorder_point, supply.minimum_stock
                ).value,
            },
        })
        return detail

    def expiring_items(self, days: Optional[int] = None, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Batches with stock expiring within ``days``, earliest first."""
        now = now or utc_now()
        days = settings.expiration_window_days if days is None else days
        cutoff = now + timedelta(days=days)
        batches = (
            self.db.query(InventoryBatch)
            .filter(
                InventoryBatch.quantity > 0,
                InventoryBatch.expiration_date.isnot(None),
                InventoryBatch.expiration_date <= cutoff,
            )
            .order_by(InventoryBatch.expiration_date, InventoryBatch.id)
            .all()
        )

        items = []
        for batch in batches:
            item = serialize_batch(batch)
            item.update({
                "supply_name": batch.supply.name,
                "sku": batch.supply.sku,
                "days_until_expiration": math.ceil((batch.expiration_date - now) / timedelta(days=1)),
                "is_expired": batch.expiration_date < now,
                "value": round(batch.quantity * float(batch.unit_cost or 0), 2),
            })
            items.append(item)
        return items

    def dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Headline figures, newest open alerts and newest movements."""
        now = now or utc_now()
        supplies = self.db.query(Supply).filter(Supply.is_active.is_(True)).all()

        low = critical = expiring = 0
        total_value = 0.0
        for supply in supplies:
            batches = batches_for_supply(self.db, supply.id)
            status = classify_stock_status(current_stock(batches), supply.reorder_point, supply.minimum_stock)
            if status == StockStatus.CRITICAL:
                critical += 1
            elif status == StockStatus.LOW:
                low += 1
            total_value += stock_value(batches)
            if expiring_batches(batches, settings.expiration_window_days, now):
                expiring += 1

        alerts = (
            self.db.query(Alert)
            .filter(Alert.is_resolved.is_(False))
            .order_by(Alert.created_at.desc(), Alert.id.desc())
            .limit(10)
            .all()
        )
        movements = (
            self.db.query(StockMovement)
            .order_by(StockMovement.ts.desc(), StockMovement.id.desc())
            .limit(10)
            .all()
        )
        recent_movements = []
        for movement in movements:
            item = serialize_movement(movement)
            item["supply_name"] = movement.supply.name
            item["user_name"] = (movement.user.name or movement.user.email) if movement.user else None
            recent_movements.append(item)

        return {
            "total_supplies": len(supplies),
            "low_stock_count": low,
            "critical_stock_count": critical,
            "total_value": round(total_value, 2),
            "expiring_supplies_count": expiring,
            "recent_alerts": [serialize_alert(a) for a in alerts],
            "recent_movements": recent_movements,
        }

    def usage_trends(
        self,
        days: int = 30,
        supply_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Daily usage totals over the last ``days`` days, oldest first."""
        now = now or utc_now()
        since = (now - timedelta(days=days)).date()
        query = self.db.query(UsageAnalytics).filter(UsageAnalytics.date >= since)
        if supply_id is not None:
            query = query.filter(UsageAnalytics.supply_id == supply_id)

        totals: Dict[str, int] = defaultdict(int)
        for row in query.all():
            totals[row.date.isoformat()] += row.quantity_used
        return [{"date": day, "quantity_used": qty} for day, qty in sorted(totals.items())]
