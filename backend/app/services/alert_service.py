"""Alert generation and lifecycle.

Low-stock and expiration sweeps are idempotent: a supply never has more than
one unresolved alert of the same type family, so a sweep can be run as often
as needed (scheduler or on demand) without producing duplicates. Resolved
alerts are never re-opened; a new qualifying condition creates a new alert.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.clock import utc_now
from app.core.config import settings
from app.core.exceptions import InvalidOperation, NotFound
from app.db.session import SessionLocal
from app.models.alert import Alert, AlertSeverity, AlertType
from app.models.stock import InventoryBatch
from app.models.supply import Supply
from app.services.stock_service import batches_for_supply, current_stock

logger = logging.getLogger(__name__)

# Alert types that share one dedup slot per supply
EXPIRATION_FAMILY = (AlertType.EXPIRING_SOON, AlertType.EXPIRED)

DEFAULT_LIST_LIMIT = 50


def low_stock_severity(stock: int, reorder_point: int) -> AlertSeverity:
    if stock == 0:
        return AlertSeverity.CRITICAL
    if stock <= reorder_point * 0.5:
        return AlertSeverity.HIGH
    return AlertSeverity.MEDIUM


def expiration_severity(days_remaining: int, high_days: Optional[int] = None) -> AlertSeverity:
    high_days = settings.expiring_soon_high_days if high_days is None else high_days
    if days_remaining <= 0:
        return AlertSeverity.CRITICAL
    if days_remaining <= high_days:
        return AlertSeverity.HIGH
    return AlertSeverity.MEDIUM


def days_until(moment: datetime, now: datetime) -> int:
    """Whole days from now until moment, rounded up (negative once past)."""
    return math.ceil((moment - now) / timedelta(days=1))


def open_alert_exists(db: Session, supply_id: int, alert_types: Iterable[AlertType]) -> bool:
    """Whether the supply has an unresolved alert of any of the given types."""
    values = [AlertType(t).value for t in alert_types]
    return (
        db.query(Alert.id)
        .filter(
            Alert.supply_id == supply_id,
            Alert.alert_type.in_(values),
            Alert.is_resolved.is_(False),
        )
        .first()
        is not None
    )


def create_alert(
    db: Session,
    alert_type: AlertType,
    severity: AlertSeverity,
    title: str,
    message: str,
    supply_id: Optional[int] = None,
) -> Alert:
    """Add an alert and flush so later dedup checks in the session see it."""
    alert = Alert(
        alert_type=alert_type.value,
        supply_id=supply_id,
        title=title,
        message=message,
        severity=severity.value,
        is_read=False,
        is_resolved=False,
    )
    db.add(alert)
    db.flush()
    return alert


def create_reorder_alert(db: Session, supply: Supply, new_stock: int) -> Optional[Alert]:
    """Raise a reorder alert for a supply at or below its reorder point."""
    if open_alert_exists(db, supply.id, [AlertType.REORDER_NEEDED]):
        return None
    return create_alert(
        db,
        AlertType.REORDER_NEEDED,
        AlertSeverity.HIGH,
        "Reorder Required",
        f"{supply.name} has reached reorder point. Current stock: {new_stock}",
        supply_id=supply.id,
    )


def serialize_alert(alert: Alert) -> Dict[str, Any]:
    """Alert as a response dict, enriched with supply name and SKU."""
    supply = alert.supply
    return {
        "id": alert.id,
        "alert_type": alert.alert_type,
        "supply_id": alert.supply_id,
        "supply_name": supply.name if supply else None,
        "supply_sku": supply.sku if supply else None,
        "title": alert.title,
        "message": alert.message,
        "severity": alert.severity,
        "is_read": alert.is_read,
        "is_resolved": alert.is_resolved,
        "resolved_by": alert.resolved_by,
        "resolved_at": alert.resolved_at.isoformat() if alert.resolved_at else None,
        "created_at": alert.created_at.isoformat() if alert.created_at else None,
    }


class AlertService:
    """Alert sweeps and alert lifecycle operations for one session."""

    def __init__(self, db: Session):
        self.db = db

    def generate_low_stock_alerts(self) -> List[Alert]:
        """Create a low-stock alert for every active supply at or below its reorder point."""
        created: List[Alert] = []
        supplies = (
            self.db.query(Supply)
            .filter(Supply.is_active.is_(True))
            .order_by(Supply.id)
            .all()
        )
        for supply in supplies:
            stock = current_stock(batches_for_supply(self.db, supply.id))
            if stock > supply.reorder_point:
                continue
            if open_alert_exists(self.db, supply.id, [AlertType.LOW_STOCK]):
                continue

            if stock == 0:
                title = "Out of Stock"
                message = f"{supply.name} is out of stock. Reorder point: {supply.reorder_point}"
            else:
                title = "Low Stock Alert"
                message = (
                    f"{supply.name} is low in stock ({stock} remaining). "
                    f"Reorder point: {supply.reorder_point}"
                )
            created.append(create_alert(
                self.db,
                AlertType.LOW_STOCK,
                low_stock_severity(stock, supply.reorder_point),
                title,
                message,
                supply_id=supply.id,
            ))

        logger.info(f"Low-stock sweep created {len(created)} alert(s)")
        return created

    def generate_expiration_alerts(self, now: Optional[datetime] = None) -> List[Alert]:
        """Create expiring-soon / expired alerts for batches inside the expiration window."""
        now = now or utc_now()
        cutoff = now + timedelta(days=settings.expiration_window_days)
        created: List[Alert] = []

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
        for batch in batches:
            if open_alert_exists(self.db, batch.supply_id, EXPIRATION_FAMILY):
                continue

            name = batch.supply.name
            if batch.expiration_date < now:
                alert_type = AlertType.EXPIRED
                severity = AlertSeverity.CRITICAL
                title = "Expired Items"
                message = (
                    f"{name} batch {batch.batch_number} has expired. "
                    f"Quantity: {batch.quantity}"
                )
            else:
                days_remaining = days_until(batch.expiration_date, now)
                alert_type = AlertType.EXPIRING_SOON
                severity = expiration_severity(max(days_remaining, 1))
                title = "Items Expiring Soon"
                message = (
                    f"{name} batch {batch.batch_number} expires in {days_remaining} days. "
                    f"Quantity: {batch.quantity}"
                )
            created.append(create_alert(
                self.db, alert_type, severity, title, message, supply_id=batch.supply_id
            ))

        logger.info(f"Expiration sweep created {len(created)} alert(s)")
        return created

    def list_alerts(
        self,
        unread_only: bool = False,
        severity: Optional[AlertSeverity] = None,
        include_resolved: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Alert]:
        """Newest alerts first, optionally filtered."""
        query = self.db.query(Alert)
        if not include_resolved:
            query = query.filter(Alert.is_resolved.is_(False))
        if unread_only:
            query = query.filter(Alert.is_read.is_(False))
        if severity is not None:
            query = query.filter(Alert.severity == AlertSeverity(severity).value)
        return query.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit).all()

    def get_alert(self, alert_id: int) -> Alert:
        alert = self.db.get(Alert, alert_id)
        if alert is None:
            raise NotFound("Alert not found")
        return alert

    def mark_read(self, alert_id: int) -> Alert:
        alert = self.get_alert(alert_id)
        alert.is_read = True
        return alert

    def resolve(self, alert_id: int, user_id: int, now: Optional[datetime] = None) -> Alert:
        alert = self.get_alert(alert_id)
        if alert.is_resolved:
            raise InvalidOperation("Alert is already resolved")
        alert.is_resolved = True
        alert.is_read = True
        alert.resolved_by = user_id
        alert.resolved_at = now or utc_now()
        return alert


def run_alert_sweeps() -> int:
    """Run both sweeps in their own session. Used by the background scheduler."""
    db = SessionLocal()
    try:
        service = AlertService(db)
        created = service.generate_low_stock_alerts() + service.generate_expiration_alerts()
        db.commit()
        return len(created)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
