"""SQLAlchemy models."""

from app.models.user import User, UserRole
from app.models.category import Category
from app.models.supplier import Supplier
from app.models.supply import Supply
from app.models.stock import InventoryBatch, MovementType, OUTBOUND_TYPES, StockMovement
from app.models.alert import Alert, AlertSeverity, AlertType
from app.models.analytics import UsageAnalytics
from app.models.audit import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Category",
    "Supplier",
    "Supply",
    "InventoryBatch",
    "MovementType",
    "OUTBOUND_TYPES",
    "StockMovement",
    "Alert",
    "AlertSeverity",
    "AlertType",
    "UsageAnalytics",
    "AuditLog",
]
