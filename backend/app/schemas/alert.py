"""Alert schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.alert import AlertSeverity, AlertType


class AlertResponse(BaseModel):
    """Alert response schema."""

    id: int
    alert_type: AlertType
    supply_id: Optional[int] = None
    supply_name: Optional[str] = None
    supply_sku: Optional[str] = None
    title: str
    message: str
    severity: AlertSeverity
    is_read: bool
    is_resolved: bool
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SweepResult(BaseModel):
    """Alerts created by one sweep run."""

    low_stock: list[AlertResponse]
    expiration: list[AlertResponse]
    created: int
