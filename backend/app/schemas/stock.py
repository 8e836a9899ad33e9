"""Inventory schemas: batches, movements and barcode scans."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.clock import to_naive_utc
from app.models.stock import MovementType


class MovementCreate(BaseModel):
    """Stock movement request body."""

    supply_id: int
    movement_type: MovementType
    quantity: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=500)
    location: Optional[str] = Field(None, max_length=255)
    batch_id: Optional[int] = None
    notes: Optional[str] = None


class MovementResult(BaseModel):
    """Outcome of a recorded movement."""

    previous_quantity: int
    new_quantity: int
    movement_id: int


class BatchCreate(BaseModel):
    """Receive a new batch of a supply."""

    supply_id: int
    batch_number: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., gt=0)
    expiration_date: Optional[datetime] = None
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    location: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None

    @field_validator("expiration_date")
    @classmethod
    def normalize_expiration(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class BatchResponse(BaseModel):
    """Inventory batch response schema."""

    id: int
    supply_id: int
    batch_number: str
    quantity: int
    expiration_date: Optional[datetime] = None
    received_date: datetime
    unit_cost: float
    location: str
    is_quarantined: bool
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class BarcodeScanRequest(BaseModel):
    """Barcode scan request body."""

    barcode: str = Field(..., min_length=1, max_length=100)
    action: Literal["lookup", "receive", "dispense"] = "lookup"
    quantity: Optional[int] = Field(None, gt=0)
    location: Optional[str] = Field(None, max_length=255)
