"""Supplier schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class SupplierBase(BaseModel):
    """Base supplier schema."""

    name: str = Field(..., min_length=1, max_length=255)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)


class SupplierCreate(SupplierBase):
    """Supplier creation schema."""

    performance_rating: Decimal = Field(Decimal("3"), ge=0, le=5)
    average_delivery_time: int = Field(7, ge=0)


class SupplierUpdate(BaseModel):
    """Supplier update schema."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    performance_rating: Optional[Decimal] = Field(None, ge=0, le=5)
    average_delivery_time: Optional[int] = Field(None, ge=0)

    @field_validator("name", "is_active", "performance_rating", "average_delivery_time")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class SupplierResponse(SupplierBase):
    """Supplier response schema."""

    id: int
    is_active: bool
    performance_rating: float
    average_delivery_time: int
    supply_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
