"""Category schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CategoryCreate(BaseModel):
    """Category creation schema."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)


class CategoryUpdate(BaseModel):
    """Category update schema."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)

    @field_validator("name")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class CategoryResponse(BaseModel):
    """Category response schema."""

    id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    supply_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}
