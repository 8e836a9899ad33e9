"""Supply schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class SupplyBase(BaseModel):
    """Base supply schema."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: int
    supplier_id: Optional[int] = None
    sku: str = Field(..., min_length=1, max_length=100)
    barcode: Optional[str] = Field(None, max_length=100)
    unit_of_measure: str = Field("each", min_length=1, max_length=50)
    unit_cost: Decimal = Field(Decimal("0"), ge=0)
    minimum_stock: int = Field(0, ge=0)
    maximum_stock: int = Field(0, ge=0)
    reorder_point: int = Field(0, ge=0)
    reorder_quantity: int = Field(0, ge=0)
    is_controlled_substance: bool = False
    requires_refrigeration: bool = False
    shelf_life_days: Optional[int] = Field(None, gt=0)


class SupplyCreate(SupplyBase):
    """Supply creation schema."""

    @model_validator(mode="after")
    def check_stock_bounds(self) -> "SupplyCreate":
        if self.maximum_stock and self.maximum_stock < self.minimum_stock:
            raise ValueError("maximum_stock must not be below minimum_stock")
        if self.barcode == "":
            self.barcode = None
        return self


class SupplyUpdate(BaseModel):
    """Supply update schema."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    sku: Optional[str] = Field(None, min_length=1, max_length=100)
    barcode: Optional[str] = Field(None, max_length=100)
    unit_of_measure: Optional[str] = Field(None, min_length=1, max_length=50)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    maximum_stock: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    is_controlled_substance: Optional[bool] = None
    requires_refrigeration: Optional[bool] = None
    shelf_life_days: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None

    @field_validator(
        "name", "category_id", "sku", "unit_of_measure", "unit_cost",
        "minimum_stock", "maximum_stock", "reorder_point", "reorder_quantity",
        "is_controlled_substance", "requires_refrigeration", "is_active",
    )
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v

    @model_validator(mode="after")
    def check_stock_bounds(self) -> "SupplyUpdate":
        if (
            self.minimum_stock is not None
            and self.maximum_stock
            and self.maximum_stock < self.minimum_stock
        ):
            raise ValueError("maximum_stock must not be below minimum_stock")
        return self
