"""Stock models: InventoryBatch and StockMovement."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.clock import utc_now
from app.db.base import Base, TimestampMixin


class MovementType(str, Enum):
    """Kinds of stock movement."""

    IN = "in"  # Goods received
    OUT = "out"  # Dispensed / used
    ADJUSTMENT = "adjustment"  # Manual count correction (adds stock)
    EXPIRED = "expired"  # Written off as expired
    DAMAGED = "damaged"  # Written off as damaged
    TRANSFER = "transfer"  # Batch relocated, stock unchanged


# Movement types that take stock away
OUTBOUND_TYPES = frozenset({MovementType.OUT, MovementType.EXPIRED, MovementType.DAMAGED})


class InventoryBatch(Base, TimestampMixin):
    """A received lot of a supply. Batch quantities are the stock of record."""

    __tablename__ = "inventory_batches"

    id: Mapped[int] = mapped_column(primary_key=True)
    supply_id: Mapped[int] = mapped_column(
        ForeignKey("supplies.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    batch_number: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expiration_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    received_date: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    is_quarantined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    supply: Mapped["Supply"] = relationship("Supply", back_populates="batches")


class StockMovement(Base):
    """Ledger of all stock changes. Rows are never updated or deleted."""

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    ts: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    supply_id: Mapped[int] = mapped_column(
        ForeignKey("supplies.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    batch_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_batches.id", ondelete="SET NULL"), nullable=True, index=True
    )
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    supply: Mapped["Supply"] = relationship("Supply")
    batch: Mapped[Optional["InventoryBatch"]] = relationship("InventoryBatch")
    user: Mapped[Optional["User"]] = relationship("User")
