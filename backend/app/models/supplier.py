"""Supplier model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin


class Supplier(Base, TimestampMixin):
    """Supplier of medical supplies."""

    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    performance_rating: Mapped[Decimal] = mapped_column(Numeric(3, 1), default=3, nullable=False)
    average_delivery_time: Mapped[int] = mapped_column(Integer, default=7, nullable=False)  # days

    # Relationships
    supplies: Mapped[list["Supply"]] = relationship("Supply", back_populates="supplier")
