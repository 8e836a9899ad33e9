"""Usage analytics model."""

from __future__ import annotations

from datetime import date as date_type

from sqlalchemy import Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class UsageAnalytics(Base, TimestampMixin):
    """Quantity of a supply dispensed on one calendar day."""

    __tablename__ = "usage_analytics"
    __table_args__ = (
        UniqueConstraint("supply_id", "date", name="uq_usage_supply_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    supply_id: Mapped[int] = mapped_column(
        ForeignKey("supplies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    quantity_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
