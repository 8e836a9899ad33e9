"""Predictive reorder suggestions and inventory analytics.

Algorithms:
1. Trailing-window average daily usage from outbound movements
2. Days-until-stockout = floor(stock / average daily usage)
3. Reorder trigger: stockout inside supplier lead time plus a margin
4. Suggested quantity covers lead time plus a safety buffer
5. Usage anomalies: calendar days above a multiple of the period average
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.clock import utc_now
from app.core.config import settings
from app.core.exceptions import InvalidOperation
from app.models.stock import MovementType, StockMovement
from app.models.supply import Supply
from app.services.stock_service import (
    StockStatus,
    batches_for_supply,
    classify_stock_status,
    current_stock,
    stock_value,
)

logger = logging.getLogger(__name__)

PERIOD_DAYS: Dict[str, int] = {
    "week": 7,
    "month": 30,
    "quarter": 90,
}

URGENCY_RANK: Dict[str, int] = {
    "critical": 3,
    "high": 2,
    "medium": 1,
}


def round_half_up(value: float) -> int:
    """Round half up (2.5 -> 3), unlike Python's banker's rounding."""
    return math.floor(value + 0.5)


def reorder_urgency(days_until_stockout: int) -> str:
    if days_until_stockout <= 3:
        return "critical"
    if days_until_stockout <= 7:
        return "high"
    return "medium"


def compute_reorder_suggestion(
    stock: int,
    total_usage: int,
    delivery_days: int,
    reorder_quantity: int,
    window_days: Optional[int] = None,
    trigger_margin_days: Optional[int] = None,
    safety_buffer_days: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    """Decide whether a supply needs reordering.

    Returns None when there is no usage in the window or stockout is further
    away than the lead time plus the trigger margin.
    """
    window_days = window_days or settings.usage_window_days
    trigger_margin_days = (
        settings.reorder_trigger_margin_days if trigger_margin_days is None else trigger_margin_days
    )
    safety_buffer_days = (
        settings.reorder_safety_buffer_days if safety_buffer_days is None else safety_buffer_days
    )

    average = total_usage / window_days
    if average <= 0:
        return None

    days_until_stockout = math.floor(stock / average)
    if days_until_stockout > delivery_days + trigger_margin_days:
        return None

    suggested = max(reorder_quantity, math.ceil(average * (delivery_days + safety_buffer_days)))
    return {
        "average_daily_usage": round(average, 1),
        "days_until_stockout": days_until_stockout,
        "suggested_quantity": suggested,
        "urgency": reorder_urgency(days_until_stockout),
        "reason": (
            f"Based on {total_usage} units used in last {window_days} days "
            f"({average:.1f}/day average)"
        ),
    }


def detect_usage_anomalies(
    daily_usage: Dict[str, int],
    average_daily_usage: float,
    multiplier: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Flag days whose usage exceeds ``multiplier`` x the average daily usage."""
    multiplier = settings.anomaly_multiplier if multiplier is None else multiplier
    if average_daily_usage <= 0:
        return []

    threshold = average_daily_usage * multiplier
    anomalies = []
    for day, usage in sorted(daily_usage.items()):
        if usage > threshold:
            pct = (usage / average_daily_usage - 1) * 100
            anomalies.append({
                "type": "high_usage",
                "date": day,
                "value": usage,
                "threshold": round(threshold, 2),
                "message": (
                    f"Unusually high usage detected on {day}: {usage} units "
                    f"({pct:.0f}% above average)"
                ),
            })
    return anomalies


class ForecastingService:
    """Reorder suggestions and period analytics over one session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _outbound_since(self, since: datetime, supply_id: Optional[int] = None) -> List[StockMovement]:
        query = self.db.query(StockMovement).filter(
            StockMovement.movement_type == MovementType.OUT.value,
            StockMovement.ts >= since,
        )
        if supply_id is not None:
            query = query.filter(StockMovement.supply_id == supply_id)
        return query.all()

    def reorder_suggestions(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Suggest reorders for active supplies projected to run out soon."""
        now = now or utc_now()
        window_days = settings.usage_window_days
        since = now - timedelta(days=window_days)

        usage_by_supply: Dict[int, int] = defaultdict(int)
        for movement in self._outbound_since(since):
            usage_by_supply[movement.supply_id] += movement.quantity

        suggestions: List[Dict[str, Any]] = []
        supplies = self.db.query(Supply).filter(Supply.is_active.is_(True)).order_by(Supply.id).all()
        for supply in supplies:
            total_usage = usage_by_supply.get(supply.id, 0)
            if total_usage <= 0:
                continue

            stock = current_stock(batches_for_supply(self.db, supply.id))
            supplier = supply.supplier
            delivery_days = (
                supplier.average_delivery_time if supplier is not None else settings.default_delivery_days
            )

            suggestion = compute_reorder_suggestion(
                stock=stock,
                total_usage=total_usage,
                delivery_days=delivery_days,
                reorder_quantity=supply.reorder_quantity,
                window_days=window_days,
            )
            if suggestion is None:
                continue

            suggestions.append({
                "supply_id": supply.id,
                "supply_name": supply.name,
                "sku": supply.sku,
                "supplier_name": supplier.name if supplier is not None else None,
                "current_stock": stock,
                "delivery_days": delivery_days,
                "estimated_cost": round(suggestion["suggested_quantity"] * float(supply.unit_cost or 0), 2),
                **suggestion,
            })

        # Stable sort keeps supply order within an urgency level
        suggestions.sort(key=lambda s: URGENCY_RANK[s["urgency"]], reverse=True)
        logger.info(f"Generated {len(suggestions)} reorder suggestion(s)")
        return suggestions

    def inventory_analytics(self, period: str = "month", now: Optional[datetime] = None) -> Dict[str, Any]:
        """Movement totals, stock health and usage anomalies over a period."""
        if period not in PERIOD_DAYS:
            raise InvalidOperation(f"Unknown period '{period}'; expected one of {', '.join(PERIOD_DAYS)}")
        now = now or utc_now()
        period_days = PERIOD_DAYS[period]
        since = now - timedelta(days=period_days)

        movements = self.db.query(StockMovement).filter(StockMovement.ts >= since).all()
        total_received = sum(m.quantity for m in movements if m.movement_type == MovementType.IN.value)
        outbound = [m for m in movements if m.movement_type == MovementType.OUT.value]
        total_dispensed = sum(m.quantity for m in outbound)

        total_value = 0.0
        critical_count = 0
        low_count = 0
        supplies = self.db.query(Supply).filter(Supply.is_active.is_(True)).all()
        for supply in supplies:
            batches = batches_for_supply(self.db, supply.id)
            total_value += stock_value(batches)
            status = classify_stock_status(current_stock(batches), supply.reorder_point, supply.minimum_stock)
            if status == StockStatus.CRITICAL:
                critical_count += 1
            elif status == StockStatus.LOW:
                low_count += 1

        average_daily_usage = total_dispensed / period_days

        daily_usage: Dict[str, int] = defaultdict(int)
        for movement in outbound:
            daily_usage[movement.ts.date().isoformat()] += movement.quantity

        turnover_rate = (
            round(total_dispensed / total_value * 365 / period_days, 2) if total_value > 0 else 0
        )

        return {
            "period": period,
            "period_days": period_days,
            "total_movements": len(movements),
            "total_received": total_received,
            "total_dispensed": total_dispensed,
            "total_inventory_value": round(total_value, 2),
            "critical_supplies": critical_count,
            "low_stock_supplies": low_count,
            "average_daily_usage": round_half_up(average_daily_usage),
            "turnover_rate": turnover_rate,
            "anomalies": detect_usage_anomalies(dict(daily_usage), average_daily_usage),
        }


def usage_window_start(now: Optional[datetime] = None) -> date:
    """First calendar day of the trailing usage window."""
    now = now or utc_now()
    return (now - timedelta(days=settings.usage_window_days)).date()
