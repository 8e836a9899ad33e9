"""Tests for reorder suggestions, inventory analytics and usage anomalies."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.core.clock import utc_now
from app.core.exceptions import InvalidOperation
from app.models.stock import MovementType, StockMovement
from app.services.forecasting_service import (
    ForecastingService,
    compute_reorder_suggestion,
    detect_usage_anomalies,
    round_half_up,
    reorder_urgency,
)
from app.services.movement_service import MovementService


def _usage(db_session, supply, quantity, days_ago):
    """Insert an outbound ledger entry in the past."""
    db_session.add(StockMovement(
        ts=utc_now() - timedelta(days=days_ago),
        supply_id=supply.id,
        movement_type=MovementType.OUT.value,
        quantity=quantity,
        previous_stock=0,
        new_stock=0,
        reason="Ward request",
    ))
    db_session.commit()


class TestComputeSuggestion:
    def test_suggests_when_stockout_within_lead_time(self):
        s = compute_reorder_suggestion(stock=50, total_usage=300, delivery_days=5, reorder_quantity=100)
        assert s["average_daily_usage"] == 10.0
        assert s["days_until_stockout"] == 5
        assert s["urgency"] == "high"
        assert s["suggested_quantity"] == 190
        assert s["reason"] == "Based on 300 units used in last 30 days (10.0/day average)"

    def test_reorder_quantity_is_a_floor(self):
        s = compute_reorder_suggestion(stock=50, total_usage=300, delivery_days=5, reorder_quantity=500)
        assert s["suggested_quantity"] == 500

    def test_no_usage_means_no_suggestion(self):
        assert compute_reorder_suggestion(stock=0, total_usage=0, delivery_days=5, reorder_quantity=10) is None

    def test_distant_stockout_means_no_suggestion(self):
        # 10/day, 110 units -> 11 days > 5 + 5
        assert compute_reorder_suggestion(stock=110, total_usage=300, delivery_days=5, reorder_quantity=10) is None
        assert compute_reorder_suggestion(stock=100, total_usage=300, delivery_days=5, reorder_quantity=10) is not None

    @pytest.mark.parametrize("days,urgency", [(0, "critical"), (3, "critical"), (4, "high"), (7, "high"), (8, "medium")])
    def test_urgency(self, days, urgency):
        assert reorder_urgency(days) == urgency


class TestReorderSuggestions:
    def test_suggestion_for_fast_moving_supply(self, db_session, make_supply, make_batch):
        supply = make_supply(name="Gloves", reorder_quantity=100, unit_cost=Decimal("0.25"))
        make_batch(supply, 50)
        _usage(db_session, supply, 200, days_ago=20)
        _usage(db_session, supply, 100, days_ago=2)
        _usage(db_session, supply, 999, days_ago=45)  # outside the window

        suggestions = ForecastingService(db_session).reorder_suggestions()
        assert len(suggestions) == 1
        s = suggestions[0]
        assert s["supply_id"] == supply.id
        assert s["urgency"] == "high"
        assert s["days_until_stockout"] == 5
        assert s["suggested_quantity"] == 190
        assert s["delivery_days"] == 5
        assert s["supplier_name"] == "MedSupply Corp"
        assert s["estimated_cost"] == pytest.approx(47.5)

    def test_missing_supplier_uses_default_delivery(self, db_session, make_supply, make_batch):
        supply = make_supply(supplier_id=None, reorder_quantity=0)
        make_batch(supply, 100)
        _usage(db_session, supply, 300, days_ago=1)  # 10/day, 10 days left <= 7 + 5
        s = ForecastingService(db_session).reorder_suggestions()[0]
        assert s["delivery_days"] == 7
        assert s["supplier_name"] is None
        assert s["suggested_quantity"] == 210
        assert s["urgency"] == "medium"

    def test_sorted_by_urgency(self, db_session, make_supply, make_batch):
        medium = make_supply(name="Medium")
        critical = make_supply(name="Critical")
        make_batch(medium, 90)
        make_batch(critical, 20)
        _usage(db_session, medium, 300, days_ago=1)
        _usage(db_session, critical, 300, days_ago=1)

        names = [s["supply_name"] for s in ForecastingService(db_session).reorder_suggestions()]
        assert names == ["Critical", "Medium"]

    def test_route(self, client, viewer_headers, db_session, make_supply, make_batch):
        supply = make_supply()
        make_batch(supply, 10)
        _usage(db_session, supply, 300, days_ago=1)
        resp = client.get("/api/v1/analytics/reorder-suggestions", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.json()["total"] == 1
        assert resp.json()["items"][0]["urgency"] == "critical"


class TestAnomalies:
    def test_high_usage_day(self):
        anomalies = detect_usage_anomalies({"2026-01-01": 100, "2026-01-02": 5}, 10.0)
        assert anomalies == [{
            "type": "high_usage",
            "date": "2026-01-01",
            "value": 100,
            "threshold": 20.0,
            "message": "Unusually high usage detected on 2026-01-01: 100 units (900% above average)",
        }]

    def test_usage_equal_to_threshold_is_not_anomalous(self):
        assert detect_usage_anomalies({"2026-01-01": 20}, 10.0) == []

    def test_no_usage_no_anomalies(self):
        assert detect_usage_anomalies({}, 0) == []

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(0.5) == 1


class TestInventoryAnalytics:
    def test_month(self, db_session, make_supply):
        supply = make_supply(unit_cost=Decimal("2.00"), reorder_point=10, minimum_stock=100)
        service = MovementService(db_session)
        now = datetime(2026, 3, 15, 12, 0, 0)
        service.record_movement(supply.id, MovementType.IN, 100, "Delivery", location="Dock", now=now)
        service.record_movement(supply.id, MovementType.OUT, 60, "Ward request", now=now)
        db_session.commit()

        result = ForecastingService(db_session).inventory_analytics("month", now=now + timedelta(hours=1))
        assert result["period_days"] == 30
        assert result["total_movements"] == 2
        assert result["total_received"] == 100
        assert result["total_dispensed"] == 60
        assert result["total_inventory_value"] == pytest.approx(80.0)
        assert result["low_stock_supplies"] == 1
        assert result["critical_supplies"] == 0
        assert result["average_daily_usage"] == 2
        assert result["turnover_rate"] > 0
        assert len(result["anomalies"]) == 1
        assert result["anomalies"][0]["date"] == "2026-03-15"

    def test_week_excludes_older_movements(self, db_session, make_supply):
        supply = make_supply()
        service = MovementService(db_session)
        now = datetime(2026, 3, 15, 12, 0, 0)
        service.record_movement(supply.id, MovementType.IN, 100, "Delivery", location="Dock", now=now - timedelta(days=10))
        db_session.commit()

        result = ForecastingService(db_session).inventory_analytics("week", now=now)
        assert result["total_movements"] == 0
        assert result["turnover_rate"] == 0
        assert result["anomalies"] == []

    def test_unknown_period(self, db_session):
        with pytest.raises(InvalidOperation):
            ForecastingService(db_session).inventory_analytics("decade")

    def test_route_rejects_unknown_period(self, client, viewer_headers):
        assert client.get("/api/v1/analytics/inventory?period=decade", headers=viewer_headers).status_code == 422
        assert client.get("/api/v1/analytics/inventory?period=week", headers=viewer_headers).status_code == 200
