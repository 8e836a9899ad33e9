"""Unit tests for stock aggregation, status classification and FEFO consumption."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import InsufficientStock
from app.models.stock import InventoryBatch
from app.services.stock_service import (
    StockStatus,
    classify_stock_status,
    consume_fefo,
    current_stock,
    expiring_batches,
    fefo_sort,
    stock_value,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _batch(quantity, expires_in_days=None, unit_cost="1.00", batch_number="B"):
    expiration = NOW + timedelta(days=expires_in_days) if expires_in_days is not None else None
    return InventoryBatch(
        batch_number=batch_number,
        quantity=quantity,
        expiration_date=expiration,
        unit_cost=Decimal(unit_cost),
        location="Storage Room A",
        is_quarantined=False,
    )


class TestAggregation:
    def test_current_stock_sums_all_batches(self):
        batches = [_batch(10), _batch(0), _batch(25, 5)]
        assert current_stock(batches) == 35

    def test_quarantined_batches_count(self):
        quarantined = _batch(7)
        quarantined.is_quarantined = True
        assert current_stock([_batch(3), quarantined]) == 10

    def test_no_batches_is_zero(self):
        assert current_stock([]) == 0
        assert stock_value([]) == 0

    def test_stock_value(self):
        assert stock_value([_batch(10, unit_cost="2.50"), _batch(4, unit_cost="0.25")]) == pytest.approx(26.0)


class TestClassification:
    @pytest.mark.parametrize(
        "stock,expected",
        [
            (0, StockStatus.CRITICAL),
            (50, StockStatus.CRITICAL),   # equal to reorder point
            (51, StockStatus.LOW),
            (100, StockStatus.LOW),       # equal to minimum stock
            (101, StockStatus.NORMAL),
        ],
    )
    def test_thresholds(self, stock, expected):
        assert classify_stock_status(stock, reorder_point=50, minimum_stock=100) == expected

    def test_reorder_point_wins_over_minimum(self):
        assert classify_stock_status(80, reorder_point=100, minimum_stock=50) == StockStatus.CRITICAL


class TestFefo:
    def test_sort_earliest_expiry_first_and_undated_last(self):
        never = _batch(5, None, batch_number="never")
        late = _batch(5, 40, batch_number="late")
        soon = _batch(5, 10, batch_number="soon")
        assert [b.batch_number for b in fefo_sort([never, late, soon])] == ["soon", "late", "never"]

    def test_small_dispense_touches_only_earliest_batch(self):
        soon, late, never = _batch(100, 10), _batch(100, 40), _batch(100, None)
        taken = consume_fefo([never, late, soon], 30)
        assert taken == [(soon, 30)]
        assert (soon.quantity, late.quantity, never.quantity) == (70, 100, 100)

    def test_dispense_spans_batches_in_order(self):
        soon, late, never = _batch(20, 10), _batch(30, 40), _batch(100, None)
        taken = consume_fefo([late, never, soon], 60)
        assert [(b.quantity, t) for b, t in taken] == [(0, 20), (0, 30), (90, 10)]
        assert current_stock([soon, late, never]) == 90

    def test_empty_batches_are_skipped(self):
        empty, full = _batch(0, 1), _batch(10, 5)
        assert consume_fefo([empty, full], 4) == [(full, 4)]

    def test_insufficient_stock_leaves_batches_untouched(self):
        a, b = _batch(5, 1), _batch(5, 2)
        with pytest.raises(InsufficientStock) as exc:
            consume_fefo([a, b], 11, "Gauze")
        assert exc.value.available == 10
        assert exc.value.requested == 11
        assert "Gauze" in exc.value.message
        assert (a.quantity, b.quantity) == (5, 5)

    def test_dispense_everything(self):
        batches = [_batch(3, 1), _batch(4)]
        consume_fefo(batches, 7)
        assert all(b.quantity == 0 for b in batches)


class TestExpiringBatches:
    def test_window_includes_expired_and_excludes_empty_and_undated(self):
        expired = _batch(5, -2, batch_number="expired")
        inside = _batch(5, 20, batch_number="inside")
        outside = _batch(5, 45, batch_number="outside")
        empty = _batch(0, 3, batch_number="empty")
        undated = _batch(5, None, batch_number="undated")
        result = expiring_batches([outside, inside, empty, undated, expired], 30, now=NOW)
        assert [b.batch_number for b in result] == ["expired", "inside"]
