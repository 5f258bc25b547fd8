"""
Unit tests for burn rate analysis.

Tests hourly rates, projections, trend detection and sparkline bucketing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cc_guard.core.billing_block import compute_blocks
from cc_guard.core.burn_rate import (
    SPARKLINE_BUCKETS,
    Trend,
    calculate_burn_rate,
    calculate_token_burn_rate,
)
from cc_guard.storage.models import UsageEntry


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 2, 17, hour, minute, tzinfo=timezone.utc)


def make_entry(timestamp: datetime, cost: float = 0.1, tokens: int = 1000) -> UsageEntry:
    return UsageEntry(
        timestamp=timestamp,
        session_id="sess-1",
        request_id="",
        model="claude-sonnet-4-20250514",
        input_tokens=tokens,
        output_tokens=0,
        cache_creation_tokens=0,
        cache_write_5m_tokens=0,
        cache_write_1h_tokens=0,
        cache_read_tokens=0,
        cost_usd=cost,
        source="/logs/proj/sess-1.jsonl",
    )


def block_for(entries, now):
    return compute_blocks(entries, now)[-1]


class TestCostBurnRate:
    """Test cost rate statistics."""

    def test_hourly_rate_and_projection(self):
        """Verify the projection extrapolates the block average."""
        now = at(11)
        block = block_for([make_entry(at(10), 1.0), make_entry(at(10, 30), 1.0)], now)
        rate = calculate_burn_rate(block, now)

        assert rate.cost_per_hour == pytest.approx(2.0)
        assert rate.recent_cost_per_hour == 0.0
        # $2 spent + $2/h for the remaining 4h
        assert rate.projected_block_total == pytest.approx(10.0)

    def test_elapsed_time_floor(self):
        """Verify rates stay finite at the very start of a block."""
        now = at(10)
        block = block_for([make_entry(at(10), 0.01)], now)
        rate = calculate_burn_rate(block, now)
        assert rate.cost_per_hour == pytest.approx(1.0)

    def test_young_block_recent_rate(self):
        """Verify the recent window shrinks to the elapsed time in a new block."""
        now = at(10, 6)
        entries = [make_entry(at(10, 1), 0.2, tokens=600), make_entry(at(10, 4), 0.1, tokens=300)]
        block = block_for(entries, now)
        cost_rate = calculate_burn_rate(block, now)
        token_rate = calculate_token_burn_rate(block, now)

        # 6 minutes in: $0.30 over 0.1h, every entry is recent
        assert cost_rate.cost_per_hour == pytest.approx(3.0)
        assert cost_rate.recent_cost_per_hour == pytest.approx(cost_rate.cost_per_hour)
        assert token_rate.tokens_per_hour == pytest.approx(9000)
        assert token_rate.recent_tokens_per_hour == pytest.approx(9000)

    def test_recent_rate_floor_at_block_start(self):
        now = at(10)
        block = block_for([make_entry(at(10), 0.01)], now)
        assert calculate_burn_rate(block, now).recent_cost_per_hour == pytest.approx(1.0)

    def test_projection_at_block_end(self):
        """Verify no extrapolation once the block has ended."""
        block = block_for([make_entry(at(10), 1.0)], at(11))
        rate = calculate_burn_rate(block, at(15, 30))
        assert rate.projected_block_total == pytest.approx(1.0)

    def test_rising_trend(self):
        entries = [make_entry(at(10), 0.1), make_entry(at(10, 30), 0.1), make_entry(at(10, 55), 2.0)]
        block = block_for(entries, at(11))
        assert calculate_burn_rate(block, at(11)).trend == Trend.RISING

    def test_falling_trend(self):
        entries = [make_entry(at(10)), make_entry(at(10, 10)), make_entry(at(10, 20))]
        block = block_for(entries, at(12))
        assert calculate_burn_rate(block, at(12)).trend == Trend.FALLING

    def test_stable_trend(self):
        """Verify an even spend rate is stable."""
        entries = [make_entry(at(10, 5 * i)) for i in range(12)]
        block = block_for(entries, at(11))
        rate = calculate_burn_rate(block, at(11))

        assert rate.cost_per_hour == pytest.approx(1.2)
        assert rate.recent_cost_per_hour == pytest.approx(1.2)
        assert rate.trend == Trend.STABLE

    def test_too_few_entries_is_stable(self):
        entries = [make_entry(at(10), 0.01), make_entry(at(10, 58), 5.0)]
        block = block_for(entries, at(11))
        assert calculate_burn_rate(block, at(11)).trend == Trend.STABLE

    def test_too_early_is_stable(self):
        entries = [make_entry(at(10)), make_entry(at(10)), make_entry(at(10, 1), 3.0)]
        block = block_for(entries, at(10, 2))
        assert calculate_burn_rate(block, at(10, 2)).trend == Trend.STABLE


class TestSparkline:
    """Test sparkline bucketing."""

    def test_bucket_count(self):
        block = block_for([make_entry(at(10))], at(11))
        data = calculate_burn_rate(block, at(11)).sparkline_data
        assert len(data) == SPARKLINE_BUCKETS

    def test_entries_bucketed_by_age(self):
        now = at(11)
        entries = [make_entry(at(10), 1.0), make_entry(at(10, 1), 0.5), make_entry(at(10, 59), 2.0)]
        data = calculate_burn_rate(block_for(entries, now), now).sparkline_data

        assert data[0] == pytest.approx(1.5)
        assert data[-1] == pytest.approx(2.0)
        assert sum(data) == pytest.approx(3.5)

    def test_entry_at_now_goes_to_last_bucket(self):
        now = at(11)
        data = calculate_burn_rate(block_for([make_entry(now, 1.0)], now), now).sparkline_data
        assert data[-1] == pytest.approx(1.0)

    def test_old_and_future_entries_excluded(self):
        """Verify only the last hour up to now is plotted."""
        now = at(12)
        entries = [make_entry(at(10), 1.0), make_entry(at(12, 30), 1.0), make_entry(at(11, 30), 0.25)]
        data = calculate_burn_rate(block_for(entries, now), now).sparkline_data
        assert sum(data) == pytest.approx(0.25)

    def test_empty_block(self):
        block = block_for([make_entry(at(10))], at(11))
        block.entries = []
        block.total_cost = 0.0
        rate = calculate_burn_rate(block, at(11))

        assert rate.sparkline_data == [0.0] * SPARKLINE_BUCKETS
        assert rate.cost_per_hour == 0.0
        assert rate.trend == Trend.STABLE


class TestTokenBurnRate:
    """Test token rate statistics."""

    def test_token_rates(self):
        now = at(11)
        entries = [make_entry(at(10), tokens=1000), make_entry(at(10, 50), tokens=500)]
        rate = calculate_token_burn_rate(block_for(entries, now), now)

        assert rate.tokens_per_hour == pytest.approx(1500)
        assert rate.recent_tokens_per_hour == pytest.approx(2000)
        assert rate.projected_block_tokens == pytest.approx(1500 + 1500 * 4)
        assert len(rate.sparkline_data) == SPARKLINE_BUCKETS
        assert sum(rate.sparkline_data) == pytest.approx(1500)
