"""
Burn rate analysis for the active billing block.

Derives hourly cost and token rates, a block-end projection, a trend and a
sparkline. Snapshots are recomputed per observation and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List

from .billing_block import BillingBlock
from cc_guard.storage.models import UsageEntry


RECENT_WINDOW = timedelta(minutes=15)
SPARKLINE_WINDOW = timedelta(minutes=60)
SPARKLINE_BUCKETS = 30  # 2 minutes each
TREND_THRESHOLD = 0.3
MIN_ELAPSED_HOURS = 0.01
MIN_TREND_HOURS = 0.05
MIN_TREND_ENTRIES = 3
COST_RATE_FLOOR = 0.0001
TOKEN_RATE_FLOOR = 1.0


class Trend(Enum):
    """Direction of the recent rate relative to the block average."""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


@dataclass(frozen=True)
class BurnRate:
    """Cost burn rate statistics for a block."""
    cost_per_hour: float
    recent_cost_per_hour: float
    projected_block_total: float
    trend: Trend
    sparkline_data: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class TokenBurnRate:
    """Token burn rate statistics for a block."""
    tokens_per_hour: float
    recent_tokens_per_hour: float
    projected_block_tokens: float
    trend: Trend
    sparkline_data: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class _Rates:
    overall: float
    recent: float
    projected: float
    trend: Trend


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600


def _compute_rates(
    block: BillingBlock,
    now: datetime,
    value: Callable[[UsageEntry], float],
    total: float,
    rate_floor: float,
) -> _Rates:
    elapsed_hours = max(_hours(now - block.start_time), MIN_ELAPSED_HOURS)
    remaining_hours = max(_hours(block.end_time - now), 0.0)

    overall = total / elapsed_hours

    recent_cutoff = now - RECENT_WINDOW
    recent_total = sum(value(e) for e in block.entries if e.timestamp >= recent_cutoff)
    recent_hours = min(elapsed_hours, _hours(RECENT_WINDOW))
    recent = recent_total / max(recent_hours, MIN_ELAPSED_HOURS)

    projected = total + overall * remaining_hours

    trend = Trend.STABLE
    if len(block.entries) >= MIN_TREND_ENTRIES and elapsed_hours > MIN_TREND_HOURS:
        ratio = recent / max(overall, rate_floor)
        if ratio > 1 + TREND_THRESHOLD:
            trend = Trend.RISING
        elif ratio < 1 - TREND_THRESHOLD:
            trend = Trend.FALLING

    return _Rates(overall=overall, recent=recent, projected=projected, trend=trend)


def compute_sparkline(
    block: BillingBlock,
    now: datetime,
    value: Callable[[UsageEntry], float],
) -> List[float]:
    """Sum entry values into 30 two-minute buckets over the last hour.

    Entries older than the window or timestamped after ``now`` are ignored.
    """
    bucket_size = SPARKLINE_WINDOW / SPARKLINE_BUCKETS
    window_start = now - SPARKLINE_WINDOW
    buckets = [0.0] * SPARKLINE_BUCKETS

    for entry in block.entries:
        if entry.timestamp < window_start or entry.timestamp > now:
            continue
        index = min(int((entry.timestamp - window_start) // bucket_size), SPARKLINE_BUCKETS - 1)
        buckets[index] += value(entry)

    return buckets


def _entry_cost(entry: UsageEntry) -> float:
    return entry.cost_usd


def _entry_tokens(entry: UsageEntry) -> float:
    return float(entry.total_tokens)


def calculate_burn_rate(block: BillingBlock, now: datetime) -> BurnRate:
    """Calculate cost burn rate statistics for a billing block.

    The projection extrapolates the block-average rate, not the recent one.
    """
    rates = _compute_rates(block, now, _entry_cost, block.total_cost, COST_RATE_FLOOR)
    return BurnRate(
        cost_per_hour=rates.overall,
        recent_cost_per_hour=rates.recent,
        projected_block_total=rates.projected,
        trend=rates.trend,
        sparkline_data=compute_sparkline(block, now, _entry_cost),
    )


def calculate_token_burn_rate(block: BillingBlock, now: datetime) -> TokenBurnRate:
    """Calculate token burn rate statistics for a billing block."""
    total_tokens = float(block.total_tokens)
    rates = _compute_rates(block, now, _entry_tokens, total_tokens, TOKEN_RATE_FLOOR)
    return TokenBurnRate(
        tokens_per_hour=rates.overall,
        recent_tokens_per_hour=rates.recent,
        projected_block_tokens=rates.projected,
        trend=rates.trend,
        sparkline_data=compute_sparkline(block, now, _entry_tokens),
    )
