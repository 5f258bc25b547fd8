"""
Point-in-time usage snapshot.

Everything shown to the user is recomputed from the full entry set on each
observation: blocks, rates, breakdowns and the budget alert.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from .aggregation import (
    ModelBreakdown,
    SessionSummary,
    get_model_breakdown,
    get_session_summaries,
    get_total_cost,
    get_total_tokens,
)
from .alerts import BudgetAlert, evaluate_alert
from .billing_block import BillingBlock, compute_blocks, get_block_progress, get_block_remaining
from .burn_rate import BurnRate, TokenBurnRate, calculate_burn_rate, calculate_token_burn_rate
from cc_guard.config.loader import Config
from cc_guard.storage.models import UsageEntry


@dataclass
class UsageSnapshot:
    """Derived usage state at a single observation time."""
    now: datetime
    blocks: List[BillingBlock]
    current_block: Optional[BillingBlock]
    progress: float
    remaining: timedelta
    alert: BudgetAlert
    cost_rate: Optional[BurnRate] = None
    token_rate: Optional[TokenBurnRate] = None
    models: List[ModelBreakdown] = field(default_factory=list)
    sessions: List[SessionSummary] = field(default_factory=list)
    total_cost_all_time: float = 0.0
    total_tokens_all_time: int = 0

    @property
    def has_data(self) -> bool:
        return bool(self.blocks)

    @property
    def unpriced_models(self) -> List[str]:
        return [m.model for m in self.models if not m.has_pricing]


def take_snapshot(entries: Sequence[UsageEntry], now: datetime, config: Config) -> UsageSnapshot:
    """Compute blocks, burn rates, breakdowns and the alert for ``now``.

    Breakdowns cover the active block only; totals cover every entry.
    """
    blocks = compute_blocks(entries, now)
    current_block = blocks[-1] if blocks and blocks[-1].is_active else None

    snapshot = UsageSnapshot(
        now=now,
        blocks=blocks,
        current_block=current_block,
        progress=0.0,
        remaining=timedelta(0),
        alert=evaluate_alert(current_block, config),
        total_cost_all_time=get_total_cost(entries),
        total_tokens_all_time=get_total_tokens(entries),
    )

    if current_block is not None:
        snapshot.progress = get_block_progress(current_block, now)
        snapshot.remaining = get_block_remaining(current_block, now)
        snapshot.cost_rate = calculate_burn_rate(current_block, now)
        snapshot.token_rate = calculate_token_burn_rate(current_block, now)
        snapshot.models = get_model_breakdown(current_block.entries, config.custom_pricing)
        snapshot.sessions = get_session_summaries(current_block.entries)

    return snapshot
