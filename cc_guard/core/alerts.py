"""
Budget alerts for the active billing block.

Compares block spend (cost, or tokens in subscription mode) against the
configured budget and classifies it as none, warning or critical.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .billing_block import BillingBlock
from cc_guard.config.loader import BillingMode, Config


class AlertLevel(Enum):
    """Severity levels for budget alerts."""
    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class BudgetAlert:
    """Budget alert state with a display message."""
    level: AlertLevel
    percentage: float  # 0-100+, may exceed 100
    budget: float
    current: float
    message: str


def _format_dollars(amount: float) -> str:
    return f"${amount:g}"


def _format_token_budget(amount: float) -> str:
    return f"{amount:,.0f} tokens"


def _classify(
    used: float,
    budget: float,
    config: Config,
    describe_budget: Callable[[float], str],
) -> BudgetAlert:
    percentage = (used / budget) * 100
    level = AlertLevel.NONE
    message = ""

    if config.alerts_enabled:
        if percentage >= config.critical_threshold:
            level = AlertLevel.CRITICAL
            message = f"CRITICAL: {round(percentage)}% of {describe_budget(budget)} budget used!"
        elif percentage >= config.warning_threshold:
            level = AlertLevel.WARNING
            message = f"Warning: {round(percentage)}% of {describe_budget(budget)} budget used"

    return BudgetAlert(
        level=level,
        percentage=percentage,
        budget=budget,
        current=used,
        message=message,
    )


def check_budget(current_cost: float, config: Config) -> BudgetAlert:
    """Classify block cost against the per-block dollar budget."""
    return _classify(current_cost, config.budget_per_block, config, _format_dollars)


def check_token_budget(current_tokens: float, config: Config) -> BudgetAlert:
    """Classify block tokens against the per-block token budget.

    Raises:
        ValueError: If no token budget is configured
    """
    if config.token_budget_per_block is None:
        raise ValueError("token_budget_per_block is not configured")
    return _classify(float(current_tokens), float(config.token_budget_per_block), config, _format_token_budget)


def evaluate_alert(block: Optional[BillingBlock], config: Config) -> BudgetAlert:
    """Evaluate the alert for the active block (None counts as zero spend).

    Subscription mode with a token budget tracks tokens; otherwise cost.
    """
    if config.mode == BillingMode.SUB and config.token_budget_per_block is not None:
        return check_token_budget(block.total_tokens if block else 0, config)
    return check_budget(block.total_cost if block else 0.0, config)
