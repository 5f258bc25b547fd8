"""
Unit tests for budget alerts.

Tests threshold classification, messages and subscription token budgets.
"""

from datetime import datetime, timezone

import pytest

from cc_guard.config.loader import BillingMode, Config
from cc_guard.core.alerts import AlertLevel, check_budget, check_token_budget, evaluate_alert
from cc_guard.core.billing_block import compute_blocks
from cc_guard.storage.models import UsageEntry


def make_config(**kwargs) -> Config:
    kwargs.setdefault("mode", BillingMode.API)
    return Config(**kwargs)


def make_entry(cost: float, tokens: int) -> UsageEntry:
    return UsageEntry(
        timestamp=datetime(2026, 2, 17, 10, tzinfo=timezone.utc),
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


class TestCheckBudget:
    """Test dollar budget classification."""

    @pytest.mark.parametrize("cost,level", [
        (0.0, AlertLevel.NONE),
        (39.99, AlertLevel.NONE),
        (40.0, AlertLevel.WARNING),
        (47.0, AlertLevel.WARNING),
        (48.0, AlertLevel.CRITICAL),
        (120.0, AlertLevel.CRITICAL),
    ])
    def test_threshold_boundaries(self, cost, level):
        """Verify thresholds are inclusive at 80% and 95% of $50."""
        assert check_budget(cost, make_config()).level == level

    def test_percentage_may_exceed_100(self):
        alert = check_budget(75.0, make_config())
        assert alert.percentage == pytest.approx(150.0)
        assert alert.current == 75.0
        assert alert.budget == 50.0

    def test_messages(self):
        assert check_budget(42.0, make_config()).message == "Warning: 84% of $50 budget used"
        assert check_budget(49.0, make_config()).message == "CRITICAL: 98% of $50 budget used!"
        assert check_budget(1.0, make_config()).message == ""

    def test_fractional_budget_in_message(self):
        alert = check_budget(12.0, make_config(budget_per_block=12.5))
        assert alert.message == "CRITICAL: 96% of $12.5 budget used!"

    def test_alerts_disabled(self):
        """Verify disabled alerts still report the percentage."""
        alert = check_budget(100.0, make_config(alerts_enabled=False))
        assert alert.level == AlertLevel.NONE
        assert alert.message == ""
        assert alert.percentage == pytest.approx(200.0)

    def test_custom_thresholds(self):
        config = make_config(budget_per_block=10.0, warning_threshold=50.0, critical_threshold=50.0)
        assert check_budget(4.9, config).level == AlertLevel.NONE
        assert check_budget(5.0, config).level == AlertLevel.CRITICAL


class TestTokenBudget:
    """Test subscription token budgets."""

    def test_token_message(self):
        config = make_config(mode=BillingMode.SUB, token_budget_per_block=1_000_000)
        alert = check_token_budget(850_000, config)

        assert alert.level == AlertLevel.WARNING
        assert alert.message == "Warning: 85% of 1,000,000 tokens budget used"

    def test_requires_token_budget(self):
        with pytest.raises(ValueError, match="token_budget_per_block"):
            check_token_budget(100, make_config(mode=BillingMode.SUB))


class TestEvaluateAlert:
    """Test mode-dependent alert evaluation."""

    def block(self, cost: float, tokens: int):
        entries = [make_entry(cost, tokens)]
        return compute_blocks(entries, datetime(2026, 2, 17, 11, tzinfo=timezone.utc))[0]

    def test_api_mode_uses_cost(self):
        alert = evaluate_alert(self.block(48.0, 10), make_config())
        assert alert.level == AlertLevel.CRITICAL
        assert alert.current == 48.0

    def test_sub_mode_with_token_budget_uses_tokens(self):
        config = make_config(mode=BillingMode.SUB, token_budget_per_block=1000)
        alert = evaluate_alert(self.block(0.01, 990), config)
        assert alert.level == AlertLevel.CRITICAL
        assert alert.current == 990

    def test_sub_mode_without_token_budget_uses_cost(self):
        config = make_config(mode=BillingMode.SUB)
        alert = evaluate_alert(self.block(45.0, 10), config)
        assert alert.level == AlertLevel.WARNING

    def test_no_block_is_zero_spend(self):
        alert = evaluate_alert(None, make_config())
        assert alert.level == AlertLevel.NONE
        assert alert.percentage == 0.0
