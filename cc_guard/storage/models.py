"""
Data models for storage layer.

Defines the normalized usage entry read from Claude Code session logs.
"""

from dataclasses import dataclass
from datetime import datetime

from cc_guard.core.token_counter import TokenUsage


@dataclass(frozen=True)
class UsageEntry:
    """Immutable record of one assistant response's token usage and cost.

    Streaming responses are logged as several chunks sharing a request id;
    a later chunk replaces the earlier entry instead of modifying it.
    """
    timestamp: datetime
    session_id: str
    request_id: str
    model: str
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int  # Sum of 5m + 1h tiers, kept for backward compat
    cache_write_5m_tokens: int
    cache_write_1h_tokens: int
    cache_read_tokens: int
    cost_usd: float
    source: str

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_write_5m_tokens=self.cache_write_5m_tokens,
            cache_write_1h_tokens=self.cache_write_1h_tokens,
            cache_read_tokens=self.cache_read_tokens,
        )

    @property
    def total_tokens(self) -> int:
        """Input + output + cache creation + cache read tokens."""
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )
