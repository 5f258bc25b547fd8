"""
Token counting and usage tracking.

Holds the token categories reported by Claude Code assistant records.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for a single model invocation.

    Cache writes are split into the 5-minute and 1-hour ephemeral tiers,
    which are priced differently.
    """
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_5m_tokens: int = 0
    cache_write_1h_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def cache_creation_tokens(self) -> int:
        """Legacy cache-write total (5m + 1h tiers)."""
        return self.cache_write_5m_tokens + self.cache_write_1h_tokens

    @property
    def total_tokens(self) -> int:
        """All tokens processed (input + output + cache writes + cache reads)."""
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )
