"""
Display formatting for costs, tokens, durations and model names.
"""

from datetime import datetime, timedelta

from cc_guard.core.pricing import parse_model_version


def format_cost(usd: float) -> str:
    """Format a USD amount, with more precision for small values."""
    if usd < 0.01:
        return f"${usd:.4f}"
    if usd < 1:
        return f"${usd:.3f}"
    return f"${usd:,.2f}"


def format_tokens(count: float) -> str:
    """Format a token count (1500 -> "1.5K", 1500000 -> "1.5M")."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return f"{int(count)}"


def format_duration(delta: timedelta) -> str:
    """Format a duration as "2h 5m", "12m" or "30s"."""
    seconds = max(int(delta.total_seconds()), 0)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def format_percent(value: float) -> str:
    return f"{round(value)}%"


def format_rate(usd_per_hour: float) -> str:
    return f"{format_cost(usd_per_hour)}/hr"


def format_token_rate(tokens_per_hour: float) -> str:
    return f"{format_tokens(tokens_per_hour)}/hr"


def truncate(text: str, max_len: int) -> str:
    """Truncate text to max_len characters, ending with an ellipsis if cut."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 1] + "…"


def format_time_ago(moment: datetime, now: datetime) -> str:
    """Relative time such as "2m ago", "1h ago" or "just now"."""
    seconds = int((now - moment).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return "just now"


def abbreviate_model(model_id: str) -> str:
    """Abbreviate a Claude model id for compact display.

    "claude-sonnet-4-5-20250929" -> "sonnet-4.5"
    "claude-3-7-sonnet-20250219" -> "sonnet-3.7"
    "glm-4.7"                    -> "glm-4.7" (unchanged)
    """
    version = parse_model_version(model_id)
    return version.display_name if version else model_id
