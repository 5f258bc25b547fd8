"""
JSONL log line parsing.

Turns raw Claude Code log records into normalized usage entries. Only
assistant records carry usage; user, system and snapshot records are dropped.
Malformed lines never raise, they simply yield no entry.
"""

import json
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .pricing import ModelPricing, calculate_entry_cost
from .token_counter import TokenUsage
from cc_guard.storage.models import UsageEntry


ASSISTANT_TYPE = "assistant"
UNKNOWN_MODEL = "unknown"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _number(value: Any) -> Optional[float]:
    """A finite, non-negative JSON number, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # NaN, Infinity and overflowing literals such as 1e400
    if not math.isfinite(number) or number < 0:
        return None
    return value


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _count(data: Mapping[str, Any], field: str) -> int:
    """Read a token count, treating absent, non-numeric or negative values as 0."""
    value = _number(data.get(field))
    return int(value) if value is not None else 0


def _extract_usage(usage: Mapping[str, Any]) -> TokenUsage:
    detail = usage.get("cache_creation")
    if not isinstance(detail, dict):
        detail = {}
    split_5m = _count(detail, "ephemeral_5m_input_tokens")
    split_1h = _count(detail, "ephemeral_1h_input_tokens")

    if split_5m + split_1h > 0:
        cache_5m, cache_1h = split_5m, split_1h
    else:
        # Legacy records only carry the flat total; it is all attributed to the 5m tier
        cache_5m, cache_1h = _count(usage, "cache_creation_input_tokens"), 0

    return TokenUsage(
        input_tokens=_count(usage, "input_tokens"),
        output_tokens=_count(usage, "output_tokens"),
        cache_write_5m_tokens=cache_5m,
        cache_write_1h_tokens=cache_1h,
        cache_read_tokens=_count(usage, "cache_read_input_tokens"),
    )


def parse_line(
    line: str,
    source_path: str,
    custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
) -> Optional[UsageEntry]:
    """Parse a single JSONL line into a UsageEntry.

    Args:
        line: Raw line from a session log
        source_path: Path of the file the line came from
        custom_pricing: Optional pricing overrides

    Returns:
        UsageEntry, or None if the line is not a valid usage record
    """
    trimmed = line.strip()
    if not trimmed:
        return None

    try:
        raw = json.loads(trimmed)
    except ValueError:
        return None
    if not isinstance(raw, dict):
        return None

    timestamp = parse_timestamp(raw.get("timestamp"))
    if timestamp is None:
        return None

    record_type = raw.get("type")
    if record_type is not None and record_type != ASSISTANT_TYPE:
        return None

    message = raw.get("message")
    if not isinstance(message, dict):
        message = {}
    usage = message.get("usage")
    if not isinstance(usage, dict):
        usage = None

    # Negative or non-finite costs are ignored and the cost is recomputed
    supplied_cost = _number(raw.get("costUSD"))

    if usage is None and supplied_cost is None:
        return None

    model = _text(message.get("model")) or UNKNOWN_MODEL
    tokens = _extract_usage(usage or {})

    if supplied_cost is not None:
        cost = float(supplied_cost)
    else:
        cost = calculate_entry_cost(model, tokens, custom_pricing)

    return UsageEntry(
        timestamp=timestamp,
        session_id=_text(raw.get("sessionId")),
        request_id=_text(raw.get("requestId")),
        model=model,
        input_tokens=tokens.input_tokens,
        output_tokens=tokens.output_tokens,
        cache_creation_tokens=tokens.cache_creation_tokens,
        cache_write_5m_tokens=tokens.cache_write_5m_tokens,
        cache_write_1h_tokens=tokens.cache_write_1h_tokens,
        cache_read_tokens=tokens.cache_read_tokens,
        cost_usd=cost,
        source=source_path,
    )


def parse_lines(
    content: str,
    source_path: str,
    custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
) -> List[UsageEntry]:
    """Parse a block of JSONL content, keeping only the last chunk per request id.

    Entries without a request id are all kept, after the deduplicated ones.
    """
    by_request_id: Dict[str, UsageEntry] = {}
    without_id: List[UsageEntry] = []

    for line in content.split("\n"):
        entry = parse_line(line, source_path, custom_pricing)
        if entry is None:
            continue
        if entry.request_id:
            by_request_id[entry.request_id] = entry
        else:
            without_id.append(entry)

    return list(by_request_id.values()) + without_id
