"""
Usage aggregation by model and by session.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from .pricing import ModelPricing, has_pricing
from cc_guard.storage.models import UsageEntry


@dataclass
class ModelBreakdown:
    """Token usage and cost totals for one model."""
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_write_5m_tokens: int = 0
    cache_write_1h_tokens: int = 0
    cache_read_tokens: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    entry_count: int = 0
    has_pricing: bool = True


@dataclass
class SessionSummary:
    """Totals and latest activity for one session."""
    session_id: str
    project_path: str
    last_activity: datetime
    model: str
    total_cost: float = 0.0
    total_tokens: int = 0
    entry_count: int = 0


def project_label(source: str) -> str:
    """Parent directory name of a log file path (the encoded project id)."""
    parts = source.replace("\\", "/").split("/")
    return parts[-2] if len(parts) >= 2 else "unknown"


def get_model_breakdown(
    entries: Iterable[UsageEntry],
    custom_pricing: Optional[Mapping[str, ModelPricing]] = None,
) -> List[ModelBreakdown]:
    """Aggregate entries into per-model breakdowns, most expensive first."""
    by_model: Dict[str, ModelBreakdown] = {}

    for entry in entries:
        breakdown = by_model.get(entry.model)
        if breakdown is None:
            breakdown = ModelBreakdown(
                model=entry.model,
                has_pricing=has_pricing(entry.model, custom_pricing),
            )
            by_model[entry.model] = breakdown

        breakdown.input_tokens += entry.input_tokens
        breakdown.output_tokens += entry.output_tokens
        breakdown.cache_creation_tokens += entry.cache_creation_tokens
        breakdown.cache_write_5m_tokens += entry.cache_write_5m_tokens
        breakdown.cache_write_1h_tokens += entry.cache_write_1h_tokens
        breakdown.cache_read_tokens += entry.cache_read_tokens
        breakdown.total_cost += entry.cost_usd
        breakdown.total_tokens += entry.total_tokens
        breakdown.entry_count += 1

    return sorted(by_model.values(), key=lambda b: b.total_cost, reverse=True)


def get_session_summaries(entries: Iterable[UsageEntry]) -> List[SessionSummary]:
    """Aggregate entries into per-session summaries, most recently active first.

    The reported model is the one used by the session's latest entry.
    """
    by_session: Dict[str, SessionSummary] = {}

    for entry in entries:
        summary = by_session.get(entry.session_id)
        if summary is None:
            summary = SessionSummary(
                session_id=entry.session_id,
                project_path=project_label(entry.source),
                last_activity=entry.timestamp,
                model=entry.model,
            )
            by_session[entry.session_id] = summary
        elif entry.timestamp > summary.last_activity:
            summary.last_activity = entry.timestamp
            summary.model = entry.model

        summary.total_cost += entry.cost_usd
        summary.total_tokens += entry.total_tokens
        summary.entry_count += 1

    return sorted(by_session.values(), key=lambda s: s.last_activity, reverse=True)


def get_total_cost(entries: Iterable[UsageEntry]) -> float:
    return sum(entry.cost_usd for entry in entries)


def get_total_tokens(entries: Iterable[UsageEntry]) -> int:
    return sum(entry.total_tokens for entry in entries)
