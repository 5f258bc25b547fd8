"""
Billing block segmentation.

Partitions usage entries into 5-hour billing windows. Blocks are recomputed
from the full entry set on every call: a new entry can move a boundary, so
nothing here is maintained incrementally.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from cc_guard.storage.models import UsageEntry


BLOCK_DURATION = timedelta(hours=5)


@dataclass
class BillingBlock:
    """A 5-hour accounting window."""
    start_time: datetime  # Floored to the UTC hour
    end_time: datetime
    entries: List[UsageEntry] = field(default_factory=list)
    total_cost: float = 0.0
    is_active: bool = False

    @property
    def total_tokens(self) -> int:
        return sum(entry.total_tokens for entry in self.entries)

    @property
    def last_activity(self) -> Optional[datetime]:
        return self.entries[-1].timestamp if self.entries else None


def floor_to_hour(dt: datetime) -> datetime:
    """Floor a datetime to the start of its UTC hour."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(minute=0, second=0, microsecond=0)


def _create_block(first_entry: UsageEntry) -> BillingBlock:
    start_time = floor_to_hour(first_entry.timestamp)
    return BillingBlock(
        start_time=start_time,
        end_time=start_time + BLOCK_DURATION,
        entries=[first_entry],
        total_cost=first_entry.cost_usd,
        is_active=True,
    )


def compute_blocks(entries: Iterable[UsageEntry], now: datetime) -> List[BillingBlock]:
    """Compute billing blocks from usage entries.

    Rules:
    - A block starts at its first entry's timestamp floored to the UTC hour
      and lasts 5 hours.
    - An entry 5h or more past the block start, or 5h or more after the
      previous entry, closes the block and seeds a new one.
    - Only the last block can be active: last activity and block start must
      both be less than 5h before ``now``.

    Args:
        entries: Usage entries in any order
        now: Observation time

    Returns:
        Blocks ordered by start time (empty for no entries)
    """
    sorted_entries = sorted(entries, key=lambda e: e.timestamp)
    if not sorted_entries:
        return []

    blocks: List[BillingBlock] = []
    current = _create_block(sorted_entries[0])

    for entry in sorted_entries[1:]:
        since_start = entry.timestamp - current.start_time
        since_last = entry.timestamp - current.entries[-1].timestamp

        if since_start >= BLOCK_DURATION or since_last >= BLOCK_DURATION:
            current.is_active = False
            blocks.append(current)
            current = _create_block(entry)
        else:
            current.entries.append(entry)
            current.total_cost += entry.cost_usd

    since_last_activity = now - current.entries[-1].timestamp
    time_in_block = now - current.start_time
    current.is_active = since_last_activity < BLOCK_DURATION and time_in_block < BLOCK_DURATION
    blocks.append(current)

    return blocks


def get_current_block(entries: Iterable[UsageEntry], now: datetime) -> Optional[BillingBlock]:
    """Return the active billing block, or None when there is none.

    Callers that need to tell "no data" from "no active block" should check
    ``compute_blocks`` for an empty result.
    """
    blocks = compute_blocks(entries, now)
    if not blocks:
        return None
    last_block = blocks[-1]
    return last_block if last_block.is_active else None


def get_block_progress(block: BillingBlock, now: datetime) -> float:
    """Elapsed fraction of the block, clamped to [0, 1]."""
    elapsed = now - block.start_time
    return min(1.0, max(0.0, elapsed / BLOCK_DURATION))


def get_block_remaining(block: BillingBlock, now: datetime) -> timedelta:
    """Time left until the block ends, never negative."""
    return max(timedelta(0), block.end_time - now)
