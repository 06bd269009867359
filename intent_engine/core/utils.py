"""
Small shared helpers: rounding, recency checks and batched concurrency
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime. Returns None when unparseable."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_recent(value: Optional[str], days: int = 90, now: Optional[datetime] = None) -> bool:
    """True when the date lies within the last ``days`` days."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    reference = as_aware(now) if now else utcnow()
    return reference - parsed <= timedelta(days=days)


# =============================================================================
# Batched concurrency
# =============================================================================

async def run_in_batches(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = 5,
    delay_seconds: float = 0.2,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> List[Optional[R]]:
    """
    Run ``worker`` over ``items`` in fixed-size batches.

    Items inside a batch run concurrently; batches run one after another with
    ``delay_seconds`` between them. A failing item yields None in its slot so
    one bad record never sinks the batch.
    """
    pending = list(items)
    results: List[Optional[R]] = []
    size = max(batch_size, 1)

    for start in range(0, len(pending), size):
        batch = pending[start:start + size]
        outcomes = await asyncio.gather(
            *(worker(item) for item in batch), return_exceptions=True
        )
        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"Batch item {item!r} failed: {outcome}")
                results.append(None)
            else:
                results.append(outcome)

        if start + size < len(pending) and delay_seconds > 0:
            await sleep(delay_seconds)

    return results
