"""Date arithmetic for ingestion windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Protocol, Tuple

from ..errors import ValidationError

logger = logging.getLogger(__name__)

MODE_FIXED_DAYS = "fixed-days"
MODE_SINCE_LAST = "since-last"
MODES = (MODE_FIXED_DAYS, MODE_SINCE_LAST)

MAX_DAYS = 365
SINCE_LAST_FALLBACK_DAYS = 7


class LatestDateSource(Protocol):
    def most_recent_date(self) -> Optional[date]: ...


def clamp_days(days: int, ceiling: int = MAX_DAYS) -> Tuple[int, Optional[str]]:
    """Return ``(days, note)``; ``note`` is set only when the ceiling applied."""
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError("Invalid days parameter. Must be a positive integer.")
    if days < 1:
        raise ValidationError("Invalid days parameter. Must be a positive number.")
    if days <= ceiling:
        return days, None
    note = (
        f"Limiting requested scraping days from {days} to {ceiling} (maximum allowed)"
    )
    logger.info(note)
    return ceiling, note


def compute_dates(days: int, today: Optional[date] = None) -> List[date]:
    """Dates to process, most recent first, starting at ``today``."""
    if days < 1:
        raise ValidationError("Invalid days parameter. Must be a positive number.")
    start = today or date.today()
    return [start - timedelta(days=offset) for offset in range(days)]


def days_since_last(
    most_recent: Optional[date],
    today: Optional[date] = None,
    fallback: int = SINCE_LAST_FALLBACK_DAYS,
) -> int:
    if most_recent is None:
        return fallback
    # Today is re-checked even when it is already stored
    return max(1, ((today or date.today()) - most_recent).days)


@dataclass(frozen=True)
class DateWindow:
    mode: str
    dates: List[date]
    note: Optional[str] = None
    most_recent: Optional[date] = None

    @property
    def days(self) -> int:
        return len(self.dates)


def resolve_window(
    mode: str,
    days: Optional[int],
    store: LatestDateSource,
    *,
    today: Optional[date] = None,
    ceiling: int = MAX_DAYS,
    fallback: int = SINCE_LAST_FALLBACK_DAYS,
) -> DateWindow:
    """Resolve a mode into its dates; only "since-last" consults the store."""
    most_recent = None
    if mode == MODE_FIXED_DAYS:
        count, note = clamp_days(days, ceiling)
    elif mode == MODE_SINCE_LAST:
        most_recent = store.most_recent_date()
        count, note = clamp_days(days_since_last(most_recent, today, fallback), ceiling)
    else:
        raise ValidationError(
            f'Invalid mode {mode!r}. Use "{MODE_FIXED_DAYS}" or "{MODE_SINCE_LAST}".'
        )
    return DateWindow(mode, compute_dates(count, today), note, most_recent)
