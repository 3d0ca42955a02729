from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from ..models import Paper, utcnow

logger = logging.getLogger(__name__)

PAPER_URL_BASE = "https://huggingface.co/papers"


def _as_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_upvotes(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def normalize_item(
    item: Dict[str, Any], listing_date: date, now: Optional[datetime] = None
) -> Optional[Paper]:
    """Map one raw ``dailyPapers`` entry to a Paper, or None if unusable."""
    block = item.get("paper")
    if not isinstance(block, dict):
        return None
    paper_id = _as_str(block.get("id"))
    title = _as_str(block.get("title"))
    if not paper_id or not title:
        return None

    stamp = now or utcnow()
    return Paper(
        id=paper_id,
        title=title,
        abstract=_as_str(block.get("summary")),
        published_date=listing_date,
        url=f"{PAPER_URL_BASE}/{paper_id}",
        upvotes=_as_upvotes(block.get("upvotes")),
        created_at=stamp,
        updated_at=stamp,
        has_summary=False,
    )


def normalize_items(
    items: Iterable[Dict[str, Any]],
    listing_date: date,
    now: Optional[datetime] = None,
) -> List[Paper]:
    stamp = now or utcnow()
    papers: List[Paper] = []
    seen: set[str] = set()
    dropped = 0
    for item in items:
        paper = normalize_item(item, listing_date, stamp) if isinstance(item, dict) else None
        if paper is None:
            dropped += 1
            continue
        if paper.id in seen:
            continue
        seen.add(paper.id)
        papers.append(paper)
    if dropped:
        logger.debug("Dropped %d malformed items for %s", dropped, listing_date)
    return papers
