import html
import json
from datetime import date
from typing import Dict, List, Optional

from dailypapers.config import Settings
from dailypapers.db import create_db_and_tables, make_engine
from dailypapers.errors import FetchError, GenerationError
from dailypapers.models import Paper
from dailypapers.services.source import SourceListing
from dailypapers.services.summarizer import build_summary
from dailypapers.store import PaperStore
from dailypapers.summary_parser import parse_summary_text

FAST_SETTINGS = Settings(
    database_url="sqlite://",
    upsert_batch_delay_seconds=0,
    day_delay_seconds=0,
    summary_item_delay_seconds=0,
    summary_batch_delay_seconds=0,
)

MODEL_OUTPUT = """1. TL;DR (exactly 3 points):
- [Problem] Long videos are expensive to understand.
- [Solution] A sparse memory keeps only the useful frames.
- [Impact] Video assistants get cheaper and faster.

2. Key Innovation (exactly 3 points):
- [Novel Approach] Frames are scored before they are stored.
- [Improvement] Uses four times less memory than dense caching.
- [Technical] A learned router decides what to forget.

3. Practical Applications (exactly 3 points):
- Summarizing hours of meeting recordings.
- Searching security footage by description.
- Helping editors find scenes in raw film.

4. Limitations & Future Work (exactly 3 points):
- Very fast scene changes are still missed.
- Training needs large labelled video sets.
- Future work could add audio cues.

5. Key Terms (exactly 3 terms):
Sparse Memory - Storing only the most useful pieces of information.
Router - A small model that decides where data goes.
Frame - One still image inside a video.
"""


def memory_store() -> PaperStore:
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    return PaperStore(engine)


def raw_item(paper_id: str, title: str = "A paper", upvotes: int = 3, summary: str = "abstract") -> Dict:
    return {"paper": {"id": paper_id, "title": title, "summary": summary, "upvotes": upvotes}}


def listing_html(items: Optional[List[Dict]] = None, *, props: Optional[str] = None) -> str:
    if props is None:
        props = json.dumps({"dailyPapers": items or []})
    return (
        "<html><body><main>"
        '<div class="SVELTE_HYDRATER contents" data-target="DailyPapers" '
        f'data-props="{html.escape(props, quote=True)}"></div>'
        "</main></body></html>"
    )


def make_paper(paper_id: str, day: date, upvotes: int = 0, has_summary: bool = False) -> Paper:
    return Paper(
        id=paper_id,
        title=f"Paper {paper_id}",
        abstract="abstract",
        published_date=day,
        url=f"https://huggingface.co/papers/{paper_id}",
        upvotes=upvotes,
        has_summary=has_summary,
    )


class FakeFetcher:
    """Serves canned listings; ``failures`` maps a date to the error to raise."""

    def __init__(self, listings=None, failures=None) -> None:
        self.listings: Dict[date, List[Dict]] = listings or {}
        self.failures: Dict[date, Exception] = failures or {}
        self.calls: List[date] = []

    async def fetch(self, day: date) -> SourceListing:
        self.calls.append(day)
        if day in self.failures:
            raise self.failures[day]
        items = self.listings.get(day, [])
        return SourceListing(day, day if items else None, items)

    async def aclose(self) -> None:
        pass


class FakeGenerator:
    def __init__(self, failing_ids=()) -> None:
        self.failing_ids = set(failing_ids)
        self.calls: List[str] = []

    def generate(self, paper: Paper):
        self.calls.append(paper.id)
        if paper.id in self.failing_ids:
            raise GenerationError(f"rate limited for {paper.id}")
        return build_summary(paper.id, parse_summary_text(MODEL_OUTPUT))


__all__ = [
    "FAST_SETTINGS",
    "MODEL_OUTPUT",
    "FakeFetcher",
    "FakeGenerator",
    "FetchError",
    "listing_html",
    "make_paper",
    "memory_store",
    "raw_item",
]
