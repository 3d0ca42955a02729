"""Summary enrichment over papers that still lack one.

Papers are processed one at a time in fixed-size batches, pausing between
papers and between batches to stay under the API rate limits. A failure is
recorded against its paper and the loop moves on.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Tuple

from ..config import Settings
from ..errors import GenerationError, PersistenceError
from ..models import Paper, Summary
from ..schemas import EnrichmentResult, ItemError
from .batching import BatchOutcome, chunked

logger = logging.getLogger(__name__)


class SummaryStore(Protocol):
    def select_without_summary(
        self, limit: Optional[int] = None, newest_first: bool = True
    ) -> List[Paper]: ...

    def insert_summary(self, summary: Summary) -> Summary: ...

    def update_flag(self, paper_id: str, has_summary: bool) -> bool: ...

    def get_paper(self, paper_id: str) -> Optional[Paper]: ...

    def latest_summary(self, paper_id: str) -> Optional[Summary]: ...


class EnrichmentRunner:
    def __init__(self, store: SummaryStore, generator, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.store = store
        self.generator = generator

    async def run(
        self, limit: Optional[int] = None, newest_first: bool = True
    ) -> EnrichmentResult:
        papers = await asyncio.to_thread(
            self.store.select_without_summary, limit, newest_first
        )
        result = EnrichmentResult(total=len(papers))
        if not papers:
            logger.info("No papers found that need summaries")
            return result

        batches = list(chunked(papers, self.settings.summary_batch_size))
        logger.info(
            "Generating summaries for %d papers in %d batches", len(papers), len(batches)
        )
        for batch_index, batch in enumerate(batches, start=1):
            outcome = BatchOutcome()
            for position, paper in enumerate(batch):
                await self._enrich(paper, outcome)
                if position < len(batch) - 1 and self.settings.summary_item_delay_seconds > 0:
                    await asyncio.sleep(self.settings.summary_item_delay_seconds)

            result.processed += len(batch)
            result.succeeded += outcome.succeeded
            result.failed += outcome.failed
            result.errors.extend(
                ItemError(paper_id=f.item_id, error=f.error) for f in outcome.failures
            )
            logger.info(
                "Summary batch %d/%d done: succeeded=%d failed=%d",
                batch_index,
                len(batches),
                outcome.succeeded,
                outcome.failed,
            )
            if batch_index < len(batches) and self.settings.summary_batch_delay_seconds > 0:
                await asyncio.sleep(self.settings.summary_batch_delay_seconds)

        logger.info(
            "Summary run complete. total=%d succeeded=%d failed=%d",
            result.total,
            result.succeeded,
            result.failed,
        )
        return result

    async def _enrich(self, paper: Paper, outcome: BatchOutcome) -> bool:
        try:
            await self._generate_and_save(paper)
        except Exception as exc:
            if isinstance(exc, GenerationError):
                logger.warning("Summary generation failed for paper %s: %s", paper.id, exc)
            else:
                logger.exception("Error processing paper %s", paper.id)
            try:
                await asyncio.to_thread(self.store.update_flag, paper.id, False)
            except PersistenceError:
                logger.warning("Could not reset has_summary for paper %s", paper.id)
            outcome.record_failure(paper.id, str(exc) or exc.__class__.__name__)
            return False
        outcome.record_success()
        logger.info("Successfully generated summary for paper %s", paper.id)
        return True

    async def _generate_and_save(self, paper: Paper) -> Summary:
        summary = await asyncio.to_thread(self.generator.generate, paper)
        summary = await asyncio.to_thread(self.store.insert_summary, summary)
        # The flag only flips once the summary row is committed
        await asyncio.to_thread(self.store.update_flag, paper.id, True)
        return summary

    async def summarize_one(self, paper_id: str) -> Tuple[Summary, bool]:
        """Return ``(summary, created)`` for one paper, reusing the latest summary."""
        paper = await asyncio.to_thread(self.store.get_paper, paper_id)
        if paper is None:
            raise LookupError(f"Paper not found: {paper_id}")

        existing = await asyncio.to_thread(self.store.latest_summary, paper_id)
        if existing is not None:
            if not paper.has_summary:
                await asyncio.to_thread(self.store.update_flag, paper_id, True)
            return existing, False

        return await self._generate_and_save(paper), True
