from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from ..models import Paper
from .batching import batch_count, chunked

logger = logging.getLogger(__name__)

# (batch_index starting at 1, total_batches, batch_size)
BatchCallback = Callable[[int, int, int], None]


class PaperSink(Protocol):
    def upsert_papers(self, papers: Sequence[Paper]) -> int: ...


@dataclass(frozen=True)
class BatchFailure:
    index: int
    item_ids: List[str]
    error: str


@dataclass
class UpsertReport:
    attempted: int = 0
    batches: int = 0
    failed_batches: List[BatchFailure] = field(default_factory=list)

    @property
    def saved(self) -> int:
        return self.attempted - sum(len(f.item_ids) for f in self.failed_batches)


class BatchUpserter:
    """Writes papers in fixed-size batches; one failed batch never stops the rest."""

    def __init__(
        self, store: PaperSink, batch_size: int = 20, batch_delay: float = 0.5
    ) -> None:
        self.store = store
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def upsert(
        self, papers: Sequence[Paper], on_batch: Optional[BatchCallback] = None
    ) -> UpsertReport:
        total = batch_count(len(papers), self.batch_size)
        report = UpsertReport(attempted=len(papers), batches=total)
        for index, batch in enumerate(chunked(papers, self.batch_size), start=1):
            if on_batch is not None:
                on_batch(index, total, len(batch))
            try:
                await asyncio.to_thread(self.store.upsert_papers, batch)
            except Exception as exc:
                logger.exception("Upsert batch %d/%d failed", index, total)
                report.failed_batches.append(
                    BatchFailure(index, [paper.id for paper in batch], str(exc))
                )
            if index < total and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
        return report
