from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import Settings
from .db import create_db_and_tables, make_engine
from .services.enrichment import EnrichmentRunner
from .services.ingestion import IngestionOrchestrator
from .services.job_tracker import JobTracker
from .services.source import SourceFetcher
from .services.summarizer import SummaryGenerator
from .store import PaperStore

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    settings: Settings
    store: PaperStore
    tracker: JobTracker
    fetcher: SourceFetcher
    ingestion: IngestionOrchestrator
    enrichment: EnrichmentRunner
    owns_fetcher: bool = True

    async def aclose(self) -> None:
        if self.owns_fetcher:
            await self.fetcher.aclose()


def build_pipeline(
    settings: Settings,
    *,
    store: Optional[PaperStore] = None,
    fetcher: Optional[SourceFetcher] = None,
    generator: Optional[SummaryGenerator] = None,
    tracker: Optional[JobTracker] = None,
) -> Pipeline:
    """Wire every component; anything passed in is used instead of the default."""
    store = store or PaperStore(make_engine(settings.database_url))
    create_db_and_tables(store.engine)

    owns_fetcher = fetcher is None
    fetcher = fetcher or SourceFetcher(
        settings.source_base_url,
        timeout=settings.source_timeout_seconds,
        user_agent=settings.source_user_agent,
    )
    tracker = tracker or JobTracker(settings.job_log_cap)
    generator = generator or SummaryGenerator.from_settings(settings)

    logger.info("Pipeline ready (store=%s)", store.engine.url.render_as_string())
    return Pipeline(
        settings=settings,
        store=store,
        tracker=tracker,
        fetcher=fetcher,
        ingestion=IngestionOrchestrator(tracker, fetcher, store, settings),
        enrichment=EnrichmentRunner(store, generator, settings),
        owns_fetcher=owns_fetcher,
    )
