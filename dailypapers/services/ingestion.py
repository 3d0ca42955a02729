"""Background ingestion runs.

A run walks the date window newest first: fetch the listing, normalize it,
upsert it in batches. A failed date is logged and skipped; anything else
that escapes the loop is caught by the supervising task, which always moves
the tracker back to Idle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Protocol, Set, Tuple

from ..config import Settings
from ..errors import FetchError, ValidationError
from ..schemas import JobStatus
from .date_window import (
    MODE_FIXED_DAYS,
    MODE_SINCE_LAST,
    MODES,
    DateWindow,
    clamp_days,
    resolve_window,
)
from .job_tracker import JobTracker
from .normalizer import normalize_items
from .source import SourceListing
from .upserter import BatchUpserter

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 7


class ListingSource(Protocol):
    async def fetch(self, day: date) -> SourceListing: ...


@dataclass(frozen=True)
class IngestionRequest:
    mode: str
    # Clamped day count for fixed-days; resolved inside the run for since-last
    days: Optional[int] = None
    requested_days: Optional[int] = None
    note: Optional[str] = None


class IngestionOrchestrator:
    def __init__(
        self,
        tracker: JobTracker,
        fetcher: ListingSource,
        store,
        settings: Optional[Settings] = None,
        *,
        upserter: Optional[BatchUpserter] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.tracker = tracker
        self.fetcher = fetcher
        self.store = store
        self.upserter = upserter or BatchUpserter(
            store,
            batch_size=self.settings.upsert_batch_size,
            batch_delay=self.settings.upsert_batch_delay_seconds,
        )
        self._today = today or date.today
        self._task: Optional[asyncio.Task] = None

    def validate(self, mode: str, days: Optional[int] = None) -> IngestionRequest:
        """Check trigger parameters without touching the tracker."""
        if mode not in MODES:
            raise ValidationError(
                f'Invalid mode {mode!r}. Use "{MODE_FIXED_DAYS}" or "{MODE_SINCE_LAST}".'
            )
        if mode == MODE_SINCE_LAST:
            return IngestionRequest(mode=mode)
        requested = DEFAULT_DAYS if days is None else days
        clamped, note = clamp_days(requested, self.settings.max_scrape_days)
        return IngestionRequest(
            mode=mode, days=clamped, requested_days=requested, note=note
        )

    def start(
        self, mode: str, days: Optional[int] = None
    ) -> Tuple[bool, str, JobStatus]:
        """Validate, claim the tracker and spawn the run; never waits for it.

        Returns ``(started, message, snapshot)``. When a run is already active
        nothing is started and the snapshot describes that run.
        """
        request = self.validate(mode, days)
        accepted, snapshot = self.tracker.try_start(request.mode, request.days)
        if not accepted:
            message = (
                f"Scraping already in progress ({snapshot.mode} mode). "
                f"Started at {snapshot.start_time}"
            )
            return False, message, snapshot

        if request.mode == MODE_SINCE_LAST:
            message = "Started scraping new papers in the background."
        else:
            message = (
                f"Started scraping papers for the last {request.days} days "
                "in the background."
            )
            if request.note:
                self.tracker.log(request.note)
                message += (
                    f" (Limited from {request.requested_days} days to "
                    f"{request.days} days)"
                )

        try:
            self._task = asyncio.create_task(
                self._supervise(request), name="ingestion-run"
            )
        except RuntimeError as exc:
            self.tracker.fail(f"Could not start ingestion run: {exc}")
            raise
        return True, message, self.tracker.snapshot()

    async def wait(self) -> JobStatus:
        """Wait for the current background run (if any) and return the final state."""
        if self._task is not None:
            await self._task
        return self.tracker.snapshot()

    async def _supervise(self, request: IngestionRequest) -> None:
        try:
            await self.run(request)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.exception("Error in background scraping")
            self.tracker.log(f"Error in background scraping: {message}")
            self.tracker.fail(message)
        finally:
            if self.tracker.is_running:
                self.tracker.fail("Ingestion run stopped before completion")

    def _note(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, message)
        self.tracker.log(message)

    async def run(self, request: IngestionRequest) -> Tuple[int, int]:
        """Process the whole window; returns ``(total_items, days_processed)``."""
        window: DateWindow = await asyncio.to_thread(
            resolve_window,
            request.mode,
            request.days,
            self.store,
            today=self._today(),
            ceiling=self.settings.max_scrape_days,
            fallback=self.settings.since_last_fallback_days,
        )
        total_days = window.days
        self.tracker.set_days_requested(total_days)
        if request.mode == MODE_SINCE_LAST:
            self._note(
                f"Most recent paper date in database: {window.most_recent or 'none'}. "
                f"Will scrape {total_days} days."
            )
            if window.note:
                self._note(window.note)
        self._note(f"Starting to scrape papers for the last {total_days} days...")

        total_items = 0
        days_processed = 0
        served: Set[date] = set()
        for index, day in enumerate(window.dates, start=1):
            self.tracker.update_progress(
                current_day=index,
                total_days=total_days,
                current_date=day,
                current_batch=0,
                total_batches=0,
            )
            self._note(f"Processing day {index}/{total_days}: {day.isoformat()}")

            try:
                found = await self._ingest_day(day, served)
            except FetchError as exc:
                self._note(
                    f"Error processing papers for date {day.isoformat()}: {exc}",
                    logging.WARNING,
                )
                found = 0

            if found:
                days_processed += 1
                total_items += found
            self.tracker.update_progress(items_so_far=total_items)
            self._note(
                f"Day {index}/{total_days} complete. Found {found} papers. "
                f"Total so far: {total_items}"
            )

            if index < total_days and self.settings.day_delay_seconds > 0:
                await asyncio.sleep(self.settings.day_delay_seconds)

        self.tracker.finish(total_items, days_processed)
        self._note(
            f"Completed scraping for {total_days} days. Total papers: {total_items}"
        )
        return total_items, days_processed

    async def _ingest_day(self, day: date, served: Set[date]) -> int:
        listing = await self.fetcher.fetch(day)
        if listing.served_date is None or not listing.items:
            self._note(f"No papers found for date: {day.isoformat()}")
            return 0
        if listing.served_date in served:
            self._note(
                f"Listing for {listing.served_date.isoformat()} already processed "
                f"in this run; skipping {day.isoformat()}"
            )
            return 0
        if listing.redirected:
            self._note(
                f"{day.isoformat()} redirected to {listing.served_date.isoformat()}"
            )
        served.add(listing.served_date)

        papers = normalize_items(listing.items, listing.served_date)
        if not papers:
            self._note(f"No valid papers in listing for date: {day.isoformat()}")
            return 0
        self._note(f"Found {len(papers)} papers for date: {listing.served_date.isoformat()}")

        def on_batch(index: int, total: int, size: int) -> None:
            self.tracker.update_progress(current_batch=index, total_batches=total)
            self._note(
                f"Saving batch {index}/{total} ({size} papers) for day {day.isoformat()}"
            )

        report = await self.upserter.upsert(papers, on_batch=on_batch)
        for failure in report.failed_batches:
            self._note(
                f"Batch {failure.index}/{report.batches} for {day.isoformat()} failed: "
                f"{failure.error}",
                logging.WARNING,
            )
        if report.failed_batches:
            self._note(
                f"Saved {report.saved}/{report.attempted} papers for date: {day.isoformat()}",
                logging.WARNING,
            )
        else:
            self._note(
                f"Successfully saved all {len(papers)} papers for date: {day.isoformat()}"
            )
        return len(papers)
