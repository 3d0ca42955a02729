import unittest
from datetime import date, timedelta

from dailypapers.errors import ValidationError
from dailypapers.schemas import JobStatus
from dailypapers.services.ingestion import IngestionOrchestrator
from dailypapers.services.job_tracker import JobTracker
from dailypapers.services.source import SourceListing
from dailypapers.services.upserter import BatchUpserter

from tests.helpers import FAST_SETTINGS, FakeFetcher, FetchError, make_paper, memory_store, raw_item

TODAY = date(2025, 3, 10)


def _week_of_listings(per_day: int = 2):
    listings = {}
    for offset in range(7):
        day = TODAY - timedelta(days=offset)
        listings[day] = [raw_item(f"{day:%y%m%d}.{n:05d}") for n in range(per_day)]
    return listings


class _RedirectingFetcher(FakeFetcher):
    """Every requested date is served from ``served``."""

    def __init__(self, served: date, items) -> None:
        super().__init__()
        self.served = served
        self.items = items

    async def fetch(self, day: date) -> SourceListing:
        self.calls.append(day)
        return SourceListing(day, self.served, list(self.items))


class IngestionOrchestratorTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = memory_store()
        self.tracker = JobTracker()

    def _orchestrator(self, fetcher) -> IngestionOrchestrator:
        return IngestionOrchestrator(
            self.tracker, fetcher, self.store, FAST_SETTINGS, today=lambda: TODAY
        )

    async def test_fixed_days_run_ingests_every_day(self) -> None:
        fetcher = FakeFetcher(_week_of_listings())
        orchestrator = self._orchestrator(fetcher)

        started, message, status = orchestrator.start("fixed-days", 7)
        self.assertTrue(started)
        self.assertTrue(status.is_running)
        self.assertIn("last 7 days", message)

        final = await orchestrator.wait()
        self.assertFalse(final.is_running)
        self.assertIsNone(final.last_error)
        self.assertEqual(final.last_result.total_items, 14)
        self.assertEqual(final.last_result.days_processed, 7)
        self.assertEqual(fetcher.calls[0], TODAY)
        self.assertEqual(fetcher.calls[-1], TODAY - timedelta(days=6))
        self.assertEqual(self.store.list_papers()[1], 14)

    async def test_failed_day_is_skipped_and_not_counted(self) -> None:
        third_day = TODAY - timedelta(days=2)
        fetcher = FakeFetcher(
            _week_of_listings(), failures={third_day: FetchError("HTTP 503")}
        )
        orchestrator = self._orchestrator(fetcher)

        orchestrator.start("fixed-days", 7)
        final = await orchestrator.wait()

        self.assertFalse(final.is_running)
        self.assertIsNone(final.last_error)
        self.assertEqual(final.last_result.days_processed, 6)
        self.assertEqual(final.last_result.total_items, 12)
        self.assertEqual(len(fetcher.calls), 7)
        self.assertTrue(
            any(f"Error processing papers for date {third_day}" in entry for entry in final.progress.logs)
        )

    async def test_second_trigger_reports_running_job(self) -> None:
        orchestrator = self._orchestrator(FakeFetcher(_week_of_listings()))

        started, _, first = orchestrator.start("fixed-days", 7)
        again, message, second = orchestrator.start("since-last")
        self.assertTrue(started)
        self.assertFalse(again)
        self.assertIn("already in progress", message)
        self.assertEqual(second.start_time, first.start_time)
        self.assertEqual(second.mode, "fixed-days")
        await orchestrator.wait()

    async def test_invalid_days_leave_tracker_untouched(self) -> None:
        orchestrator = self._orchestrator(FakeFetcher())
        for bad in (0, -5):
            with self.assertRaises(ValidationError):
                orchestrator.start("fixed-days", bad)
        with self.assertRaises(ValidationError):
            orchestrator.start("monthly", 3)
        self.assertEqual(self.tracker.snapshot(), JobStatus())

    async def test_missing_days_defaults_to_a_week(self) -> None:
        fetcher = FakeFetcher()
        orchestrator = self._orchestrator(fetcher)
        _, _, status = orchestrator.start("fixed-days", None)
        self.assertEqual(status.days_requested, 7)
        await orchestrator.wait()
        self.assertEqual(len(fetcher.calls), 7)

    async def test_request_above_ceiling_is_clamped_and_logged(self) -> None:
        fetcher = FakeFetcher()
        orchestrator = self._orchestrator(fetcher)

        started, message, status = orchestrator.start("fixed-days", 1000)
        self.assertTrue(started)
        self.assertEqual(status.days_requested, 365)
        self.assertIn("Limited from 1000 days to 365 days", message)
        self.assertTrue(any("from 1000 to 365" in entry for entry in status.progress.logs))

        final = await orchestrator.wait()
        self.assertEqual(len(fetcher.calls), 365)
        self.assertEqual(len(final.progress.logs), 500)

    async def test_unexpected_error_fails_the_run(self) -> None:
        fetcher = FakeFetcher(failures={TODAY: RuntimeError("boom")})
        orchestrator = self._orchestrator(fetcher)

        orchestrator.start("fixed-days", 3)
        final = await orchestrator.wait()

        self.assertFalse(final.is_running)
        self.assertEqual(final.last_error, "boom")
        self.assertIsNotNone(final.end_time)
        self.assertTrue(any("Error in background scraping: boom" in e for e in final.progress.logs))

        started, _, _ = orchestrator.start("fixed-days", 1)
        self.assertTrue(started)
        await orchestrator.wait()

    async def test_since_last_on_empty_store_uses_fallback_window(self) -> None:
        fetcher = FakeFetcher()
        orchestrator = self._orchestrator(fetcher)

        orchestrator.start("since-last")
        final = await orchestrator.wait()
        self.assertEqual(final.days_requested, 7)
        self.assertEqual(len(fetcher.calls), 7)

    async def test_since_last_resumes_from_most_recent_date(self) -> None:
        self.store.upsert_papers([make_paper("old", TODAY - timedelta(days=3))])
        fetcher = FakeFetcher()
        orchestrator = self._orchestrator(fetcher)

        orchestrator.start("since-last")
        final = await orchestrator.wait()
        self.assertEqual(final.days_requested, 3)
        self.assertEqual(fetcher.calls, [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2)])

    async def test_repeated_runs_do_not_duplicate_papers(self) -> None:
        orchestrator = self._orchestrator(FakeFetcher(_week_of_listings()))
        for _ in range(2):
            orchestrator.start("fixed-days", 7)
            await orchestrator.wait()
        self.assertEqual(self.store.list_papers()[1], 14)

    async def test_redirected_dates_are_stamped_and_processed_once(self) -> None:
        served = TODAY - timedelta(days=3)
        fetcher = _RedirectingFetcher(served, [raw_item("2503.00001"), raw_item("2503.00002")])
        orchestrator = self._orchestrator(fetcher)

        orchestrator.start("fixed-days", 2)
        final = await orchestrator.wait()

        self.assertEqual(final.last_result.total_items, 2)
        self.assertEqual(final.last_result.days_processed, 1)
        self.assertEqual(self.store.get_paper("2503.00001").published_date, served)

    async def test_listing_reached_by_redirect_is_not_counted_again(self) -> None:
        yesterday = TODAY - timedelta(days=1)
        items = [raw_item("2503.00001"), raw_item("2503.00002")]

        class _TodayRedirects(FakeFetcher):
            async def fetch(self, day: date) -> SourceListing:
                self.calls.append(day)
                return SourceListing(day, yesterday, list(items))

        fetcher = _TodayRedirects()
        orchestrator = self._orchestrator(fetcher)

        orchestrator.start("fixed-days", 2)
        final = await orchestrator.wait()

        self.assertEqual(fetcher.calls, [TODAY, yesterday])
        self.assertEqual(final.last_result.total_items, 2)
        self.assertEqual(final.last_result.days_processed, 1)
        self.assertTrue(any("already processed" in entry for entry in final.progress.logs))

    async def test_partially_saved_day_is_reported(self) -> None:
        real_upsert = self.store.upsert_papers

        def flaky_upsert(papers):
            if any(p.id.endswith("00001") for p in papers):
                raise RuntimeError("constraint failed")
            return real_upsert(papers)

        self.store.upsert_papers = flaky_upsert
        orchestrator = IngestionOrchestrator(
            self.tracker,
            FakeFetcher(_week_of_listings(per_day=3)),
            self.store,
            FAST_SETTINGS,
            upserter=BatchUpserter(self.store, batch_size=1, batch_delay=0),
            today=lambda: TODAY,
        )

        orchestrator.start("fixed-days", 1)
        final = await orchestrator.wait()

        self.assertIsNone(final.last_error)
        self.assertEqual(self.store.list_papers()[1], 2)
        self.assertTrue(any("Saved 2/3 papers" in entry for entry in final.progress.logs))

    async def test_progress_reflects_last_day(self) -> None:
        orchestrator = self._orchestrator(FakeFetcher(_week_of_listings(per_day=3)))
        orchestrator.start("fixed-days", 2)
        final = await orchestrator.wait()

        progress = final.progress
        self.assertEqual(progress.current_day, 2)
        self.assertEqual(progress.total_days, 2)
        self.assertEqual(progress.current_date, TODAY - timedelta(days=1))
        self.assertEqual(progress.items_so_far, 6)
        self.assertEqual(progress.total_batches, 1)


if __name__ == "__main__":
    unittest.main()
