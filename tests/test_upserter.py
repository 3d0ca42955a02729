import unittest
from datetime import date

from dailypapers.services.batching import batch_count, chunked
from dailypapers.services.upserter import BatchUpserter

from tests.helpers import make_paper

DAY = date(2025, 3, 10)


class _RecordingSink:
    def __init__(self, fail_on_call=None) -> None:
        self.fail_on_call = fail_on_call
        self.batches = []

    def upsert_papers(self, papers) -> int:
        self.batches.append([p.id for p in papers])
        if len(self.batches) == self.fail_on_call:
            raise RuntimeError("connection reset")
        return len(papers)


class BatchingTests(unittest.TestCase):
    def test_chunked_and_batch_count(self) -> None:
        self.assertEqual(list(chunked([1, 2, 3, 4, 5], 2)), [[1, 2], [3, 4], [5]])
        self.assertEqual(batch_count(45, 20), 3)
        self.assertEqual(batch_count(0, 20), 0)
        with self.assertRaises(ValueError):
            list(chunked([1], 0))


class BatchUpserterTests(unittest.IsolatedAsyncioTestCase):
    async def test_writes_in_fixed_size_batches(self) -> None:
        sink = _RecordingSink()
        papers = [make_paper(f"p{i:02d}", DAY) for i in range(45)]
        progress = []

        report = await BatchUpserter(sink, batch_size=20, batch_delay=0).upsert(
            papers, on_batch=lambda index, total, size: progress.append((index, total, size))
        )

        self.assertEqual([len(b) for b in sink.batches], [20, 20, 5])
        self.assertEqual(progress, [(1, 3, 20), (2, 3, 20), (3, 3, 5)])
        self.assertEqual(report.saved, 45)
        self.assertEqual(report.failed_batches, [])

    async def test_failed_batch_does_not_stop_the_rest(self) -> None:
        sink = _RecordingSink(fail_on_call=2)
        papers = [make_paper(f"p{i:02d}", DAY) for i in range(45)]

        report = await BatchUpserter(sink, batch_size=20, batch_delay=0).upsert(papers)

        self.assertEqual(len(sink.batches), 3)
        self.assertEqual(len(report.failed_batches), 1)
        failure = report.failed_batches[0]
        self.assertEqual(failure.index, 2)
        self.assertEqual(failure.item_ids[0], "p20")
        self.assertIn("connection reset", failure.error)
        self.assertEqual(report.saved, 25)


if __name__ == "__main__":
    unittest.main()
