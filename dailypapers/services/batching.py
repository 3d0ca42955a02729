"""Batch helpers shared by the upserter and the enrichment runner."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def batch_count(total: int, size: int) -> int:
    return (total + size - 1) // size if total > 0 else 0


@dataclass(frozen=True)
class ItemFailure:
    item_id: str
    error: str


@dataclass
class BatchOutcome:
    succeeded: int = 0
    failed: int = 0
    failures: List[ItemFailure] = field(default_factory=list)

    def record_success(self, count: int = 1) -> None:
        self.succeeded += count

    def record_failure(self, item_id: str, error: str) -> None:
        self.failed += 1
        self.failures.append(ItemFailure(item_id=item_id, error=error))
