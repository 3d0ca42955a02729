"""Process-wide ingestion job state.

A single lock guards the whole status struct: the Idle to Running transition
is a check-and-set under that lock, every update is applied inside it, and
readers get a deep copy so they never see a half-applied change.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

from ..models import utcnow
from ..schemas import JobProgress, JobResult, JobStatus

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 500

_PROGRESS_FIELDS = frozenset(JobProgress.model_fields) - {"logs"}


class JobTracker:
    def __init__(self, max_log_entries: int = MAX_LOG_ENTRIES) -> None:
        if max_log_entries < 1:
            raise ValueError("max_log_entries must be >= 1")
        self.max_log_entries = max_log_entries
        self._lock = threading.Lock()
        self._status = JobStatus()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._status.is_running

    def snapshot(self) -> JobStatus:
        with self._lock:
            return self._status.model_copy(deep=True)

    def try_start(
        self, mode: str, days_requested: Optional[int] = None
    ) -> Tuple[bool, JobStatus]:
        """Move Idle to Running; when already Running return the current state."""
        with self._lock:
            if self._status.is_running:
                return False, self._status.model_copy(deep=True)
            self._status = JobStatus(
                is_running=True,
                start_time=utcnow(),
                mode=mode,
                days_requested=days_requested,
                progress=JobProgress(total_days=days_requested or 0),
            )
            return True, self._status.model_copy(deep=True)

    def set_days_requested(self, days: int) -> None:
        with self._lock:
            self._status.days_requested = days
            self._progress().total_days = days

    def update_progress(self, **fields) -> None:
        """Merge the given progress fields; omitted fields keep their values."""
        unknown = set(fields) - _PROGRESS_FIELDS
        if unknown:
            raise ValueError(f"Unknown progress fields: {sorted(unknown)}")
        with self._lock:
            progress = self._progress()
            for name, value in fields.items():
                setattr(progress, name, value)

    def log(self, message: str) -> None:
        entry = f"{utcnow():%Y-%m-%dT%H:%M:%S}Z {message}"
        with self._lock:
            logs = self._progress().logs
            logs.append(entry)
            overflow = len(logs) - self.max_log_entries
            if overflow > 0:
                del logs[:overflow]

    def finish(self, total_items: int, days_processed: int) -> None:
        with self._lock:
            self._status.is_running = False
            self._status.end_time = utcnow()
            self._status.last_result = JobResult(
                total_items=total_items, days_processed=days_processed
            )

    def fail(self, error: str) -> None:
        with self._lock:
            self._status.is_running = False
            self._status.end_time = utcnow()
            self._status.last_error = error

    def _progress(self) -> JobProgress:
        # Caller holds the lock
        if self._status.progress is None:
            self._status.progress = JobProgress()
        return self._status.progress
