"""In-process registry of background jobs: submit now, poll later.

Jobs live only in this process's memory. Work runs as an asyncio task on the
caller's event loop; the task records the outcome exactly once. Pollers only
ever see frozen :class:`JobStatus` snapshots.

Cleanup policy: a terminal job is retained for ``result_ttl`` seconds after
the first poll that observed its terminal state, so several pollers (or a
retried request) can all read it. A terminal job nobody has polled yet is
retained for ``unclaimed_ttl`` seconds after it finished (``None`` keeps it
until it is read). Pending jobs are never evicted.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import threading
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from src.config import settings
from src.errors import JobNotFound
from src.jobs.models import JobState, JobStatus

logger = logging.getLogger(__name__)

Work = Callable[[], Awaitable[Any]]


@dataclass
class _JobRecord:
    id: str
    created_at: float
    key: str | None = None
    state: JobState = JobState.PENDING
    result: Any = None
    error: str | None = None
    finished_at: float | None = None
    delivered_at: float | None = None
    task: asyncio.Task[None] | None = None

    def snapshot(self) -> JobStatus:
        # Each poller gets its own copy of the result.
        return JobStatus(
            job_id=self.id,
            state=self.state,
            result=copy.deepcopy(self.result),
            error=self.error,
        )


class JobRegistry:
    """Thread-safe map from job id to job record."""

    def __init__(
        self,
        result_ttl: float = 300.0,
        unclaimed_ttl: float | None = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.result_ttl = result_ttl
        self.unclaimed_ttl = unclaimed_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._jobs: dict[str, _JobRecord] = {}
        self._keys: dict[str, str] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def submit(self, work: Work, *, key: str | None = None) -> str:
        """Register a pending job and schedule *work* on the running event loop.

        Args:
            work: Zero-argument coroutine factory. Called exactly once.
            key: Optional idempotency key (e.g. a hash of the source document).
                While a pending or completed job with the same key is retained,
                its id is returned and no new work starts. Without a key every
                submission starts a fresh job.

        Returns:
            The job id.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            self._evict_expired()

            if key is not None:
                existing = self._jobs.get(self._keys.get(key, ""))
                if existing is not None and existing.state is not JobState.FAILED:
                    logger.info("Reusing job %s for key %s", existing.id, key)
                    return existing.id

            job_id = uuid.uuid4().hex
            record = _JobRecord(id=job_id, created_at=self._clock(), key=key)
            self._jobs[job_id] = record
            if key is not None:
                self._keys[key] = job_id
            record.task = loop.create_task(self._run(record, work), name=f"job-{job_id}")

        logger.info("Submitted job %s", job_id)
        return job_id

    def poll(self, job_id: str) -> JobStatus:
        """Return the current state of a job without blocking.

        Raises:
            JobNotFound: The id was never issued or its result was evicted.
        """
        with self._lock:
            self._evict_expired()
            record = self._jobs.get(job_id)
            if record is None:
                raise JobNotFound(job_id)
            if record.state.terminal and record.delivered_at is None:
                record.delivered_at = self._clock()
            return record.snapshot()

    async def wait(self, job_id: str, timeout: float | None = None) -> JobStatus:
        """Wait for a job to finish (or *timeout* to pass) and return its status.

        Waiting never cancels the job.
        """
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                raise JobNotFound(job_id)
            task = record.task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return self.poll(job_id)

    async def _run(self, record: _JobRecord, work: Work) -> None:
        try:
            result = await work()
        except asyncio.CancelledError:
            self._finish(record, JobState.FAILED, error="Job was cancelled before completing")
            raise
        except Exception as exc:
            logger.exception("Job %s failed", record.id)
            self._finish(record, JobState.FAILED, error=f"{type(exc).__name__}: {exc}")
        else:
            self._finish(record, JobState.COMPLETED, result=result)

    def _finish(
        self,
        record: _JobRecord,
        state: JobState,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            if record.state.terminal:
                return
            record.state = state
            record.result = result
            record.error = error
            record.finished_at = self._clock()
        logger.info("Job %s finished: %s", record.id, state.value)

    def _expired(self, record: _JobRecord, now: float) -> bool:
        if not record.state.terminal:
            return False
        if record.delivered_at is not None:
            return now - record.delivered_at >= self.result_ttl
        if self.unclaimed_ttl is None or record.finished_at is None:
            return False
        return now - record.finished_at >= self.unclaimed_ttl

    def _evict_expired(self) -> None:
        # Caller holds self._lock.
        now = self._clock()
        expired = [job_id for job_id, r in self._jobs.items() if self._expired(r, now)]
        for job_id in expired:
            record = self._jobs.pop(job_id)
            if record.delivered_at is None:
                logger.warning(
                    "Evicting job %s (%s) after %.0fs; its result was never polled",
                    job_id,
                    record.state.value,
                    self.unclaimed_ttl,
                )
            if record.key is not None and self._keys.get(record.key) == job_id:
                del self._keys[record.key]
        if expired:
            logger.debug("Evicted %d expired jobs", len(expired))


@lru_cache(maxsize=1)
def get_job_registry() -> JobRegistry:
    """Return the process-wide registry."""
    return JobRegistry(
        result_ttl=settings.job_result_ttl_seconds,
        unclaimed_ttl=settings.job_unclaimed_ttl_seconds,
    )
