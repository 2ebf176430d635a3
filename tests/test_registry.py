"""Tests for the in-process job registry."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import FrozenInstanceError

import pytest

from src.errors import JobNotFound
from src.jobs.models import JobState
from src.jobs.registry import JobRegistry
from src.summarization.models import FinalArtifact


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingWork:
    """Coroutine factory that records how many times it was started."""

    def __init__(self, result: object = "done", exc: Exception | None = None) -> None:
        self.calls = 0
        self.release = asyncio.Event()
        self.result = result
        self.exc = exc

    async def __call__(self) -> object:
        self.calls += 1
        await self.release.wait()
        if self.exc is not None:
            raise self.exc
        return self.result


class TestSubmitAndPoll:
    @pytest.mark.asyncio
    async def test_submit_returns_pending_immediately(self) -> None:
        registry = JobRegistry()
        work = CountingWork()
        job_id = registry.submit(work)

        status = registry.poll(job_id)
        assert status.state is JobState.PENDING
        assert status.result is None
        assert status.error is None

        work.release.set()
        await registry.wait(job_id)

    @pytest.mark.asyncio
    async def test_completed_job(self) -> None:
        registry = JobRegistry()
        work = CountingWork(result={"summary": "S"})
        job_id = registry.submit(work)
        work.release.set()

        status = await registry.wait(job_id)
        assert status.state is JobState.COMPLETED
        assert status.result == {"summary": "S"}
        assert status.error is None

    @pytest.mark.asyncio
    async def test_failed_job_is_observable(self) -> None:
        registry = JobRegistry()
        work = CountingWork(exc=RuntimeError("reduce exploded"))
        job_id = registry.submit(work)
        work.release.set()

        status = await registry.wait(job_id)
        assert status.state is JobState.FAILED
        assert status.error == "RuntimeError: reduce exploded"
        assert status.result is None

    @pytest.mark.asyncio
    async def test_work_factory_raising_synchronously_fails_job(self) -> None:
        def broken() -> object:
            raise ValueError("no input available")

        registry = JobRegistry()
        job_id = registry.submit(broken)  # type: ignore[arg-type]
        status = await registry.wait(job_id)
        assert status.state is JobState.FAILED
        assert "no input available" in (status.error or "")

    @pytest.mark.asyncio
    async def test_unknown_id(self) -> None:
        registry = JobRegistry()
        with pytest.raises(JobNotFound):
            registry.poll("unknown-id")

    @pytest.mark.asyncio
    async def test_unknown_id_distinct_from_pending(self) -> None:
        registry = JobRegistry()
        work = CountingWork()
        job_id = registry.submit(work)
        assert registry.poll(job_id).state is JobState.PENDING
        with pytest.raises(JobNotFound):
            registry.poll("unknown-id")
        work.release.set()
        await registry.wait(job_id)

    @pytest.mark.asyncio
    async def test_ids_are_unique(self) -> None:
        registry = JobRegistry()
        works = [CountingWork() for _ in range(20)]
        ids = [registry.submit(w) for w in works]
        assert len(set(ids)) == 20
        assert len(registry) == 20
        for w in works:
            w.release.set()
        await asyncio.gather(*(registry.wait(i) for i in ids))

    def test_submit_requires_running_loop(self) -> None:
        registry = JobRegistry()
        with pytest.raises(RuntimeError):
            registry.submit(CountingWork())


class TestStateMachine:
    @pytest.mark.asyncio
    async def test_terminal_state_is_stable(self) -> None:
        registry = JobRegistry()
        work = CountingWork(result=["payload"])
        job_id = registry.submit(work)
        work.release.set()

        first = await registry.wait(job_id)
        again = [registry.poll(job_id) for _ in range(5)]
        assert all(s == first for s in again)
        assert all(s.result == ["payload"] for s in again)

    @pytest.mark.asyncio
    async def test_work_runs_exactly_once(self) -> None:
        registry = JobRegistry()
        work = CountingWork()
        job_id = registry.submit(work)
        await asyncio.sleep(0)
        for _ in range(3):
            registry.poll(job_id)
        work.release.set()
        await registry.wait(job_id)
        registry.poll(job_id)
        assert work.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_job_ends_failed(self) -> None:
        registry = JobRegistry()
        work = CountingWork()
        job_id = registry.submit(work)
        await asyncio.sleep(0)

        task = registry._jobs[job_id].task
        assert task is not None
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        status = registry.poll(job_id)
        assert status.state is JobState.FAILED
        assert "cancelled" in (status.error or "")

    @pytest.mark.asyncio
    async def test_wait_timeout_does_not_cancel(self) -> None:
        registry = JobRegistry()
        work = CountingWork()
        job_id = registry.submit(work)

        status = await registry.wait(job_id, timeout=0.01)
        assert status.state is JobState.PENDING

        work.release.set()
        assert (await registry.wait(job_id)).state is JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_concurrent_submit_and_poll(self) -> None:
        registry = JobRegistry()

        async def quick(n: int) -> int:
            await asyncio.sleep(0)
            return n

        async def client(n: int) -> JobState:
            job_id = registry.submit(lambda: quick(n))
            while registry.poll(job_id).state is JobState.PENDING:
                await asyncio.sleep(0)
            status = registry.poll(job_id)
            assert status.result == n
            return status.state

        states = await asyncio.gather(*(client(n) for n in range(50)))
        assert states == [JobState.COMPLETED] * 50


class TestRetention:
    @pytest.mark.asyncio
    async def test_result_kept_for_multiple_pollers_until_ttl(self) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=10, unclaimed_ttl=None, clock=clock)
        work = CountingWork()
        job_id = registry.submit(work)
        work.release.set()
        await registry.wait(job_id)  # first terminal read

        clock.advance(9)
        assert registry.poll(job_id).state is JobState.COMPLETED
        clock.advance(1)
        with pytest.raises(JobNotFound):
            registry.poll(job_id)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_undelivered_result_never_lost_without_unclaimed_ttl(self) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=1, unclaimed_ttl=None, clock=clock)
        work = CountingWork(result="late")
        job_id = registry.submit(work)
        work.release.set()
        await asyncio.sleep(0.01)

        clock.advance(10_000)
        other = CountingWork()
        other.release.set()
        other_id = registry.submit(other)  # triggers eviction sweep
        status = registry.poll(job_id)
        assert status.state is JobState.COMPLETED
        assert status.result == "late"
        await registry.wait(other_id)

    @pytest.mark.asyncio
    async def test_undelivered_result_survives_result_ttl(self) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=1, unclaimed_ttl=60, clock=clock)
        work = CountingWork()
        job_id = registry.submit(work)
        work.release.set()
        await asyncio.sleep(0.01)

        clock.advance(30)
        assert registry.poll(job_id).state is JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_abandoned_result_evicted_after_unclaimed_ttl(self) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=1, unclaimed_ttl=60, clock=clock)
        work = CountingWork()
        job_id = registry.submit(work)
        work.release.set()
        await asyncio.sleep(0.01)

        clock.advance(60)
        with pytest.raises(JobNotFound):
            registry.poll(job_id)

    @pytest.mark.asyncio
    async def test_pending_never_evicted(self) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=1, unclaimed_ttl=1, clock=clock)
        work = CountingWork()
        job_id = registry.submit(work)

        clock.advance(10_000)
        assert registry.poll(job_id).state is JobState.PENDING
        work.release.set()
        await registry.wait(job_id)


class TestIdempotencyKey:
    @pytest.mark.asyncio
    async def test_same_key_reuses_live_job(self) -> None:
        registry = JobRegistry()
        first_work, second_work = CountingWork(), CountingWork()
        first = registry.submit(first_work, key="doc-hash")
        second = registry.submit(second_work, key="doc-hash")

        assert first == second
        first_work.release.set()
        await registry.wait(first)
        assert first_work.calls == 1
        assert second_work.calls == 0

    @pytest.mark.asyncio
    async def test_no_key_always_fresh(self) -> None:
        registry = JobRegistry()
        works = [CountingWork(), CountingWork()]
        ids = [registry.submit(w) for w in works]
        assert ids[0] != ids[1]
        for w in works:
            w.release.set()
        await asyncio.gather(*(registry.wait(i) for i in ids))

    @pytest.mark.asyncio
    async def test_failed_job_not_reused(self) -> None:
        registry = JobRegistry()
        failing = CountingWork(exc=RuntimeError("boom"))
        failing.release.set()
        first = registry.submit(failing, key="k")
        await registry.wait(first)

        retry = CountingWork()
        second = registry.submit(retry, key="k")
        assert second != first
        retry.release.set()
        await registry.wait(second)
        assert retry.calls == 1

    @pytest.mark.asyncio
    async def test_key_released_after_eviction(self) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=1, unclaimed_ttl=None, clock=clock)
        work = CountingWork()
        work.release.set()
        first = registry.submit(work, key="k")
        await registry.wait(first)

        clock.advance(5)
        again = CountingWork()
        again.release.set()
        second = registry.submit(again, key="k")
        assert second != first
        await registry.wait(second)


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_caller_edits_do_not_leak_into_later_polls(self) -> None:
        registry = JobRegistry()
        work = CountingWork(result=FinalArtifact(summary="S", topics=["Budget"]))
        job_id = registry.submit(work)
        work.release.set()

        first = await registry.wait(job_id)
        first.result.topics.append("tampered")
        with pytest.raises(FrozenInstanceError):
            first.result.summary = "changed"

        second = registry.poll(job_id)
        assert second.result == FinalArtifact(summary="S", topics=["Budget"])
        assert second.result is not first.result

    @pytest.mark.asyncio
    async def test_unread_eviction_logged_with_job_id(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        clock = FakeClock()
        registry = JobRegistry(result_ttl=1, unclaimed_ttl=60, clock=clock)
        work = CountingWork()
        job_id = registry.submit(work)
        work.release.set()
        await asyncio.sleep(0.01)

        clock.advance(60)
        with caplog.at_level(logging.WARNING, logger="src.jobs.registry"):
            with pytest.raises(JobNotFound):
                registry.poll(job_id)
        assert job_id in caplog.text
        assert "never polled" in caplog.text
