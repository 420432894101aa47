"""Unit tests for the bounded worker pool admission policy."""

from __future__ import annotations

import asyncio

import pytest

from reportflow.workers import BoundedWorkerPool, PoolShutdownError, WorkerPoolConfig


async def _wait_on(gate: asyncio.Event, value: str) -> str:
    await gate.wait()
    return value


async def _echo(value: str) -> str:
    return value


async def _explode() -> None:
    msg = "render exploded"
    raise RuntimeError(msg)


class TestSubmit:
    """Results and errors travel back through the returned future."""

    @pytest.mark.asyncio
    async def test_future_carries_result(self) -> None:
        """The future resolves with the coroutine's return value."""
        async with BoundedWorkerPool(WorkerPoolConfig(core_workers=1)) as pool:
            future = await pool.submit(_echo, "pdf")
            assert await future == "pdf"

    @pytest.mark.asyncio
    async def test_future_carries_exception(self) -> None:
        """Exceptions are delivered through the future, not raised by submit."""
        async with BoundedWorkerPool(WorkerPoolConfig(core_workers=1)) as pool:
            future = await pool.submit(_explode)
            with pytest.raises(RuntimeError, match="render exploded"):
                await future

    @pytest.mark.asyncio
    async def test_keyword_arguments_are_forwarded(self) -> None:
        """Keyword arguments reach the submitted function."""
        async with BoundedWorkerPool() as pool:
            future = await pool.submit(_echo, value="spreadsheet")
            assert await future == "spreadsheet"


class TestAdmission:
    """Core workers first, then backlog, then surplus, then caller-runs."""

    @pytest.mark.asyncio
    async def test_core_workers_start_before_queueing(self) -> None:
        """Submissions below core size start a worker each."""
        gate = asyncio.Event()
        config = WorkerPoolConfig(core_workers=2, max_workers=2, queue_size=4)
        pool = BoundedWorkerPool(config)
        await pool.submit(_wait_on, gate, "a")
        await pool.submit(_wait_on, gate, "b")
        assert pool.worker_count == 2, "expected one worker per core slot"
        assert pool.queued == 0

        await pool.submit(_wait_on, gate, "c")
        assert pool.worker_count == 2
        assert pool.queued == 1, "third item should wait in the backlog"

        gate.set()
        await pool.shutdown(wait=True)

    @pytest.mark.asyncio
    async def test_full_backlog_starts_surplus_worker(self) -> None:
        """A full backlog grows the pool up to max_workers."""
        gate = asyncio.Event()
        config = WorkerPoolConfig(core_workers=1, max_workers=2, queue_size=1)
        pool = BoundedWorkerPool(config)
        futures = [await pool.submit(_wait_on, gate, value) for value in "abc"]

        assert pool.worker_count == 2, "expected a surplus worker"
        assert pool.queued == 1
        assert pool.caller_runs == 0

        gate.set()
        assert [await future for future in futures] == ["a", "b", "c"]
        await pool.shutdown(wait=True)

    @pytest.mark.asyncio
    async def test_saturated_pool_runs_on_caller(self) -> None:
        """At max workers with a full backlog the caller does the work."""
        gate = asyncio.Event()
        config = WorkerPoolConfig(core_workers=1, max_workers=1, queue_size=1)
        pool = BoundedWorkerPool(config)
        first = await pool.submit(_wait_on, gate, "a")
        second = await pool.submit(_wait_on, gate, "b")

        inline = await pool.submit(_echo, "c")

        assert inline.done(), "caller-run work completes before submit returns"
        assert inline.result() == "c"
        assert pool.caller_runs == 1
        assert not first.done()
        assert not second.done()

        gate.set()
        assert await first == "a"
        assert await second == "b"
        await pool.shutdown(wait=True)

    @pytest.mark.asyncio
    async def test_surplus_workers_retire_when_idle(self) -> None:
        """Surplus workers exit after the idle timeout; core workers stay."""
        gate = asyncio.Event()
        config = WorkerPoolConfig(
            core_workers=1, max_workers=2, queue_size=1, idle_timeout_s=0.05
        )
        pool = BoundedWorkerPool(config)
        futures = [await pool.submit(_wait_on, gate, value) for value in "abc"]
        assert pool.worker_count == 2

        gate.set()
        await asyncio.gather(*futures)
        await asyncio.sleep(0.3)

        assert pool.worker_count == 1, "only the core worker should remain"
        await pool.shutdown(wait=True)


class TestShutdown:
    """Shutdown drains or cancels outstanding work and rejects new work."""

    @pytest.mark.asyncio
    async def test_rejects_new_work(self) -> None:
        """Submitting after shutdown raises PoolShutdownError."""
        pool = BoundedWorkerPool(name="closed")
        await pool.shutdown()
        assert pool.is_shutdown

        with pytest.raises(PoolShutdownError, match="closed"):
            await pool.submit(_echo, "late")

    @pytest.mark.asyncio
    async def test_wait_drains_backlog(self) -> None:
        """shutdown(wait=True) lets queued items finish."""
        done: list[str] = []

        async def _record(value: str) -> None:
            await asyncio.sleep(0.01)
            done.append(value)

        pool = BoundedWorkerPool(
            WorkerPoolConfig(core_workers=1, max_workers=1, queue_size=4)
        )
        futures = [await pool.submit(_record, value) for value in "abc"]
        await pool.shutdown(wait=True)

        assert done == ["a", "b", "c"]
        assert all(future.done() for future in futures)
        assert pool.worker_count == 0

    @pytest.mark.asyncio
    async def test_no_wait_cancels_outstanding(self) -> None:
        """shutdown(wait=False) cancels running and queued items."""
        gate = asyncio.Event()
        pool = BoundedWorkerPool(
            WorkerPoolConfig(core_workers=1, max_workers=1, queue_size=4)
        )
        running = await pool.submit(_wait_on, gate, "a")
        queued = await pool.submit(_wait_on, gate, "b")

        await pool.shutdown(wait=False)

        assert queued.cancelled(), "queued work should be cancelled"
        assert running.cancelled(), "running work should be interrupted"


class TestWorkerPoolConfig:
    """Validation of pool limits."""

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"core_workers": 0}, "core_workers"),
            ({"core_workers": 4, "max_workers": 2}, "max_workers"),
            ({"queue_size": 0}, "queue_size"),
            ({"idle_timeout_s": 0}, "idle_timeout_s"),
        ],
    )
    def test_rejects_invalid_limits(
        self, kwargs: dict[str, float], message: str
    ) -> None:
        """Impossible limits raise ValueError naming the field."""
        with pytest.raises(ValueError, match=message):
            WorkerPoolConfig(**kwargs)  # type: ignore[arg-type]

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables override the defaults."""
        monkeypatch.setenv("REPORTFLOW_POOL_CORE_WORKERS", "3")
        monkeypatch.setenv("REPORTFLOW_POOL_MAX_WORKERS", "6")
        monkeypatch.setenv("REPORTFLOW_POOL_QUEUE_SIZE", "12")
        monkeypatch.setenv("REPORTFLOW_POOL_IDLE_TIMEOUT_S", "2.5")

        config = WorkerPoolConfig.from_env()

        assert config == WorkerPoolConfig(
            core_workers=3, max_workers=6, queue_size=12, idle_timeout_s=2.5
        )
