"""Bounded asyncio worker pool with caller-runs backpressure.

The pool limits how many coroutines run concurrently on behalf of the
orchestrator. Admission follows the classic core/max/queue policy:

1. While fewer than ``core_workers`` workers exist, a new worker starts
   with the submitted item as its first task.
2. Otherwise the item joins the bounded backlog.
3. When the backlog is full and fewer than ``max_workers`` workers exist,
   a surplus worker starts with the item.
4. When the backlog is full and the pool is at ``max_workers``, the
   submitting coroutine runs the item itself before ``submit`` returns.

No submission is dropped, and memory stays bounded by the backlog size.
Surplus workers exit after ``idle_timeout_s`` without work.

Example:
>>> pool = BoundedWorkerPool(WorkerPoolConfig(core_workers=2, max_workers=4))
>>> future = await pool.submit(render, "pdf")
>>> descriptor = await future
>>> await pool.shutdown(wait=True)

"""

from __future__ import annotations

import asyncio
import typing as typ

from reportflow.logging import get_logger, log_debug, log_info
from reportflow.workers.config import WorkerPoolConfig
from reportflow.workers.errors import PoolShutdownError

logger = get_logger(__name__)


class _WorkItem:
    """A submitted coroutine function with its arguments and result future."""

    __slots__ = ("args", "fn", "future", "kwargs")

    def __init__(
        self,
        fn: typ.Callable[..., typ.Awaitable[typ.Any]],
        args: tuple[typ.Any, ...],
        kwargs: dict[str, typ.Any],
        future: asyncio.Future[typ.Any],
    ) -> None:
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.future = future


class BoundedWorkerPool:
    """Run coroutine functions on a bounded set of worker tasks."""

    def __init__(
        self,
        config: WorkerPoolConfig | None = None,
        *,
        name: str = "reportflow",
    ) -> None:
        """Create an idle pool; workers start on demand.

        Parameters
        ----------
        config
            Pool limits; defaults to :class:`WorkerPoolConfig` defaults.
        name
            Label used in log messages and errors.

        """
        self._config = config or WorkerPoolConfig()
        self._name = name
        self._queue: asyncio.Queue[_WorkItem] = asyncio.Queue(
            maxsize=self._config.queue_size
        )
        self._workers: set[asyncio.Task[None]] = set()
        self._outstanding: set[asyncio.Future[typ.Any]] = set()
        self._shutdown = False
        self.caller_runs = 0

    @property
    def config(self) -> WorkerPoolConfig:
        """Return the limits this pool was built with."""
        return self._config

    @property
    def worker_count(self) -> int:
        """Return the number of live worker tasks."""
        return len(self._workers)

    @property
    def queued(self) -> int:
        """Return the number of items waiting in the backlog."""
        return self._queue.qsize()

    @property
    def is_shutdown(self) -> bool:
        """Return ``True`` once :meth:`shutdown` has been called."""
        return self._shutdown

    async def submit[**P, T](
        self,
        fn: typ.Callable[P, typ.Awaitable[T]],
        /,
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> asyncio.Future[T]:
        """Schedule ``fn(*args, **kwargs)`` and return its result future.

        When the pool is saturated the call runs the work inline, so the
        returned future is already resolved.

        Raises
        ------
        PoolShutdownError
            If the pool no longer accepts work.

        """
        if self._shutdown:
            raise PoolShutdownError(self._name)
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        item = _WorkItem(fn, args, kwargs, future)
        self._outstanding.add(future)
        future.add_done_callback(self._outstanding.discard)

        if len(self._workers) < self._config.core_workers:
            self._start_worker(item)
            return future
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            pass
        else:
            return future
        if len(self._workers) < self._config.max_workers:
            self._start_worker(item)
            return future

        self.caller_runs += 1
        log_debug(
            logger,
            "Pool %s saturated (%d workers, %d queued); running on caller",
            self._name,
            len(self._workers),
            self._queue.qsize(),
        )
        await self._run(item)
        return future

    async def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting work and stop the workers.

        Parameters
        ----------
        wait
            When ``True`` every outstanding item finishes first. When
            ``False`` queued items are cancelled and running items are
            interrupted.

        """
        self._shutdown = True
        if wait:
            while self._outstanding:
                await asyncio.wait(set(self._outstanding))
        else:
            while not self._queue.empty():
                self._queue.get_nowait().future.cancel()
        workers = set(self._workers)
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        for future in set(self._outstanding):
            future.cancel()
        log_info(logger, "Worker pool %s shut down (wait=%s)", self._name, wait)

    async def __aenter__(self) -> BoundedWorkerPool:
        """Return the pool for ``async with`` use."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Drain outstanding work before leaving the context."""
        await self.shutdown(wait=True)

    def _start_worker(self, first: _WorkItem) -> None:
        task = asyncio.create_task(
            self._work(first), name=f"{self._name}-worker-{len(self._workers)}"
        )
        self._workers.add(task)

    async def _work(self, first: _WorkItem) -> None:
        task = asyncio.current_task()
        try:
            await self._run(first)
            while True:
                item = await self._next_item()
                if item is None:
                    return
                await self._run(item)
        finally:
            self._workers.discard(task)  # type: ignore[arg-type]

    async def _next_item(self) -> _WorkItem | None:
        """Wait for queued work; ``None`` tells a surplus worker to exit."""
        while True:
            try:
                return await asyncio.wait_for(
                    self._queue.get(), timeout=self._config.idle_timeout_s
                )
            except TimeoutError:
                if len(self._workers) > self._config.core_workers:
                    return None

    @staticmethod
    async def _run(item: _WorkItem) -> None:
        if item.future.done():
            return
        try:
            result = await item.fn(*item.args, **item.kwargs)
        except asyncio.CancelledError:
            item.future.cancel()
            raise
        except Exception as exc:  # noqa: BLE001 - delivered through the future
            if not item.future.done():
                item.future.set_exception(exc)
        else:
            if not item.future.done():
                item.future.set_result(result)
