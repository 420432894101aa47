"""Sizing for the bounded worker pool.

>>> config = WorkerPoolConfig.from_env()
>>> config.core_workers <= config.max_workers
True

"""

from __future__ import annotations

import dataclasses as dc

from reportflow.common.env import parse_positive_float, parse_positive_int


@dc.dataclass(frozen=True, slots=True)
class WorkerPoolConfig:
    """Limits for :class:`~reportflow.workers.pool.BoundedWorkerPool`.

    Attributes
    ----------
    core_workers
        Workers kept alive even when idle.
    max_workers
        Upper bound on concurrent workers, surplus included.
    queue_size
        Capacity of the backlog. Submissions beyond it start surplus
        workers and, at ``max_workers``, run on the caller.
    idle_timeout_s
        Seconds a surplus worker waits for work before exiting.

    """

    core_workers: int = 4
    max_workers: int = 8
    queue_size: int = 32
    idle_timeout_s: float = 10.0

    def __post_init__(self) -> None:
        """Reject limits the pool cannot honour."""
        if self.core_workers < 1:
            msg = f"core_workers must be positive, got: {self.core_workers}"
            raise ValueError(msg)
        if self.max_workers < self.core_workers:
            msg = (
                f"max_workers ({self.max_workers}) must be at least "
                f"core_workers ({self.core_workers})"
            )
            raise ValueError(msg)
        if self.queue_size < 1:
            msg = f"queue_size must be positive, got: {self.queue_size}"
            raise ValueError(msg)
        if self.idle_timeout_s <= 0:
            msg = f"idle_timeout_s must be positive, got: {self.idle_timeout_s}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls) -> WorkerPoolConfig:
        """Create configuration from environment variables.

        Reads ``REPORTFLOW_POOL_CORE_WORKERS``,
        ``REPORTFLOW_POOL_MAX_WORKERS``, ``REPORTFLOW_POOL_QUEUE_SIZE`` and
        ``REPORTFLOW_POOL_IDLE_TIMEOUT_S``; blank values keep the defaults.

        Raises
        ------
        ValueError
            If a value is malformed, not positive, or the maximum is below
            the core size.

        """
        return cls(
            core_workers=parse_positive_int("REPORTFLOW_POOL_CORE_WORKERS", 4),
            max_workers=parse_positive_int("REPORTFLOW_POOL_MAX_WORKERS", 8),
            queue_size=parse_positive_int("REPORTFLOW_POOL_QUEUE_SIZE", 32),
            idle_timeout_s=parse_positive_float(
                "REPORTFLOW_POOL_IDLE_TIMEOUT_S", 10.0
            ),
        )
