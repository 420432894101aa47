"""Bounded concurrency for generator dispatch and remote deletes."""

from reportflow.workers.config import WorkerPoolConfig
from reportflow.workers.errors import PoolShutdownError
from reportflow.workers.pool import BoundedWorkerPool

__all__ = ["BoundedWorkerPool", "PoolShutdownError", "WorkerPoolConfig"]
