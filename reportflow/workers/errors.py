"""Errors raised by the bounded worker pool."""

from __future__ import annotations


class PoolShutdownError(RuntimeError):
    """Raised when work is submitted to a pool that is shutting down."""

    def __init__(self, name: str) -> None:
        """Name the pool that rejected the submission."""
        self.pool_name = name
        super().__init__(f"worker pool {name!r} is shut down")
