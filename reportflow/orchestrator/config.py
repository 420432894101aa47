"""Configuration for report orchestration.

Usage
-----
>>> config = OrchestratorConfig()
>>> config.join_timeout_s
60.0

Or load from environment variables:

>>> import os
>>> os.environ["REPORTFLOW_JOIN_TIMEOUT_S"] = "15"
>>> OrchestratorConfig.from_env().join_timeout_s
15.0

"""

from __future__ import annotations

import dataclasses as dc
import math

from reportflow.common.env import parse_positive_float, parse_positive_int


@dc.dataclass(frozen=True, slots=True)
class OrchestratorConfig:
    """Deadlines and retry limits for :class:`ReportOrchestrator`.

    Attributes
    ----------
    join_timeout_s
        Overall deadline for a synchronous submission to wait for both
        dispatches. Artifacts still pending at the deadline are reconciled
        as failed. Default is 60 seconds.
    delete_max_attempts
        Number of delete calls made against a generator before the remote
        copy is abandoned. Default is 3.
    delete_backoff_s
        Base delay between remote delete attempts; attempt ``n`` waits
        ``n * delete_backoff_s``. Default is 1 second.
    deletion_sweep_age_s
        Age after which a request still marked deleting is picked up by the
        stalled-deletion sweep. Default is 300 seconds.

    """

    join_timeout_s: float = 60.0
    delete_max_attempts: int = 3
    delete_backoff_s: float = 1.0
    deletion_sweep_age_s: float = 300.0

    def __post_init__(self) -> None:
        """Reject deadlines and limits the orchestrator cannot honour."""
        if self.delete_max_attempts < 1:
            msg = (
                "delete_max_attempts must be positive, got: "
                f"{self.delete_max_attempts}"
            )
            raise ValueError(msg)
        for name in ("join_timeout_s", "delete_backoff_s", "deletion_sweep_age_s"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                msg = f"{name} must be a positive number, got: {value}"
                raise ValueError(msg)

    @classmethod
    def from_env(cls) -> OrchestratorConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``REPORTFLOW_JOIN_TIMEOUT_S``
        - ``REPORTFLOW_DELETE_MAX_ATTEMPTS``
        - ``REPORTFLOW_DELETE_BACKOFF_S``
        - ``REPORTFLOW_DELETION_SWEEP_AGE_S``

        Returns
        -------
        OrchestratorConfig
            Configuration instance with values from environment or defaults.

        Raises
        ------
        ValueError
            If any variable is set to a malformed or non-positive value.

        """
        return cls(
            join_timeout_s=parse_positive_float("REPORTFLOW_JOIN_TIMEOUT_S", 60.0),
            delete_max_attempts=parse_positive_int(
                "REPORTFLOW_DELETE_MAX_ATTEMPTS", 3
            ),
            delete_backoff_s=parse_positive_float("REPORTFLOW_DELETE_BACKOFF_S", 1.0),
            deletion_sweep_age_s=parse_positive_float(
                "REPORTFLOW_DELETION_SWEEP_AGE_S", 300.0
            ),
        )
