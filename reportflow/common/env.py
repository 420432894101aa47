"""Environment variable parsing shared by the ``from_env`` constructors.

Every reportflow configuration dataclass reads ``REPORTFLOW_*`` variables.
Blank values fall back to the default; malformed or non-positive values
raise ``ValueError`` naming the offending variable.
"""

from __future__ import annotations

import math
import os


def read_str(env_var: str, default: str) -> str:
    """Return the stripped value of *env_var*, or *default* when blank."""
    raw = os.environ.get(env_var, "").strip()
    return raw or default


def read_optional_str(env_var: str) -> str | None:
    """Return the stripped value of *env_var*, or ``None`` when blank."""
    raw = os.environ.get(env_var, "").strip()
    return raw or None


def parse_positive_int(env_var: str, default: int) -> int:
    """Read a positive integer env var, falling back to a default."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def parse_positive_float(env_var: str, default: float) -> float:
    """Read a positive float env var, falling back to a default."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if not math.isfinite(value) or value <= 0:
        msg = f"{env_var} must be a positive finite number, got: {raw!r}"
        raise ValueError(msg)
    return value


def parse_flag(env_var: str) -> bool:
    """Return ``True`` when *env_var* holds a truthy switch value."""
    return os.environ.get(env_var, "").strip().lower() in {"1", "true", "yes"}
