"""femtologging helpers shared by every reportflow process.

Records are built eagerly from percent-style templates, so the femtologging
worker thread only ever receives finished strings. Levels read from the
environment go through :func:`normalize_log_level` before they reach
``basicConfig``.

Example:
>>> from reportflow.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Dispatched %s for %s", "pdf", "Req-1")

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger


class LogLevel(enum.StrEnum):
    """Level names femtologging understands."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


FALLBACK_LEVEL = LogLevel.INFO


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Map a raw level name onto :class:`LogLevel`.

    Returns
    -------
    tuple[str, bool]
        The canonical name, and ``True`` when *level* was blank or unknown
        and :data:`FALLBACK_LEVEL` was used instead.

    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (FALLBACK_LEVEL.value, True)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Install the root femtologging configuration at *level*.

    ``force`` replaces handlers from an earlier call. The return value is
    that of :func:`normalize_log_level` so callers can warn about a
    rejected level once logging works.
    """
    normalized, rejected = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, rejected)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate *args* into *template* with ``%``."""
    return template % args


class _SupportsLog(typ.Protocol):
    """femtologging loggers and the doubles tests substitute for them."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    message: str,
    exc_info: object | None,
) -> None:
    logger.log(level.value, message, exc_info=exc_info, stack_info=False)


def log_debug(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit a DEBUG record."""
    _emit(logger, LogLevel.DEBUG, format_log_message(template, *args), exc_info)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit an INFO record.

    Parameters
    ----------
    logger
        femtologging logger, usually the module's ``get_logger(__name__)``.
    template
        ``%``-style template; *args* are interpolated before emission.
    exc_info
        Exception attached to the record, if any.

    """
    _emit(logger, LogLevel.INFO, format_log_message(template, *args), exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit a WARNING record; see :func:`log_info`."""
    _emit(logger, LogLevel.WARNING, format_log_message(template, *args), exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit an ERROR record; see :func:`log_info`."""
    _emit(logger, LogLevel.ERROR, format_log_message(template, *args), exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Emit an ERROR record carrying *exc* and its traceback.

    *message* is used as is, so it must already be formatted.
    """
    _emit(logger, LogLevel.ERROR, message, exc)


__all__ = [
    "FALLBACK_LEVEL",
    "LogLevel",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
