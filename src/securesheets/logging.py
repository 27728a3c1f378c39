"""Loguru helpers for applications using securesheets.

The library logs through loguru's global ``logger`` and installs no sinks on
import. ``setup_logging`` adds one; each orchestrated request binds a request
id into ``request_id_ctx`` so its log lines can be correlated.
"""

import sys
from contextvars import ContextVar
from typing import Any, TextIO

from loguru import logger

PACKAGE_NAME = "securesheets"

# Id of the request currently being orchestrated in this task
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def format_record(record: dict[str, Any]) -> str:
    """Build the loguru format string for one record.

    Prefixes the active request id and appends any bound extra fields.
    """
    request_id = request_id_ctx.get()
    prefix = f"[req={request_id}] " if request_id else ""
    suffix = " <dim>{extra}</dim>" if record.get("extra") else ""

    return (
        "<green>{time:HH:mm:ss.SSS}</green> "
        "<level>{level: <7}</level> "
        "<cyan>{name}</cyan> "
        f"{prefix}"
        "<level>{message}</level>"
        f"{suffix}\n"
        "{exception}"
    )


def setup_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
    *,
    sink: TextIO = sys.stderr,
    library_only: bool = False,
) -> int:
    """Replace loguru's sinks with one configured for securesheets output.

    Args:
        json_logs: Emit serialized JSON records instead of colorized text
        log_level: Minimum level; use "DEBUG" to see nonce, CSRF and cache traces
        sink: Stream to write to
        library_only: Only pass records logged from the securesheets package

    Returns:
        The loguru handler id, for ``logger.remove``
    """
    logger.remove()
    record_filter = PACKAGE_NAME if library_only else None

    if json_logs:
        return logger.add(
            sink, format="{message}", level=log_level, filter=record_filter, serialize=True
        )
    return logger.add(
        sink,
        format=format_record,
        level=log_level,
        filter=record_filter,
        colorize=sink.isatty(),
    )


def set_request_context(request_id: str | None) -> None:
    request_id_ctx.set(request_id)


def clear_request_context() -> None:
    request_id_ctx.set(None)


__all__ = [
    "PACKAGE_NAME",
    "clear_request_context",
    "format_record",
    "request_id_ctx",
    "set_request_context",
    "setup_logging",
]
