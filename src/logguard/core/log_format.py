"""Hooks that run the Desensitizer on records going through ``logging``."""

import logging
import sys
import threading
from contextlib import contextmanager
from typing import Optional

from logguard.core.engine import Desensitizer

DEFAULT_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)-5s %(name)s - %(message)s"

LOG_FORMAT_ERROR = "[LOG_FORMAT_ERROR]"

_local = threading.local()


@contextmanager
def _masking_guard():
    """Yields False when called again from inside a masking pass on this thread.

    The engine logs its own warnings, and those records can come back
    through the same handler while the outer record is still being masked.
    """
    if getattr(_local, "active", False):
        yield False
        return
    _local.active = True
    try:
        yield True
    finally:
        _local.active = False


class DesensitizingFormatter(logging.Formatter):
    """Formats a record as usual, then masks the resulting line.

    Pass ``delegate`` to wrap an existing formatter instead of using ``fmt``.
    """

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        style: str = "%",
        desensitizer: Optional[Desensitizer] = None,
        delegate: Optional[logging.Formatter] = None,
    ):
        super().__init__(fmt, datefmt, style)
        self.desensitizer = desensitizer or Desensitizer()
        self.delegate = delegate

    def _format_plain(self, record: logging.LogRecord) -> str:
        if self.delegate is not None:
            return self.delegate.format(record)
        return super().format(record)

    def format(self, record: logging.LogRecord) -> str:
        with _masking_guard() as outermost:
            if not outermost:
                return self._format_plain(record)
            try:
                return self.desensitizer.apply(self._format_plain(record))
            except Exception as e:
                print(f"[DESENSITIZE ERROR] Failed to format log record: {e}", file=sys.stderr)
                return LOG_FORMAT_ERROR


class DesensitizeFilter(logging.Filter):
    """Replaces ``record.msg`` with the masked, fully interpolated message."""

    def __init__(self, desensitizer: Optional[Desensitizer] = None, name: str = ""):
        super().__init__(name)
        self.desensitizer = desensitizer or Desensitizer()

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        with _masking_guard() as outermost:
            if not outermost:
                return True
            try:
                message = record.getMessage()
            except (TypeError, ValueError):
                # Bad %-args: leave the record for Handler.handleError to report
                return True
            record.msg = self.desensitizer.apply(message)
            record.args = None
        return True


def install(
    logger: Optional[logging.Logger] = None,
    desensitizer: Optional[Desensitizer] = None,
    fmt: str = DEFAULT_FORMAT,
) -> int:
    """Wrap the formatter of every handler on ``logger`` (root by default).

    Handlers without a formatter get one built from ``fmt``. Returns how many
    handlers were changed; handlers already wrapped are left alone.
    """
    logger = logger if logger is not None else logging.getLogger()
    desensitizer = desensitizer or Desensitizer()

    updated = 0
    for handler in logger.handlers:
        if isinstance(handler.formatter, DesensitizingFormatter):
            continue
        delegate = handler.formatter or logging.Formatter(fmt)
        handler.setFormatter(DesensitizingFormatter(desensitizer=desensitizer, delegate=delegate))
        updated += 1

    logging.getLogger(__name__).info(
        "Desensitizing formatter installed on %d handler(s) of logger %r", updated, logger.name
    )
    return updated
