"""Logging utilities for forestkit.

The engine logs through loguru under the ``forestkit`` name. Logging is
disabled for the package at import time; callers opt in with
``enable_logging()``, which returns a ``LoggingHandle`` that removes its
handler again when disabled or used as a context manager.

Note:
    Importing this module removes loguru's default stderr handler (ID 0) so
    that ``enable_logging()`` does not produce duplicate lines. If your
    application replaced handler 0 before importing forestkit, the removal is
    a no-op.
"""

from __future__ import annotations

import contextlib
import sys
import threading
from typing import TYPE_CHECKING, ClassVar, Final, Literal, TextIO

from loguru import logger

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from loguru import Record

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

with contextlib.suppress(ValueError):
    logger.remove(0)

type LogLevel = Literal[
    "TRACE",
    "DEBUG",
    "INFO",
    "SUCCESS",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

type LogFormat = Literal["short", "full"]

_SHORT_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "  # noqa: RUF027 - loguru format string
    "<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)
_FULL_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "  # noqa: RUF027 - loguru format string
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class LoggingHandle:
    """Handle owning one loguru handler added by ``enable_logging``.

    Examples:
        >>> with enable_logging(level="DEBUG"):  # doctest: +SKIP
        ...     table = FeatureTable.from_columns(columns)

        >>> handle = enable_logging()  # doctest: +SKIP
        >>> handle.disable()  # doctest: +SKIP
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        """Initialize the logging handle.

        Args:
            handler_id (int): The loguru handler ID from logger.add().
        """
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove this handle's handler.

        When the last active handle is removed, ``logger.disable("forestkit")``
        is called so engine records stop flowing to any sink.
        """
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        """Enter context manager.

        Returns:
            LoggingHandle: This handle instance.
        """
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and disable logging."""
        self.disable()

    @classmethod
    def get_active_handle_count(cls) -> int:
        """Return the number of handles that have not been disabled.

        Returns:
            int: Count of active handles.
        """
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(
    *,
    level: LogLevel = "DEBUG",
    log_format: LogFormat = "short",
    sink: str | Path | TextIO = sys.stderr,
) -> LoggingHandle:
    """Enable forestkit logging.

    forestkit emits these records:

    - DEBUG: table construction, contrast creation and permutation, feature
      data replacement, bootstrap sizes, AFM orientation and reader summaries.
    - TRACE: one record per admissible split with the candidate feature, the
      delta impurity and the left/right sizes. A forest run produces millions
      of these, so pass ``level="TRACE"`` only when inspecting a single node.
    - WARNING: polars columns skipped by `FeatureTable.from_polars`.
    - ERROR: the reason a feature table was rejected, just before the
      exception propagates.

    Args:
        level (LogLevel): Minimum level to emit. Defaults to "DEBUG", which
            shows every record except split evaluations.
        log_format (LogFormat): "short" shows only the function name, "full"
            adds module and line number.
        sink (str | Path | TextIO): Where records go. A path is opened by
            loguru in append mode and closed when the handle is disabled.
            Defaults to stderr.

    Returns:
        LoggingHandle: Independent handle for managing the handler.

    Examples:
        >>> with enable_logging(level="TRACE", sink="node.log"):  # doctest: +SKIP
        ...     find_split(table, target_idx, feature_idx, 5, in_bag)
    """
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(
        sink,
        level=level,
        filter=_is_forestkit_record,
        format=_SHORT_FORMAT if log_format == "short" else _FULL_FORMAT,
    )
    return LoggingHandle(handler_id)


def _is_forestkit_record(record: Record) -> bool:
    """Pass only records emitted from inside the forestkit package.

    Args:
        record (Record): The loguru Record object to filter.

    Returns:
        bool: True if the record originates from forestkit.
    """
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
