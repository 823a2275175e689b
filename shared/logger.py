"""
AirLedger Structured Logger
============================

Provides :class:`AirLogger`, a thin structured-logging facade used by every
AirLedger module.  Records go to a Rich console handler on stderr and,
optionally, to a size-rotated log file in plain text or JSON-lines form.

Each record carries the emitting component (``tool_name``) and, while an
:meth:`AirLogger.operation` block is active, the current operation name
(e.g. ``"ledger.update"``), so that a JSON log of a long ingestion run can
be filtered per stage.

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
import weakref
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Root namespace for every AirLedger logger
LOGGER_NAMESPACE = "airledger"

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bold bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
        "log.level.critical": "bold white on red",
    }
)

_PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_STANDARD_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})


# ========================== JSON Formatter =================================


class _JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Example::

        {"timestamp": "2024-05-01T10:00:00+00:00", "level": "WARNING",
         "logger": "airledger.ledger.core", "message": "Snapshot save failed",
         "tool_name": "ledger.core", "operation": "flush",
         "extra": {"path": "/data/ledger.json"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in ("tool_name", "operation"):
            val = getattr(record, attr, None)
            if val is not None:
                entry[attr] = val

        extra = getattr(record, "air_extra", None)
        if extra:
            entry["extra"] = extra

        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


# ========================== Rich Console Handler ===========================


class _RichStderrHandler(RichHandler):
    """RichHandler bound to a themed stderr console."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(
            console=Console(theme=_LOG_THEME, stderr=True),
            show_path=False,
            show_time=True,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
            **kwargs,
        )


# ========================== AirLogger ======================================


class AirLogger:
    """Structured logger bound to one AirLedger component.

    Usage::

        log = AirLogger("ledger.core")
        log.info("Loaded 42 networks", path="ledger.json")
        with log.operation("flush"):
            log.warning("Snapshot save failed")

    Keyword arguments that are not standard :mod:`logging` arguments are
    collected into the record's ``extra`` payload, which the JSON file
    handler emits verbatim.

    Args:
        tool_name:      Component name; the stdlib logger becomes
                        ``airledger.<tool_name>``.
        log_level:      Minimum level name (``DEBUG`` .. ``CRITICAL``).
        log_file:       Rotating log file path, ``None`` disables file output.
        json_logs:      Emit JSON lines instead of plain text to the file.
        max_bytes:      Rotation threshold in bytes.
        backup_count:   Rotated files to keep.
        console_output: Attach the Rich stderr handler.
    """

    def __init__(
        self,
        tool_name: str,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        max_bytes: int = 5_242_880,
        backup_count: int = 3,
        console_output: bool = True,
    ) -> None:
        self._tool_name = tool_name
        self._operation: str | None = None
        self._logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{tool_name}")
        self._logger.propagate = False
        self._apply(
            log_level=log_level,
            log_file=log_file,
            json_logs=json_logs,
            max_bytes=max_bytes,
            backup_count=backup_count,
            console_output=console_output,
        )
        AirLogger._instances.add(self)

    # Every logger created so far, so that configure() can retarget them
    _instances: "weakref.WeakSet[AirLogger]" = weakref.WeakSet()

    def _apply(
        self,
        *,
        log_level: str,
        log_file: str | Path | None,
        json_logs: bool,
        max_bytes: int,
        backup_count: int,
        console_output: bool,
    ) -> None:
        level = getattr(logging, log_level.upper(), logging.INFO)
        self._logger.setLevel(level)

        # Re-instantiation replaces handlers instead of stacking them
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

        if console_output:
            self._logger.addHandler(_RichStderrHandler(level=level))

        if log_file is not None:
            file_path = Path(log_file)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                filename=str(file_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            fh.setLevel(level)
            if json_logs:
                fh.setFormatter(_JSONFormatter())
            else:
                fh.setFormatter(
                    logging.Formatter(
                        fmt=_PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"
                    )
                )
            self._logger.addHandler(fh)

    @classmethod
    def configure(
        cls,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        console_output: bool = True,
    ) -> None:
        """Re-apply level and handlers to every live :class:`AirLogger`.

        Module-level loggers are created at import time with defaults; the
        composition root calls this once the configuration is known.
        """
        for inst in list(cls._instances):
            inst._apply(
                log_level=log_level,
                log_file=log_file,
                json_logs=json_logs,
                max_bytes=5_242_880,
                backup_count=3,
                console_output=console_output,
            )

    # ------------------------------------------------------------------ #
    #  Operation scope
    # ------------------------------------------------------------------ #

    class _OperationContext:
        """Temporarily bind an operation name to the parent logger."""

        def __init__(self, parent: AirLogger, operation: str) -> None:
            self._parent = parent
            self._operation = operation
            self._prev: str | None = None

        def __enter__(self) -> AirLogger:
            self._prev = self._parent._operation
            self._parent._operation = self._operation
            return self._parent

        def __exit__(self, *exc: Any) -> None:
            self._parent._operation = self._prev

    def operation(self, name: str) -> _OperationContext:
        """Context manager adding ``operation=<name>`` to every record."""
        return self._OperationContext(self, name)

    # ------------------------------------------------------------------ #
    #  Log methods
    # ------------------------------------------------------------------ #

    def _enrich(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        extra = kwargs.pop("extra", None) or {}
        payload = {
            key: kwargs.pop(key) for key in list(kwargs)
            if key not in _STANDARD_KWARGS
        }
        extra["tool_name"] = self._tool_name
        extra["operation"] = self._operation
        if payload:
            extra["air_extra"] = payload
        kwargs["extra"] = extra
        return kwargs

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **self._enrich(kwargs))

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **self._enrich(kwargs))

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **self._enrich(kwargs))

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **self._enrich(kwargs))

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.critical(msg, *args, **self._enrich(kwargs))

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        kwargs.setdefault("exc_info", True)
        self._logger.error(msg, *args, **self._enrich(kwargs))

    # ------------------------------------------------------------------ #
    #  Timing helper
    # ------------------------------------------------------------------ #

    class _TimingContext:
        """Log the wall-clock duration of a block at DEBUG level."""

        def __init__(self, parent: AirLogger, label: str) -> None:
            self._parent = parent
            self._label = label
            self._start = 0.0

        def __enter__(self) -> AirLogger._TimingContext:
            self._start = time.perf_counter()
            return self

        def __exit__(self, *exc: Any) -> None:
            self._parent.debug(
                "%s finished in %.3f s", self._label, self.elapsed
            )

        @property
        def elapsed(self) -> float:
            """Seconds since the block was entered."""
            return time.perf_counter() - self._start

    def timed(self, label: str) -> _TimingContext:
        """Context manager measuring how long *label* took."""
        return self._TimingContext(self, label)
