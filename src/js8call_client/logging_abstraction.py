"""Logging for the JS8Call client.

Every module logs through a JS8Logger, which passes ``extra={...}`` context
down as ``record.extra_data``. Two formatters render it: JSON lines for a log
file and a single human-readable line for the console. Both stamp the trace id
of the command (``req-<id>``) or CLI run in progress.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from js8call_client.correlation import get_trace_id

__all__ = [
    "HumanReadableFormatter",
    "JS8Logger",
    "JSONFormatter",
    "get_logger",
    "set_package_level",
]


def _context_of(record: logging.LogRecord) -> dict[str, object]:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping):
        return {str(key): val for key, val in extra_data.items()}
    return {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for machine consumption."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "line": record.lineno,
            "message": record.getMessage(),
            "trace_id": get_trace_id(),
        }
        if context := _context_of(record):
            log_data["context"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``time LEVEL [module:line] [trace] > message | key=value ...``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(trace_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        trace_id = get_trace_id()
        record.trace_id = f"[{trace_id[:8]}]" if trace_id else "[--------]"

        formatted = super().format(record)
        if context := _context_of(record):
            formatted += " | " + " | ".join(f"{k}={v}" for k, v in context.items())
        return formatted


class JS8Logger:
    """Thin wrapper over ``logging.Logger`` that accepts structured context.

    Handlers are attached once per logger name: a human-readable stream (or
    file) and, when ``log_format`` asks for JSON, a JSON-lines file.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str = "stderr",
    ) -> None:
        """Initialize JS8Logger.

        Args:
            name: Logger name (the module's ``__name__``)
            log_format: "human", "json" or "both"
            json_file: Destination of JSON lines (JSON output is off without one)
            human_output: "stdout", "stderr" or a file path

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

        from js8call_client.const import JS8CALL_DEBUG

        self.logger.setLevel(logging.DEBUG if JS8CALL_DEBUG else logging.INFO)
        if not self.logger.handlers:
            for handler in self._build_handlers(log_format, json_file, human_output):
                handler.setLevel(self.logger.level)
                self.logger.addHandler(handler)

    @staticmethod
    def _build_handlers(
        log_format: str,
        json_file: str | Path | None,
        human_output: str,
    ) -> list[logging.Handler]:
        handlers: list[logging.Handler] = []

        if log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
            except OSError as e:
                print(f"Warning: cannot open JSON log {json_file}: {e}", file=sys.stderr)
            else:
                json_handler.setFormatter(JSONFormatter())
                handlers.append(json_handler)

        if log_format in ("human", "both"):
            human_handler: logging.Handler
            if human_output in ("stdout", "stderr"):
                human_handler = logging.StreamHandler(getattr(sys, human_output))
            else:
                try:
                    human_path = Path(human_output)
                    human_path.parent.mkdir(parents=True, exist_ok=True)
                    human_handler = logging.FileHandler(human_path, mode="a")
                except OSError as e:
                    print(f"Warning: cannot open log file {human_output}: {e}", file=sys.stderr)
                    human_handler = logging.StreamHandler(sys.stderr)
            human_handler.setFormatter(HumanReadableFormatter())
            handlers.append(human_handler)

        return handlers

    def _log(
        self,
        level: int,
        msg: str,
        *args: object,
        extra: Mapping[str, object] | None = None,
        exc_info: bool = False,
    ) -> None:
        payload = {"extra_data": dict(extra)} if extra else None
        # stacklevel 3 skips _log and the public method so records show the caller
        self.logger.log(level, msg, *args, extra=payload, exc_info=exc_info, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the traceback of the exception being handled."""
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(name: str) -> JS8Logger:
    """Return a JS8Logger configured from the JS8CALL_LOG_* environment."""
    from js8call_client.const import (
        JS8CALL_LOG_FORMAT,
        JS8CALL_LOG_HUMAN_OUTPUT,
        JS8CALL_LOG_JSON_FILE,
    )

    return JS8Logger(
        name,
        log_format=JS8CALL_LOG_FORMAT,
        json_file=JS8CALL_LOG_JSON_FILE,
        human_output=JS8CALL_LOG_HUMAN_OUTPUT,
    )


def set_package_level(level: int, package: str = "js8call_client") -> None:
    """Set level on every already-created logger (and handler) under package."""
    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name == package or name.startswith(f"{package}."):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                handler.setLevel(level)
