# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Application logger and the OpenTelemetry diagnostics bridge.

OpenTelemetry's Python SDK reports its own diagnostics through the
``opentelemetry`` logger hierarchy.  :func:`install_diagnostic_bridge`
routes those records through :class:`DiagnosticLogBridge`, which forwards
every call into the application logger with an ``otel:`` prefix.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional, Protocol

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOGGER_NAME = "fncounters"
DIAG_PREFIX = "otel: "

_OTEL_LOGGER_NAME = "opentelemetry"


def get_log_level(level_name: Optional[str]) -> int:
    """Resolve a level name such as ``"info"`` or ``"TRACE"``; default DEBUG."""
    if not level_name:
        return logging.DEBUG
    level = logging.getLevelName(level_name.upper())
    if isinstance(level, int):
        return level
    return logging.DEBUG


# Cloud Logging severities; TRACE has no counterpart and is reported as DEBUG.
_SEVERITIES = {
    TRACE: "DEBUG",
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARNING",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _severity(levelno: int) -> str:
    for threshold in sorted(_SEVERITIES, reverse=True):
        if levelno >= threshold:
            return _SEVERITIES[threshold]
    return "DEFAULT"


class CloudLoggingFormatter(logging.Formatter):
    """One JSON object per record, in the shape Cloud Logging parses from stdout."""

    def __init__(self, project_id: Optional[str] = None) -> None:
        super().__init__()
        self.project_id = project_id

    def format(self, record: logging.LogRecord) -> str:
        payload: MutableMapping[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": _severity(record.levelno),
            "message": record.getMessage(),
            "logger": record.name,
        }
        if self.project_id:
            payload["logging.googleapis.com/labels"] = {"project_id": self.project_id}

        # logger.info("x", extra={"foo": "bar"})
        extra = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level_name: Optional[str] = None, project_id: Optional[str] = None) -> logging.Logger:
    """Attach a JSON stdout handler to the application logger and set its level.

    Calling it again updates the level and project label of the existing handler.
    """
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(get_log_level(level_name))

    handler = next((h for h in app_logger.handlers if getattr(h, "_fncounters_stdout", False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler._fncounters_stdout = True  # type: ignore[attr-defined]
        app_logger.addHandler(handler)
    handler.setFormatter(CloudLoggingFormatter(project_id))

    return app_logger


class DiagnosticLogger(Protocol):
    """Five-level diagnostics interface emitted by telemetry libraries."""

    def verbose(self, message: str, *args: Any) -> None: ...

    def debug(self, message: str, *args: Any) -> None: ...

    def info(self, message: str, *args: Any) -> None: ...

    def warn(self, message: str, *args: Any) -> None: ...

    def error(self, message: str, *args: Any) -> None: ...


class DiagnosticLogBridge:
    """Implements :class:`DiagnosticLogger` on top of a ``logging.Logger``."""

    def __init__(self, target: Optional[logging.Logger] = None) -> None:
        self._logger = target or logging.getLogger(f"{LOGGER_NAME}.otel")

    def _forward(self, level: int, message: str, args: tuple) -> None:
        self._logger.log(level, "%s%s %s", DIAG_PREFIX, message, json.dumps(list(args), default=str))

    def verbose(self, message: str, *args: Any) -> None:
        self._forward(TRACE, message, args)

    def debug(self, message: str, *args: Any) -> None:
        self._forward(logging.DEBUG, message, args)

    def info(self, message: str, *args: Any) -> None:
        self._forward(logging.INFO, message, args)

    def warn(self, message: str, *args: Any) -> None:
        self._forward(logging.WARNING, message, args)

    def error(self, message: str, *args: Any) -> None:
        self._forward(logging.ERROR, message, args)


class _DiagnosticHandler(logging.Handler):
    """Feeds records from the ``opentelemetry`` loggers into a diagnostic sink."""

    def __init__(self, sink: DiagnosticLogger) -> None:
        super().__init__(level=logging.DEBUG)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            if record.exc_info:
                message = f"{message}\n{logging.Formatter().formatException(record.exc_info)}"
            if record.levelno >= logging.ERROR:
                self.sink.error(message, record.name)
            elif record.levelno >= logging.WARNING:
                self.sink.warn(message, record.name)
            elif record.levelno >= logging.INFO:
                self.sink.info(message, record.name)
            elif record.levelno >= logging.DEBUG:
                self.sink.debug(message, record.name)
            else:
                self.sink.verbose(message, record.name)
        except Exception:
            self.handleError(record)


def install_diagnostic_bridge(sink: Optional[DiagnosticLogger] = None) -> DiagnosticLogger:
    """Route OpenTelemetry's own log output through *sink*.

    Replaces any bridge installed earlier, so calling it twice is safe.
    """
    sink = sink or DiagnosticLogBridge()
    otel_logger = logging.getLogger(_OTEL_LOGGER_NAME)
    for existing in list(otel_logger.handlers):
        if isinstance(existing, _DiagnosticHandler):
            otel_logger.removeHandler(existing)
    otel_logger.addHandler(_DiagnosticHandler(sink))
    otel_logger.setLevel(logging.DEBUG)
    otel_logger.propagate = False
    return sink
