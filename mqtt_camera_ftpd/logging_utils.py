"""
Structured Logging Utilities
=============================

Console output (human-readable or JSON) plus the rotating events log that
lives next to config.yml.

- trace_context: un trace_id por sesión FTP, visible en todo el upload path
  (handler -> debouncer -> publisher)
- setup_structured_logging: console handler + optional events log
- get_component_logger: LoggerAdapter that stamps ``component``/``trace_id``

Log calls stay direct: ``logger.info(msg, extra={"event": ...})``.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

# pyftpdlib logs every command and transfer at INFO
LIBRARY_LOGGERS = ("pyftpdlib",)

EVENTS_LOG_MAX_BYTES = 10 * 1024 * 1024
EVENTS_LOG_BACKUPS = 5


# ============================================================================
# Trace Context
# ============================================================================

_current_trace: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def get_trace_id() -> Optional[str]:
    """trace_id activo, o None fuera de un trace_context."""
    return _current_trace.get()


def generate_trace_id(prefix: str = "trace") -> str:
    """
    Nuevo trace ID: ``{prefix}-{8 hex}``.

    >>> generate_trace_id("ftp")  # doctest: +SKIP
    'ftp-3f9c01ab'
    """
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@contextmanager
def trace_context(trace_id: Optional[str] = None):
    """
    Activa ``trace_id`` mientras dure el bloque.

    Usage:
        with trace_context(session.trace_id):
            fs.commit_upload(path)   # debouncer + publisher logs share the id
    """
    token = _current_trace.set(trace_id or generate_trace_id())
    try:
        yield _current_trace.get()
    finally:
        _current_trace.reset(token)


# ============================================================================
# Formatters
# ============================================================================

class JsonEventFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line; ``level``/``logger`` keys, trace_id when active."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if "trace_id" not in log_record and get_trace_id():
            log_record["trace_id"] = get_trace_id()


class ConsoleEventFormatter(logging.Formatter):
    """``time | LEVEL | component | event | message`` columns."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(component)-12s | %(event)-20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        # library records (pyftpdlib, paho) carry neither field
        if not hasattr(record, "component"):
            record.component = record.name.rsplit(".", 1)[-1]
        if not hasattr(record, "event"):
            record.event = "-"
        return super().format(record)


def _build_formatter(json_format: bool, indent: Optional[int] = None) -> logging.Formatter:
    if json_format:
        return JsonEventFormatter("%(timestamp)s %(message)s", timestamp=True, json_indent=indent)
    return ConsoleEventFormatter()


class _FlushingStreamHandler(logging.StreamHandler):
    def emit(self, record):
        super().emit(record)
        self.flush()


# ============================================================================
# Setup
# ============================================================================

def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = False,
    indent: Optional[int] = None,
    output_file: Optional[str] = None,
    file_level: str = "DEBUG",
    max_bytes: int = EVENTS_LOG_MAX_BYTES,
    backup_count: int = EVENTS_LOG_BACKUPS,
) -> None:
    """
    Configura el root logger.

    Console output always goes to stdout at ``level``. With ``output_file``
    every event is also appended there at ``file_level`` (rotated at
    ``max_bytes``, ``backup_count`` files kept). Library loggers are held at
    WARNING on the console but still reach the events log.

    Args:
        level: Console level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines instead of columns
        indent: JSON indent (None = compact)
        output_file: Events log path (None = console only)
        file_level: Events log level
        max_bytes: Rotation size
        backup_count: Rotated files kept

    Usage:
        setup_structured_logging(level="DEBUG")
        setup_structured_logging(json_format=True, output_file="/config/events.log")
    """
    formatter = _build_formatter(json_format, indent)

    console = _FlushingStreamHandler(sys.stdout)
    console.setLevel(_level(level))
    console.setFormatter(formatter)
    console.addFilter(_quiet_libraries)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective = console.level

    if output_file:
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)

        events_log = RotatingFileHandler(
            filename=str(path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        events_log.setLevel(_level(file_level))
        events_log.setFormatter(formatter)
        root.addHandler(events_log)
        effective = min(effective, events_log.level)

    root.setLevel(effective)


def _level(name: str) -> int:
    return logging.getLevelName(name.upper())


def _quiet_libraries(record: logging.LogRecord) -> bool:
    if record.name.split(".", 1)[0] in LIBRARY_LOGGERS:
        return record.levelno >= logging.WARNING
    return True


# ============================================================================
# ComponentLogger
# ============================================================================

class ComponentLogger(logging.LoggerAdapter):
    """
    Adapter adding ``component`` (and ``trace_id`` inside a trace_context).

    Caller-supplied ``extra`` keys win over the adapter defaults.

    >>> logger = get_component_logger(__name__, "debouncer")
    >>> logger.info("Motion detected on cam1", extra={"event": "motion_active"})
    """

    def process(self, msg, kwargs):
        fields = dict(self.extra)

        trace_id = get_trace_id()
        if trace_id:
            fields["trace_id"] = trace_id

        fields.update(kwargs.get("extra") or {})
        kwargs["extra"] = fields
        return msg, kwargs


def get_component_logger(name: str, component: str) -> ComponentLogger:
    return ComponentLogger(logging.getLogger(name), {"component": component})


__all__ = [
    "setup_structured_logging",
    "trace_context",
    "get_trace_id",
    "generate_trace_id",
    "ComponentLogger",
    "get_component_logger",
]
