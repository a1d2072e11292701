"""
Emitter Logging Subsystem

Purpose
-------
Structured, async-safe logging for the emitter package and the applications
embedding it:

- JSON records for aggregation, colored text for local development.
- Dispatch context (event name, emitter, dispatch id) carried in a ContextVar
  and stamped onto every record.
- A bounded queue between producers and handlers, so a slow sink never
  blocks a dispatch pass.

Responsibilities
----------------
- `setup_logging()` / `shutdown_logging()` for the root logger
- `LogContext`, `set_log_context()`, `get_log_context()`, `clear_log_context()`
- `get_logging_health()` for queue inspection

Design Decisions
----------------
- Nothing is configured on import; host applications call `setup_logging()`
  or configure the stdlib root logger themselves.
- Context is captured by a filter on the queue handler, i.e. on the thread
  that logged, before the record crosses to the listener thread.
- Extra fields passed via `logger.info("msg", extra={...})` end up under
  `"extra"` in JSON output.
- A full queue drops the record and counts it; logging never raises into
  caller code.

Dependencies
------------
- emitter.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from emitter.core.config.config import Config

_CONTEXT_FIELDS = ("event_name", "emitter_id", "dispatch_id")
_INIT_FLAG = "_emitter_logging_initialized"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("emitter_log_context", default={})


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Fixed formats plus views over `Config` for the logging stack."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    FILE_NAME: str = "emitter.json.log"
    FILE_BACKUPS: int = 1
    QUEUE_MAX_SIZE: int = 10_000

    @property
    def level(self) -> int:
        name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        return getattr(logging, name.upper(), logging.INFO)

    @property
    def json_console(self) -> bool:
        return Config.is_production() if Config.LOG_JSON is None else Config.LOG_JSON

    @property
    def colored_console(self) -> bool:
        if self.json_console or Config.is_production():
            return False
        return Config.LOG_COLORS and sys.stdout.isatty()

    @property
    def log_file(self) -> Optional[Path]:
        if not Config.LOG_TO_FILE:
            return None
        return Path(Config.LOGS_DIR).resolve() / self.FILE_NAME


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Health
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


@dataclass(slots=True)
class _QueueCounters:
    enqueued: int = 0
    dropped: int = 0
    handler_errors: int = 0


_counters = _QueueCounters()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_queue_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Stamp the current dispatch context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get({})

        # Fields passed through extra= take precedence over the context.
        for attr in _CONTEXT_FIELDS:
            if getattr(record, attr, None) is None:
                setattr(record, attr, context.get(attr, "N/A"))

        record.correlation_id = context.get("correlation_id") or record.dispatch_id
        record.component = context.get("component") or record.name.partition(".")[0]
        record.operation = context.get("operation", "N/A")
        return True


class ColoredFormatter(logging.Formatter):
    """ANSI-colored level names for terminals."""

    RESET = "\033[0m"
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        plain = record.levelname
        color = self.COLORS.get(plain)
        if color is None:
            return super().format(record)

        record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


# Attributes every LogRecord carries; anything else came in through extra=.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    CONTEXT_ATTRS = (
        "event_name",
        "emitter_id",
        "dispatch_id",
        "correlation_id",
        "component",
        "operation",
    )

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                payload[attr] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in self.CONTEXT_ATTRS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=repr)


# ============================================================================
# Queue plumbing
# ============================================================================


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _counters.dropped += 1
            sys.stderr.write("Emitter logging queue full; record dropped.\n")


class _CountingQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.handler_errors += 1
        sys.stderr.write("Emitter logging handler failed to process a record.\n")


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if LOGGER_CONFIG.json_console:
        handler.setFormatter(JSONFormatter())
    else:
        formatter_cls = ColoredFormatter if LOGGER_CONFIG.colored_console else logging.Formatter
        handler.setFormatter(
            formatter_cls(fmt=LOGGER_CONFIG.CONSOLE_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=LOGGER_CONFIG.FILE_BACKUPS,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(JSONFormatter())
    return handler


# ============================================================================
# Lifecycle
# ============================================================================


def setup_logging() -> None:
    """
    Route the root logger through a bounded queue to console (and file).

    Idempotent; call `shutdown_logging()` to flush and detach.

    Raises
    ------
    ConfigurationError
        From `Config.validate()` in production with an invalid log level.
    """
    global _counters, _log_queue, _queue_listener

    root = logging.getLogger()
    if getattr(root, _INIT_FLAG, False):
        return

    Config.validate()
    level = LOGGER_CONFIG.level

    sinks = [_console_handler()]
    log_file = LOGGER_CONFIG.log_file
    if log_file is not None:
        sinks.append(_file_handler(log_file))
    for sink in sinks:
        sink.setLevel(level)

    _counters = _QueueCounters()
    _log_queue = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)
    _queue_listener = _CountingQueueListener(_log_queue, *sinks, respect_handler_level=True)
    _queue_listener.start()

    queue_handler = _DroppingQueueHandler(_log_queue)
    queue_handler.setLevel(level)
    queue_handler.addFilter(ContextFilter())

    root.handlers.clear()
    root.filters.clear()
    root.setLevel(level)
    root.addHandler(queue_handler)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    setattr(root, _INIT_FLAG, True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "log_level": logging.getLevelName(level),
            "json": LOGGER_CONFIG.json_console,
            "file": str(log_file) if log_file else None,
            "queue_max_size": LOGGER_CONFIG.QUEUE_MAX_SIZE,
        },
    )


def shutdown_logging() -> None:
    """Stop the queue listener and detach every root handler."""
    global _log_queue, _queue_listener

    root = logging.getLogger()
    if not getattr(root, _INIT_FLAG, False):
        return

    logging.getLogger(__name__).info("Shutting down logging subsystem")

    listener, _queue_listener = _queue_listener, None
    if listener is not None:
        listener.stop()

    for handler in list(root.handlers):
        handler.flush()
        handler.close()
        root.removeHandler(handler)

    setattr(root, _INIT_FLAG, False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=bool(getattr(logging.getLogger(), _INIT_FLAG, False)),
        queue_size=_log_queue.qsize() if _log_queue is not None else 0,
        queue_max_size=_log_queue.maxsize if _log_queue is not None else 0,
        records_enqueued=_counters.enqueued,
        records_dropped=_counters.dropped,
        listener_errors=_counters.handler_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


def _with_fields(base: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
    merged = dict(base)
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


class LogContext:
    """
    Scoped dispatch context, usable with `with` and `async with`.

    Nested contexts inherit the outer fields. The correlation id defaults to
    the dispatch id, or a fresh id when neither is given.

    >>> with LogContext(event_name="user.created", dispatch_id="3f2a9c1e"):
    ...     logger.info("dispatching")
    """

    def __init__(
        self,
        event_name: Optional[str] = None,
        emitter_id: Optional[str] = None,
        dispatch_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context = _with_fields(
            _log_context.get({}),
            correlation_id=correlation_id or dispatch_id or generate_correlation_id(),
            event_name=event_name,
            emitter_id=emitter_id,
            dispatch_id=dispatch_id,
            component=component,
            operation=operation,
            **extra,
        )
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    event_name: Optional[str] = None,
    emitter_id: Optional[str] = None,
    dispatch_id: Optional[str] = None,
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """Update the current context in place (no scope; see LogContext)."""
    current = _with_fields(
        _log_context.get({}),
        event_name=event_name,
        emitter_id=emitter_id,
        dispatch_id=dispatch_id,
        component=component,
        operation=operation,
        correlation_id=correlation_id,
        **extra,
    )
    if dispatch_id is not None:
        current.setdefault("correlation_id", dispatch_id)
    _log_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))


def clear_log_context() -> None:
    _log_context.set({})
