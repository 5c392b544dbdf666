"""
Opal Logger
===========

Structured logging with pluggable handlers.

Loggers are created through ``get_logger`` and share the handlers of the
root ``opal`` logger, so ``configure_logging`` reconfigures every component
at once.
"""

from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

import orjson


class LogLevel(IntEnum):
    """Log levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Parse ``"debug"``, ``"INFO"`` or a numeric level."""
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown log level: {value}") from None
        return cls(value)


@dataclass
class LogRecord:
    """
    Structured log record.

    Attributes:
        level: Log level
        message: Log message
        timestamp: Record timestamp
        context: Additional context
        exception: Exception info
    """

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    logger_name: str = "opal"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "message": self.message,
            "logger": self.logger_name,
        }

        if self.context:
            data["context"] = self.context

        if self.exception:
            data["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
                "traceback": traceback.format_exception(
                    type(self.exception),
                    self.exception,
                    self.exception.__traceback__,
                ),
            }

        return data

    def to_json(self) -> str:
        """Convert to JSON string."""
        return orjson.dumps(self.to_dict(), default=str).decode("utf-8")


class LogFormatter:
    """Base log formatter."""

    def format(self, record: LogRecord) -> str:
        """Format log record."""
        raise NotImplementedError


class TextFormatter(LogFormatter):
    """
    Plain text formatter.

    Example output:
        2024-01-15 10:30:45 [DEBUG] Parsed document path=src/index.opal scripts=1
    """

    def __init__(
        self,
        format_string: Optional[str] = None,
        date_format: str = "%Y-%m-%d %H:%M:%S",
        colors: bool = True,
        stream: Any = None,
    ):
        """Initialize formatter."""
        self.format_string = format_string or "{timestamp} [{level}] {message}"
        self.date_format = date_format
        stream = stream or sys.stderr
        self.colors = colors and hasattr(stream, "isatty") and stream.isatty()

        self._colors = {
            LogLevel.DEBUG: "\033[36m",    # Cyan
            LogLevel.INFO: "\033[32m",     # Green
            LogLevel.WARNING: "\033[33m",  # Yellow
            LogLevel.ERROR: "\033[31m",    # Red
            LogLevel.CRITICAL: "\033[35m", # Magenta
        }
        self._reset = "\033[0m"

    def format(self, record: LogRecord) -> str:
        """Format as text."""
        timestamp = record.timestamp.strftime(self.date_format)
        level = record.level.name

        if self.colors:
            color = self._colors.get(record.level, "")
            level = f"{color}{level}{self._reset}"

        message = record.message

        # Add context as key=value pairs
        if record.context:
            context_str = " ".join(
                f"{k}={v}" for k, v in record.context.items()
            )
            message = f"{message} {context_str}"

        output = self.format_string.format(
            timestamp=timestamp,
            level=level,
            message=message,
            logger=record.logger_name,
        )

        if record.exception:
            output += "\n" + "".join(
                traceback.format_exception(
                    type(record.exception),
                    record.exception,
                    record.exception.__traceback__,
                )
            )

        return output


class JsonFormatter(LogFormatter):
    """
    JSON formatter for structured logging.

    Example output:
        {"timestamp":"2024-01-15T10:30:45","level":"INFO","message":"Build complete"}
    """

    def format(self, record: LogRecord) -> str:
        """Format as JSON."""
        return record.to_json()


class LogHandler:
    """Base log handler."""

    def __init__(
        self,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        self.formatter = formatter or TextFormatter()
        self.level = level

    def handle(self, record: LogRecord) -> None:
        """Handle log record."""
        if record.level >= self.level:
            self.emit(record)

    def emit(self, record: LogRecord) -> None:
        """Emit formatted record."""
        raise NotImplementedError


class StreamHandler(LogHandler):
    """Stream output handler."""

    def __init__(
        self,
        stream: Any = None,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        self.stream = stream or sys.stderr
        super().__init__(formatter or TextFormatter(stream=self.stream), level)

    def emit(self, record: LogRecord) -> None:
        """Write to stream."""
        message = self.formatter.format(record)
        self.stream.write(message + "\n")
        self.stream.flush()


class MemoryHandler(LogHandler):
    """Keeps records in memory, mostly for tests."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG):
        super().__init__(level=level)
        self.records: List[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)


class Logger:
    """
    Structured logger.

    Example:
        logger = get_logger("opal.bundler")

        logger.info("Build complete", entry="src/index.opal", ms=12.5)
        logger.error("Build failed", exception=e)

        # With context
        logger = logger.with_context(path="src/index.opal")
        logger.debug("Loading")
    """

    def __init__(
        self,
        name: str = "opal",
        level: LogLevel = LogLevel.INFO,
        handlers: Optional[List[LogHandler]] = None,
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            handlers: Log handlers
        """
        self.name = name
        self.level = level
        self._handlers = handlers if handlers is not None else []
        self._context: Dict[str, Any] = {}

    @property
    def handlers(self) -> List[LogHandler]:
        return self._handlers

    def add_handler(self, handler: LogHandler) -> "Logger":
        """Add log handler."""
        self._handlers.append(handler)
        return self

    def remove_handler(self, handler: LogHandler) -> "Logger":
        """Remove log handler."""
        self._handlers.remove(handler)
        return self

    def with_context(self, **context: Any) -> "Logger":
        """
        Create logger with additional context.

        Args:
            **context: Context key-values

        Returns:
            New logger with context
        """
        new_logger = Logger(
            name=self.name,
            level=self.level,
            handlers=self._handlers,
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        if level < self.level:
            return

        record = LogRecord(
            level=level,
            message=message,
            context={**self._context, **context},
            exception=exception,
            logger_name=self.name,
        )

        for handler in self._handlers:
            try:
                handler.handle(record)
            except Exception:
                pass  # Don't let logging errors break a build

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **context)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, exception, **context)

    def exception(self, message: str, **context: Any) -> None:
        """Log current exception."""
        exc = sys.exc_info()[1]
        self._log(LogLevel.ERROR, message, exc, **context)


ROOT_LOGGER = "opal"

# Global logger registry
_loggers: Dict[str, Logger] = {}


def _root() -> Logger:
    if ROOT_LOGGER not in _loggers:
        _loggers[ROOT_LOGGER] = Logger(
            name=ROOT_LOGGER,
            level=LogLevel.INFO,
            handlers=[StreamHandler()],
        )
    return _loggers[ROOT_LOGGER]


def get_logger(
    name: str = ROOT_LOGGER,
    level: Optional[LogLevel] = None,
) -> Logger:
    """
    Get or create logger.

    New loggers share the root logger's handlers and level.

    Args:
        name: Logger name
        level: Log level

    Returns:
        Logger instance
    """
    root = _root()
    if name not in _loggers:
        _loggers[name] = Logger(
            name=name,
            level=level if level is not None else root.level,
            handlers=root.handlers,
        )
    elif level is not None:
        _loggers[name].level = level
    return _loggers[name]


def configure_logging(
    level: Union[LogLevel, str] = LogLevel.INFO,
    format: str = "text",
    colors: bool = True,
    stream: Any = None,
) -> Logger:
    """
    Configure logging for every Opal logger.

    Args:
        level: Log level
        format: Output format ("text" or "json")
        colors: Enable colored output
        stream: Output stream (default: stderr)

    Returns:
        Root logger
    """
    level = LogLevel.parse(level)

    if format == "json":
        formatter: LogFormatter = JsonFormatter()
    else:
        formatter = TextFormatter(colors=colors, stream=stream)

    root = _root()
    # keep the shared list object so existing loggers see the new handlers
    root.handlers[:] = [StreamHandler(stream=stream, formatter=formatter, level=level)]

    for logger in _loggers.values():
        logger.level = level

    return root
