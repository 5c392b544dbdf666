"""Tests for structured logging."""

import io
from datetime import datetime

import orjson
import pytest

from opal.utils.logger import (
    JsonFormatter,
    Logger,
    LogLevel,
    LogRecord,
    MemoryHandler,
    StreamHandler,
    TextFormatter,
    configure_logging,
    get_logger,
)


@pytest.fixture
def restore_logging():
    root = get_logger()
    handlers = list(root.handlers)
    names = ("opal", "opal.parser", "opal.compiler", "opal.bundler", "opal.server")
    levels = {name: get_logger(name).level for name in names}

    yield

    root.handlers[:] = handlers
    for name, level in levels.items():
        get_logger(name).level = level


def make_record(**kwargs):
    defaults = dict(
        level=LogLevel.INFO,
        message="Build complete",
        timestamp=datetime(2024, 1, 15, 10, 30, 45),
        logger_name="opal.bundler",
    )
    defaults.update(kwargs)
    return LogRecord(**defaults)


def test_level_parse():
    assert LogLevel.parse("debug") is LogLevel.DEBUG
    assert LogLevel.parse("WARNING") is LogLevel.WARNING
    assert LogLevel.parse(40) is LogLevel.ERROR
    with pytest.raises(ValueError):
        LogLevel.parse("loud")


def test_level_filtering():
    handler = MemoryHandler()
    logger = Logger("test", level=LogLevel.WARNING, handlers=[handler])

    logger.info("hidden")
    logger.warning("shown", path="a.opal")

    assert [record.message for record in handler.records] == ["shown"]
    assert handler.records[0].context == {"path": "a.opal"}


def test_with_context_shares_handlers():
    handler = MemoryHandler()
    logger = Logger("test", handlers=[handler]).with_context(path="a.opal")

    logger.info("Loading", size=3)

    assert handler.records[0].context == {"path": "a.opal", "size": 3}


def test_error_keeps_exception():
    handler = MemoryHandler()
    logger = Logger("test", handlers=[handler])

    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("Failed")

    record = handler.records[0]
    assert record.level is LogLevel.ERROR
    assert isinstance(record.exception, RuntimeError)
    assert record.to_dict()["exception"]["message"] == "boom"


def test_failing_handler_does_not_raise():
    class Broken(MemoryHandler):
        def emit(self, record):
            raise OSError("disk full")

    fallback = MemoryHandler()
    logger = Logger("test", handlers=[Broken(), fallback])
    logger.info("still logged")

    assert len(fallback.records) == 1


def test_text_formatter():
    formatter = TextFormatter(colors=False)
    record = make_record(context={"entry": "src/index.opal"})

    assert formatter.format(record) == "2024-01-15 10:30:45 [INFO] Build complete entry=src/index.opal"


def test_text_formatter_without_tty_has_no_colors():
    formatter = TextFormatter(colors=True, stream=io.StringIO())
    assert "\033[" not in formatter.format(make_record())


def test_json_formatter():
    data = orjson.loads(JsonFormatter().format(make_record(context={"ms": 1.5})))

    assert data == {
        "timestamp": "2024-01-15T10:30:45",
        "level": "INFO",
        "message": "Build complete",
        "logger": "opal.bundler",
        "context": {"ms": 1.5},
    }


def test_stream_handler_respects_level():
    stream = io.StringIO()
    handler = StreamHandler(stream=stream, formatter=TextFormatter(colors=False), level=LogLevel.ERROR)

    handler.handle(make_record())
    handler.handle(make_record(level=LogLevel.ERROR, message="Build failed"))

    assert stream.getvalue() == "2024-01-15 10:30:45 [ERROR] Build failed\n"


def test_get_logger_is_cached():
    assert get_logger("opal.parser") is get_logger("opal.parser")


def test_child_loggers_share_root_handlers():
    assert get_logger("opal.parser").handlers is get_logger().handlers


def test_configure_logging(restore_logging):
    stream = io.StringIO()
    configure_logging(level="debug", format="json", stream=stream)

    get_logger("opal.parser").debug("Parsed document", scripts=1)

    data = orjson.loads(stream.getvalue().strip())
    assert data["message"] == "Parsed document"
    assert data["logger"] == "opal.parser"
    assert data["context"] == {"scripts": 1}
