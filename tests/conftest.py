"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from opal.core.config import DEFAULTS, Config
from opal.utils.logger import LogLevel, MemoryHandler, get_logger

SCENE = """\
<script lang="ts">
	console.log("hello world");
	let color: string = "red";
</script>

<scene name="demo scene">
	<box {color} />
</scene>
"""


@pytest.fixture
def scene_source() -> str:
    return SCENE


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project directory with a valid entry file."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "index.opal").write_text(SCENE, encoding="utf-8")
    return tmp_path


@pytest.fixture
def config() -> Config:
    """Configuration with defaults only."""
    return Config(DEFAULTS)


@pytest.fixture
def log_records():
    """Capture records of every Opal logger at debug level."""
    root = get_logger()
    loggers = [root] + [get_logger(name) for name in ("opal.parser", "opal.compiler", "opal.bundler")]
    levels = [logger.level for logger in loggers]
    handler = MemoryHandler()

    for logger in loggers:
        logger.level = LogLevel.DEBUG
    root.add_handler(handler)

    yield handler.records

    root.remove_handler(handler)
    for logger, level in zip(loggers, levels):
        logger.level = level
