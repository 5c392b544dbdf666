"""
Opal Configuration
==================

Layered configuration with dot-notation access.

Configuration Loading Priority (highest to lowest):
1. Runtime overrides (``Config.set``, command-line flags)
2. Environment variables (OPAL_*)
3. opal.config.py in the project directory
4. Default values

Example:
    # opal.config.py
    config = {
        "build": {"entry": "src/main.opal"},
        "dev": {"port": 3000},
    }

    config = load_config(Path.cwd())
    config.get("dev.port")               # 3000
    config.get("dev.host")               # "127.0.0.1"
"""

from __future__ import annotations

import copy
import importlib.util
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TypeVar, Union

import orjson

T = TypeVar("T")

CONFIG_FILE = "opal.config.py"
ENV_PREFIX = "OPAL_"

DEFAULTS: Dict[str, Any] = {
    "build": {
        "entry": "src/index.opal",
        "outfile": "dist/index.js",
    },
    "dev": {
        "host": "127.0.0.1",
        "port": 8080,
        "upstream": None,
    },
    "log": {
        "level": "info",
        "format": "text",
    },
}


@dataclass
class ConfigSource:
    """Represents a configuration source with priority."""
    name: str
    data: Dict[str, Any]
    priority: int = 0


class Config:
    """
    Configuration container.

    Values are merged from every source in priority order; nested mappings
    are merged key by key.

    Example:
        config = Config()
        config.set("dev.port", 3000)
        config.get("dev.port")              # 3000
        config.get("dev.missing", "x")      # "x"
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None) -> None:
        self._sources: List[ConfigSource] = []
        self._merged: Dict[str, Any] = {}
        self._dirty = True

        if defaults is not None:
            self.add_source("defaults", copy.deepcopy(dict(defaults)), priority=0)

    def load_file(self, path: Path) -> None:
        """
        Load ``opal.config.py``.

        The module may define a ``config`` dict; otherwise its public
        globals are used.
        """
        if not path.exists():
            return

        spec = importlib.util.spec_from_file_location("opal_config", path)
        if spec is None or spec.loader is None:
            return

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if hasattr(module, "config"):
            data = module.config
        else:
            data = {
                key: value
                for key, value in vars(module).items()
                if not key.startswith("_")
            }

        self.add_source(f"file:{path.name}", data, priority=10)

    def load_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Load overrides from OPAL_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for key, value in environ.items():
            if key.startswith(ENV_PREFIX):
                # OPAL_DEV_PORT -> dev.port
                config_key = key[len(ENV_PREFIX):].lower().replace("_", ".")
                overrides[config_key] = self._parse_env_value(value)

        if overrides:
            self.add_source("env", self._unflatten(overrides), priority=100)

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        # JSON for complex values
        if value.startswith(("{", "[")):
            try:
                return orjson.loads(value)
            except orjson.JSONDecodeError:
                pass

        return value

    def _unflatten(self, flat: Dict[str, Any]) -> Dict[str, Any]:
        """Convert flat dot-notation keys to nested dict."""
        result: Dict[str, Any] = {}

        for key, value in flat.items():
            parts = key.split(".")
            current = result

            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = value

        return result

    def add_source(
        self,
        name: str,
        data: Dict[str, Any],
        priority: int = 0,
    ) -> None:
        """Add a configuration source."""
        self._sources.append(ConfigSource(name=name, data=data, priority=priority))
        self._dirty = True

    def _merge(self) -> None:
        if not self._dirty:
            return

        # lower priority first, so higher overrides
        self._merged = {}
        for source in sorted(self._sources, key=lambda s: s.priority):
            self._deep_merge(self._merged, copy.deepcopy(source.data))

        self._dirty = False

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: T = None) -> Union[Any, T]:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "dev.port")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        self._merge()

        current: Any = self._merged
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current

    def get_int(self, key: str, default: int = 0) -> int:
        """Get configuration value as integer."""
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1")
        return bool(value)

    def set(self, key: str, value: Any) -> None:
        """
        Set a runtime configuration value.

        Runtime values have the highest priority.
        """
        runtime = next((s for s in self._sources if s.name == "runtime"), None)
        if runtime is None:
            runtime = ConfigSource(name="runtime", data={}, priority=1000)
            self._sources.append(runtime)

        parts = key.split(".")
        current = runtime.data
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        current[parts[-1]] = value
        self._dirty = True

    def has(self, key: str) -> bool:
        """Check if configuration key exists."""
        return self.get(key) is not None

    def section(self, prefix: str) -> Dict[str, Any]:
        """Get all values under a prefix."""
        value = self.get(prefix)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        return {}

    def all(self) -> Dict[str, Any]:
        """Get all configuration as dict."""
        self._merge()
        return copy.deepcopy(self._merged)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)


def load_config(
    project_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build the configuration for a project directory.

    Args:
        project_dir: Directory holding ``opal.config.py`` (default: cwd)
        environ: Environment mapping (default: ``os.environ``)
    """
    project_dir = Path(project_dir) if project_dir is not None else Path.cwd()

    config = Config(DEFAULTS)
    config.load_file(project_dir / CONFIG_FILE)
    config.load_env(environ)
    return config
