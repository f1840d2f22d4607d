"""Settings file support for depwatch.

Settings live in a ``[depwatch]`` table of ``depwatch.toml`` or in the
``[tool.depwatch]`` table of ``pyproject.toml``. The file is chosen as
follows, first match wins:

1. ``--config`` / ``DEPWATCH_CONFIG``
2. ``depwatch.toml`` in the working directory
3. ``pyproject.toml`` in the working directory, if it has a
   ``[tool.depwatch]`` table

Values from the file override built-in defaults; environment variables and
command-line flags override the file.

Example::

    [depwatch]
    timeout = 20
    release_limit = 50
    include_dev_dependencies = true
    github_api_url = "https://github.example.com/api/v3"
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from depwatch.exceptions import ConfigError
from depwatch.utils.logger import get_logger
from depwatch.constants import (
    DEFAULT_INCLUDE_DEV_DEPENDENCIES,
    DEFAULT_RELEASE_LIMIT,
    DEFAULT_TAG_LIMIT,
    DEFAULT_TIMEOUT,
    GITHUB_API_URL,
    NPM_REGISTRY_URL,
)

logger = get_logger("config")

#: File name → keys leading to the depwatch table inside it.
_TABLE_LOCATIONS: Dict[str, Tuple[str, ...]] = {
    "depwatch.toml": ("depwatch",),
    "pyproject.toml": ("tool", "depwatch"),
}


@dataclass
class DepWatchConfig:
    """Effective depwatch settings.

    Attributes:
        timeout: Seconds allowed for each upstream request.
        release_limit: Releases fetched when scanning changelogs.
        tag_limit: Tags fetched when a repository has no releases.
        include_dev_dependencies: Audit ``devDependencies`` in
            ``package.json`` too.
        github_api_url: GitHub REST API base URL.
        npm_registry_url: npm registry base URL.
        source_path: File the settings came from; ``None`` for defaults.
    """

    timeout: int = DEFAULT_TIMEOUT
    release_limit: int = DEFAULT_RELEASE_LIMIT
    tag_limit: int = DEFAULT_TAG_LIMIT
    include_dev_dependencies: bool = DEFAULT_INCLUDE_DEV_DEPENDENCIES
    github_api_url: str = GITHUB_API_URL
    npm_registry_url: str = NPM_REGISTRY_URL

    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Settings without metadata, for debug logs."""
        return {name: getattr(self, name) for name in _OPTION_TYPES}


#: Option name → accepted type.
_OPTION_TYPES: Dict[str, type] = {
    "timeout": int,
    "release_limit": int,
    "tag_limit": int,
    "include_dev_dependencies": bool,
    "github_api_url": str,
    "npm_registry_url": str,
}

#: Integer options that must be strictly positive.
_POSITIVE_INTS: Tuple[str, ...] = ("timeout", "release_limit", "tag_limit")


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Return the settings file to use, or ``None`` when there is none.

    Raises:
        ConfigError: *explicit_path* was given but is not a file.
    """
    if explicit_path is not None:
        if not explicit_path.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        return explicit_path.resolve()

    for name in ("depwatch.toml", "pyproject.toml"):
        candidate = Path.cwd() / name
        if not candidate.is_file():
            continue
        if name == "pyproject.toml" and not _pyproject_has_depwatch_section(candidate):
            logger.debug("%s has no [tool.depwatch] table", candidate)
            continue
        logger.debug("Discovered configuration file %s", candidate)
        return candidate

    return None


def _pyproject_has_depwatch_section(path: Path) -> bool:
    # A broken pyproject.toml is another tool's problem, not ours
    try:
        tool = _read_toml(path).get("tool")
    except ConfigError:
        return False
    return isinstance(tool, dict) and "depwatch" in tool


def load_config(config_path: Optional[Path] = None) -> DepWatchConfig:
    """Build the effective settings from defaults and the settings file.

    Args:
        config_path: Settings file to read; discovered when ``None``.

    Raises:
        ConfigError: The file cannot be read or parsed, or its table holds
            unknown keys or invalid values.
    """
    path = discover_config_file(config_path)
    if path is None:
        logger.debug("Using default configuration")
        return DepWatchConfig()

    logger.info("Loading configuration from %s", path)
    table: Any = _read_toml(path)
    for key in _TABLE_LOCATIONS.get(path.name, ("depwatch",)):
        table = table.get(key, {}) if isinstance(table, dict) else {}

    if not isinstance(table, dict):
        raise ConfigError("The depwatch table must be a TOML table", config_path=str(path))

    config = _parse_section(table, config_path=str(path)) if table else DepWatchConfig()
    config.source_path = path
    logger.debug("Configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Parse a TOML file, reporting failures as :class:`ConfigError`."""
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}", config_path=str(path)
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}", config_path=str(path)
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> DepWatchConfig:
    """Check a depwatch table and apply it over the defaults.

    Raises:
        ConfigError: Unknown keys, wrong types, empty strings, or limits
            that are not positive.
    """
    unknown = sorted(set(section) - set(_OPTION_TYPES))
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(unknown)}",
            config_path=config_path,
        )

    config = DepWatchConfig()
    for name, value in section.items():
        problem = _check_value(name, value)
        if problem:
            raise ConfigError(problem, config_path=config_path, option=name)
        setattr(config, name, value)
    return config


def _check_value(name: str, value: Any) -> Optional[str]:
    """Describe what is wrong with *value* for option *name*, if anything."""
    expected = _OPTION_TYPES[name]
    # bool is a subclass of int
    if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
        return f"{name} must be {_type_name(expected)}, got {type(value).__name__}"
    if expected is str and not value.strip():
        return f"{name} must not be empty"
    if name in _POSITIVE_INTS and value <= 0:
        return f"{name} must be greater than zero, got {value}"
    return None


def _type_name(expected: type) -> str:
    return {bool: "a boolean", int: "an integer", str: "a string"}.get(
        expected, expected.__name__
    )
