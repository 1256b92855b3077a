"""
TOML-based config file loading for contextgrep.

Searches for `.contextgrep.toml`, `contextgrep.toml`, or `pyproject.toml
[tool.contextgrep]` walking up from the current directory. Config values are merged
with CLI flags using three-way precedence: explicit CLI flags > config file > built-in
defaults.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, TypeVar, cast

from contextgrep.errors import ConfigError

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

log = logging.getLogger(__name__)


@dataclass
class ContextgrepConfig:
    """
    Parsed config from a TOML file. Fields are `None` when not set in the config,
    allowing the merge logic to distinguish "not configured" from "explicitly set
    to default value".
    """

    # File discovery
    recursive: bool | None = None
    respect_gitignore: bool | None = None
    ignore_files: list[str] | None = None
    exclude: list[str] | None = None
    binary_check: bool | None = None
    workers: int | None = None
    # Output
    template: str | None = None
    template_file: str | None = None


# Config file search order (first match wins within each directory level)
_CONFIG_FILENAMES = [".contextgrep.toml", "contextgrep.toml", "pyproject.toml"]

# Mapping from TOML kebab-case keys to Python snake_case field names
_KEBAB_TO_SNAKE: dict[str, str] = {
    "respect-gitignore": "respect_gitignore",
    "ignore-files": "ignore_files",
    "binary-check": "binary_check",
    "template-file": "template_file",
    "jobs": "workers",
}

_VALID_FIELDS = {f.name for f in fields(ContextgrepConfig)}


def find_config_file(start_dir: Path) -> Path | None:
    """
    Walk up from `start_dir` looking for a config file. Returns the first
    found, or `None`. Search order per directory: `.contextgrep.toml` >
    `contextgrep.toml` > `pyproject.toml` (only if it has `[tool.contextgrep]`).
    """
    current = start_dir.resolve()
    while True:
        for filename in _CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                if filename == "pyproject.toml":
                    if _pyproject_has_section(candidate):
                        return candidate
                else:
                    return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Check if a pyproject.toml has a [tool.contextgrep] section."""
    try:
        data = tomllib.loads(path.read_text())
        return "contextgrep" in data.get("tool", {})
    except (tomllib.TOMLDecodeError, OSError):
        return False


def load_config(config_path: Path) -> ContextgrepConfig:
    """
    Load a `ContextgrepConfig` from a TOML file. Supports both standalone
    `contextgrep.toml` / `.contextgrep.toml` and `pyproject.toml` (extracts
    `[tool.contextgrep]`). Relative `ignore-files` and `template-file` paths are
    taken relative to the config file's directory.
    """
    try:
        data = tomllib.loads(config_path.read_text())
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"could not load config file {config_path}: {e}") from e

    if config_path.name == "pyproject.toml":
        data = data.get("tool", {}).get("contextgrep", {})

    config = _parse_config_data(data)

    base = config_path.parent
    if config.ignore_files is not None:
        config.ignore_files = [str(base / p) for p in config.ignore_files]
    if config.template_file is not None:
        config.template_file = str(base / config.template_file)
    return config


def _parse_config_data(data: dict[str, Any]) -> ContextgrepConfig:
    """Parse a flat or sectioned TOML dict into ContextgrepConfig."""
    # Flatten sections: [file-discovery] and [output] merge into top level
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in cast(dict[str, Any], value).items():
                flat[sub_key] = sub_value
        else:
            flat[key] = value

    # Map kebab-case to snake_case
    mapped: dict[str, Any] = {}
    for key, value in flat.items():
        snake_key = _KEBAB_TO_SNAKE.get(key, key.replace("-", "_"))
        if snake_key in _VALID_FIELDS:
            mapped[snake_key] = value
        else:
            log.warning("unrecognized config key: %s", key)

    return ContextgrepConfig(**mapped)


_T = TypeVar("_T")


def merge_cli_with_config(
    cli_opts: _T,
    config: ContextgrepConfig | None,
    explicit_flags: set[str],
) -> _T:
    """
    Merge CLI options with config file settings.

    Precedence: explicit CLI flags > config file > built-in defaults.
    """
    if config is None:
        return cli_opts

    for cfg_field in fields(ContextgrepConfig):
        cfg_value = getattr(config, cfg_field.name)
        if cfg_value is None:
            continue  # Not set in config

        # Skip if CLI explicitly set this flag
        if cfg_field.name in explicit_flags:
            continue

        if hasattr(cli_opts, cfg_field.name):
            setattr(cli_opts, cfg_field.name, cfg_value)

    return cli_opts
