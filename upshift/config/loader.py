"""Layered TOML configuration.

Settings are read from ``default.toml`` and then from an optional overlay
named after the active environment (``staging.toml``, ``production.toml``),
merged table by table.
"""

import os
import tomllib
from functools import reduce
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "UPSHIFT_CONFIG_DIR"
ENVIRONMENT_ENV = "UPSHIFT_ENV"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_FILE = "default.toml"
SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the directory holding the TOML layers.

    An explicit UPSHIFT_CONFIG_DIR must exist. Without it, the working
    directory and its parents are searched for a ``config/`` directory.
    """
    explicit = os.environ.get(CONFIG_DIR_ENV)
    if explicit:
        directory = Path(explicit)
        if not directory.exists():
            raise FileNotFoundError(f"Config directory not found: {explicit}")
        return directory

    cwd = Path.cwd()
    for base in [cwd, *cwd.parents][:SEARCH_DEPTH]:
        if (base / "config").is_dir():
            return base / "config"
    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    try:
        raw = file_path.read_bytes()
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {file_path}") from None
    return tomllib.loads(raw.decode("utf-8"))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return base with override applied; tables merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        both_tables = isinstance(current, dict) and isinstance(value, dict)
        merged[key] = deep_merge(current, value) if both_tables else value
    return merged


def config_layers(config_dir: Path, environment: str) -> list[Path]:
    """Files to merge, lowest precedence first. The default file must exist."""
    default = config_dir / DEFAULT_FILE
    if not default.exists():
        raise FileNotFoundError(
            f"Default configuration file not found: {default}. "
            f"Create config/{DEFAULT_FILE} or set {CONFIG_DIR_ENV}."
        )
    overlay = config_dir / f"{environment}.toml"
    return [default, overlay] if overlay.exists() else [default]


def load_config() -> dict[str, Any]:
    """Merge every configuration layer for the active environment."""
    layers = config_layers(get_config_dir(), get_environment())
    return reduce(deep_merge, (load_toml(path) for path in layers), {})
