"""Configuration loading.

Values come from built-in defaults, then an optional YAML file, then
environment variables, each overriding the previous.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from diffnote.core.collapse import DEFAULT_EXPANDED_COUNT, DEFAULT_LARGE_FILE_THRESHOLD

DEFAULT_CONFIG_FILE = Path("~/.config/diffnote/config.yaml")
DEFAULT_STORE_PATH = Path("~/.local/share/diffnote/comments.yaml")
DEFAULT_SCAN_MAX_DEPTH = 3


class ConfigError(Exception):
    """Raised for unreadable config files or invalid values."""


def _default_roots(env: Mapping[str, str] = os.environ) -> list[Path]:
    return [Path(env.get("HOME") or "/")]


@dataclass
class AppConfig:
    """Application settings."""

    repo_scan_roots: list[Path] = field(default_factory=_default_roots)
    repo_scan_max_depth: int = DEFAULT_SCAN_MAX_DEPTH
    large_file_threshold: int = DEFAULT_LARGE_FILE_THRESHOLD
    expand_quota: int = DEFAULT_EXPANDED_COUNT
    store_path: Path = field(default_factory=lambda: DEFAULT_STORE_PATH.expanduser())


def parse_roots(value: str) -> list[Path]:
    """Parse a comma-separated list of paths, ignoring blanks."""
    return [Path(p.strip()).expanduser() for p in value.split(",") if p.strip()]


def _parse_int(name: str, value: object, minimum: int = 0) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if number < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {number}")
    return number


def _apply_file(config: AppConfig, data: Mapping) -> None:
    if "repo_scan_roots" in data:
        roots = data["repo_scan_roots"]
        if isinstance(roots, str):
            config.repo_scan_roots = parse_roots(roots)
        elif isinstance(roots, list):
            config.repo_scan_roots = [Path(str(r)).expanduser() for r in roots]
        else:
            raise ConfigError("repo_scan_roots must be a list or comma-separated string")
    if "repo_scan_max_depth" in data:
        config.repo_scan_max_depth = _parse_int("repo_scan_max_depth", data["repo_scan_max_depth"])
    if "large_file_threshold" in data:
        config.large_file_threshold = _parse_int("large_file_threshold", data["large_file_threshold"])
    if "expand_quota" in data:
        config.expand_quota = _parse_int("expand_quota", data["expand_quota"])
    if "store_path" in data:
        config.store_path = Path(str(data["store_path"])).expanduser()


def _apply_env(config: AppConfig, env: Mapping[str, str]) -> None:
    if env.get("REPO_SCAN_ROOT"):
        roots = parse_roots(env["REPO_SCAN_ROOT"])
        if roots:
            config.repo_scan_roots = roots
    if env.get("REPO_SCAN_MAX_DEPTH"):
        config.repo_scan_max_depth = _parse_int("REPO_SCAN_MAX_DEPTH", env["REPO_SCAN_MAX_DEPTH"])
    if env.get("DIFFNOTE_LARGE_FILE_THRESHOLD"):
        config.large_file_threshold = _parse_int(
            "DIFFNOTE_LARGE_FILE_THRESHOLD", env["DIFFNOTE_LARGE_FILE_THRESHOLD"]
        )
    if env.get("DIFFNOTE_STORE"):
        config.store_path = Path(env["DIFFNOTE_STORE"]).expanduser()


def load_config(config_file: Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    """Load configuration.

    Args:
        config_file: YAML file to read; the default location is used when
            omitted and silently skipped if it does not exist
        env: Environment mapping (defaults to ``os.environ``)

    Raises:
        ConfigError: If an explicitly given file is missing, or any value is invalid
    """
    env = os.environ if env is None else env
    config = AppConfig(repo_scan_roots=_default_roots(env))

    path = config_file if config_file is not None else DEFAULT_CONFIG_FILE.expanduser()
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        _apply_file(config, data)
    elif config_file is not None:
        raise ConfigError(f"Config file not found: {config_file}")

    _apply_env(config, env)
    return config
