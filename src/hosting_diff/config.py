"""hosting-diff configuration helpers."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from .errors import ConfigError
from .profile import DEFAULT_PROFILE, validate_profile

logger = logging.getLogger(__name__)

CONFIG_FILE = ".hosting-diff.yaml"

ENV_PROFILE = "HOSTING_DIFF_PROFILE"
ENV_WORKERS = "HOSTING_DIFF_WORKERS"
ENV_CACHE_DIR = "HOSTING_DIFF_CACHE_DIR"

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


@dataclass
class HostingDiffConfig:
    """Settings for a hosting diff run."""

    profile: str = DEFAULT_PROFILE
    max_workers: int = 4
    exclude: List[str] = field(default_factory=list)
    include_unchanged: bool = False
    cache_dir: Optional[Path] = None
    lock_timeout: float = 10.0

    def validate(self) -> "HostingDiffConfig":
        validate_profile(self.profile)
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.lock_timeout < 0:
            raise ConfigError(f"lock_timeout must not be negative, got {self.lock_timeout}")
        return self


def _as_int(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _as_float(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _as_bool(value, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise ConfigError(f"{name} must be true or false, got {value!r}")


def load_config(root: Optional[Path] = None) -> HostingDiffConfig:
    """Load configuration from <root>/.hosting-diff.yaml if present.

    Keys may sit at the top level or under a ``hosting_diff:`` section.
    Environment variables override the file.

    Raises:
        ConfigError: If a value is present but invalid
    """
    data = {}
    cfg_path = root / CONFIG_FILE if root else None
    if cfg_path is not None and cfg_path.exists():
        try:
            data = yaml.safe_load(cfg_path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable config %s: %s", cfg_path, e)
            data = {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a mapping", cfg_path)
        data = {}

    section = data.get("hosting_diff", data) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"hosting_diff section in {cfg_path} must be a mapping")
    exclude = section.get("exclude", [])
    if isinstance(exclude, str):
        exclude = [exclude]
    if not isinstance(exclude, list):
        raise ConfigError(f"exclude must be a pattern or a list of patterns, got {exclude!r}")

    config = HostingDiffConfig(
        profile=str(section.get("profile", DEFAULT_PROFILE)),
        max_workers=_as_int(section.get("max_workers", 4), "max_workers"),
        exclude=[str(p) for p in exclude],
        include_unchanged=_as_bool(section.get("include_unchanged", False), "include_unchanged"),
        cache_dir=Path(section["cache_dir"]).expanduser() if section.get("cache_dir") else None,
        lock_timeout=_as_float(section.get("lock_timeout", 10.0), "lock_timeout"),
    )

    if os.environ.get(ENV_PROFILE):
        config.profile = os.environ[ENV_PROFILE]
    if os.environ.get(ENV_WORKERS):
        config.max_workers = _as_int(os.environ[ENV_WORKERS], ENV_WORKERS)
    if os.environ.get(ENV_CACHE_DIR):
        config.cache_dir = Path(os.environ[ENV_CACHE_DIR]).expanduser()

    return config.validate()
