"""Per-profile cache locations."""

import re
from pathlib import Path
from typing import Optional

import platformdirs

from .errors import ConfigError

APP_NAME = "hosting-diff"
DEFAULT_PROFILE = "default"
CACHE_FILE = "hosting-assets.db"

_PROFILE_NAME = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


def default_cache_dir() -> Path:
    """Platform cache directory, e.g. ~/.cache/hosting-diff on Linux."""
    return Path(platformdirs.user_cache_dir(APP_NAME, appauthor=False))


def validate_profile(name: str) -> str:
    """Reject profile names that could escape the profiles directory."""
    if not _PROFILE_NAME.fullmatch(name or ""):
        raise ConfigError(f"Invalid profile name: {name!r}")
    return name


def hosting_cache_path(profile: str = DEFAULT_PROFILE, cache_dir: Optional[Path] = None) -> Path:
    """Asset cache database for a profile.

    The file outlives individual runs so repeated diffs reuse fingerprints.
    """
    base = Path(cache_dir) if cache_dir else default_cache_dir()
    return base / "profiles" / validate_profile(profile) / CACHE_FILE
