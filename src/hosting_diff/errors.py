"""Custom exceptions for hosting-diff.

This module defines typed exceptions for the reconciliation engine. Structural
failures (unreadable local tree, untrustworthy remote data) abort a run, while
per-file and cache problems are recorded or absorbed by the engine.
"""


class HostingDiffError(RuntimeError):
    """Base class for all hosting-diff errors."""
    pass


# Local Errors
class LoadError(HostingDiffError):
    """Local app or hosting directory could not be loaded."""
    pass


class ScanFailure(HostingDiffError):
    """A directory in the local hosting tree could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to scan {path}: {reason}")


class FingerprintFailure(HostingDiffError):
    """A scanned file could not be read for fingerprinting."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to fingerprint {path}: {reason}")


# Remote Errors
class MalformedRemoteAsset(HostingDiffError):
    """Remote asset entry cannot be trusted (empty, escaping or duplicate path)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        display = repr(path) if path else "(empty path)"
        super().__init__(f"Malformed remote asset {display}: {reason}")


class UpstreamError(HostingDiffError):
    """Remote side failed to provide data."""
    pass


# Cache Errors
class CacheUnavailable(HostingDiffError):
    """Cache store missing, locked or corrupt.

    Raised inside the cache layer only; AssetCache recovers by running
    without persistence.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Asset cache unavailable at {path}: {reason}")


# Control Flow
class Cancelled(HostingDiffError):
    """Reconciliation was cancelled before the merge step."""

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Reconciliation cancelled: {reason}")


# Configuration Errors
class ConfigError(HostingDiffError):
    """Invalid configuration value."""
    pass
