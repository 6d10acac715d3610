"""Core data models for hosting-diff.

A reconciliation compares two path-ordered snapshots of hosting assets:

1. Local: built by scanning the hosting directory and fingerprinting each file
2. Remote: built from the asset list the remote service reports

Both sides share the AssetDescriptor shape so the merge never has to care
where a descriptor came from.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============= Assets =============

class AssetDescriptor(BaseModel):
    """One hosting file as seen by either side.

    Attributes are a plain dict: insertion order is kept for display and
    equality ignores order, which is how attribute sets are compared.
    """

    path: str  # forward-slash, relative to the hosting root
    size: int
    fingerprint: Optional[str] = None  # sha256 hex, once computed
    attributes: Dict[str, str] = Field(default_factory=dict)
    mtime_ns: Optional[int] = None  # local only


class SnapshotKind(str, Enum):
    """Which side a snapshot describes."""

    LOCAL = "local"
    REMOTE = "remote"


class Snapshot(BaseModel):
    """Point-in-time set of assets, ordered by path.

    Paths are unique within a snapshot. Assets are sorted on construction so
    callers may pass them in filesystem or API order.
    """

    kind: SnapshotKind
    assets: List[AssetDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _sort_and_check_unique(self) -> "Snapshot":
        self.assets.sort(key=lambda a: a.path)
        for prev, cur in zip(self.assets, self.assets[1:]):
            if prev.path == cur.path:
                raise ValueError(f"Duplicate path in {self.kind.value} snapshot: {cur.path}")
        return self

    def paths(self) -> List[str]:
        """Ordered list of asset paths."""
        return [a.path for a in self.assets]

    def by_path(self) -> Dict[str, AssetDescriptor]:
        """Index assets by path."""
        return {a.path: a for a in self.assets}

    def __len__(self) -> int:
        return len(self.assets)


# ============= Change Detection =============

class ChangeType(str, Enum):
    """Category of a diff row."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class DiffEntry(BaseModel):
    """Single reconciled path. Immutable once built by the engine."""

    model_config = ConfigDict(frozen=True)

    path: str
    category: ChangeType
    local_attributes: Optional[Dict[str, str]] = None   # None for REMOVED
    remote_attributes: Optional[Dict[str, str]] = None  # None for ADDED
    local_fingerprint: Optional[str] = None
    remote_fingerprint: Optional[str] = None
    local_size: Optional[int] = None
    remote_size: Optional[int] = None

    @property
    def content_changed(self) -> bool:
        """True when both sides exist and their fingerprints differ."""
        return (
            self.local_fingerprint is not None
            and self.remote_fingerprint is not None
            and self.local_fingerprint != self.remote_fingerprint
        )

    @property
    def attributes_changed(self) -> bool:
        """True when both sides exist and their attribute sets differ."""
        if self.local_attributes is None or self.remote_attributes is None:
            return False
        return self.local_attributes != self.remote_attributes


class FingerprintFailureInfo(BaseModel):
    """A local path that was scanned but could not be evaluated."""

    model_config = ConfigDict(frozen=True)

    path: str
    reason: str


class ReconcileResult(BaseModel):
    """Result of reconciling a local hosting tree against a remote snapshot."""

    entries: List[DiffEntry] = Field(default_factory=list)
    failures: List[FingerprintFailureInfo] = Field(default_factory=list)
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def changes(self) -> List[DiffEntry]:
        """Entries that would change the deployed hosting assets."""
        return [e for e in self.entries if e.category != ChangeType.UNCHANGED]

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    @property
    def failed_paths(self) -> List[str]:
        return [f.path for f in self.failures]

    @property
    def summary(self) -> Dict[ChangeType, int]:
        """Get summary counts by category."""
        counts: Dict[ChangeType, int] = {}
        for entry in self.entries:
            counts[entry.category] = counts.get(entry.category, 0) + 1
        return counts
