"""hosting-diff: preview hosting asset changes before a deploy."""

from .cache import AssetCache
from .cancel import CancelToken
from .core import (
    AssetDescriptor,
    ChangeType,
    DiffEntry,
    FingerprintFailureInfo,
    ReconcileResult,
    Snapshot,
    SnapshotKind,
)
from .formatting import format_diff, format_hosting_diffs
from .ignore import IgnoreSpec
from .reconcile import merge_snapshots, reconcile
from .remote import adapt_remote_assets
from .scanner import scan_tree

__version__ = "0.1.0"

__all__ = [
    "AssetCache",
    "AssetDescriptor",
    "CancelToken",
    "ChangeType",
    "DiffEntry",
    "FingerprintFailureInfo",
    "IgnoreSpec",
    "ReconcileResult",
    "Snapshot",
    "SnapshotKind",
    "adapt_remote_assets",
    "format_diff",
    "format_hosting_diffs",
    "merge_snapshots",
    "reconcile",
    "scan_tree",
]
