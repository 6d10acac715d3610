"""Hosting asset reconciliation.

Computes what a deploy would change in the hosted static files:

1. Scan the local hosting tree, then fingerprint every file on a bounded
   worker pool, consulting the AssetCache before reading any bytes
2. Prune cache entries for paths that no longer exist locally
3. Merge the local and remote snapshots by path (both are sorted, so this is
   a single linear pass)
4. Emit DiffEntries in ascending, case-sensitive path order

Paths that differ only in case are distinct: ``Foo.txt`` locally and
``foo.txt`` remotely come out as one Added and one Removed entry, matching
how the remote store keys assets.
"""

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

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
from .errors import FingerprintFailure
from .hashing import compute_file_digest
from .ignore import IgnoreSpec
from .scanner import AttributeLookup, LocalTreeScanner, ScannedFile

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

# Filesystem timestamps are coarser than the clock. A file changed within this
# window of being hashed could be rewritten without its stat identity moving,
# so its digest is not cached until a later run.
RACY_WINDOW_NS = 50_000_000


@dataclass
class LocalFingerprints:
    """Fully fingerprinted local side of a reconciliation."""

    snapshot: Snapshot
    failures: List[FingerprintFailureInfo] = field(default_factory=list)
    cache_hits: int = 0
    cache_misses: int = 0


def _identity(st: os.stat_result) -> Tuple[int, int, int, Optional[int]]:
    return (st.st_size, st.st_mtime_ns, st.st_ctime_ns, st.st_ino or None)


def fingerprint_file(
    scanned: ScannedFile,
    cache: Optional[AssetCache] = None,
    cancel: Optional[CancelToken] = None,
) -> Tuple[AssetDescriptor, bool]:
    """Fingerprint one scanned file, using the cache when its identity matches.

    Returns:
        (descriptor, cache_hit)

    Raises:
        FingerprintFailure: If the file can't be read
        Cancelled: If the token fired before the read started
    """
    if cancel is not None:
        cancel.raise_if_cancelled()

    if cache is not None:
        cached = cache.lookup(
            scanned.path, scanned.size, scanned.mtime_ns, scanned.ctime_ns, scanned.inode
        )
        if cached:
            logger.debug("Cache hit: %s", scanned.path)
            return scanned.to_descriptor(cached), True

    started_ns = time.time_ns()
    try:
        fingerprint = compute_file_digest(scanned.abs_path)
        after = os.stat(scanned.abs_path)
    except OSError as e:
        raise FingerprintFailure(scanned.path, e.strerror or str(e)) from e
    except ValueError as e:
        raise FingerprintFailure(scanned.path, str(e)) from e

    # Only remember the digest if the file held still while we read it
    if cache is not None:
        last_change = max(scanned.mtime_ns, scanned.ctime_ns or 0)
        if _identity(after) != (scanned.size, scanned.mtime_ns, scanned.ctime_ns, scanned.inode):
            logger.debug("Not caching %s: changed while hashing", scanned.path)
        elif last_change >= started_ns - RACY_WINDOW_NS:
            logger.debug("Not caching %s: modified too recently", scanned.path)
        else:
            cache.store(
                scanned.path, scanned.size, scanned.mtime_ns, fingerprint,
                ctime_ns=scanned.ctime_ns, inode=scanned.inode,
            )

    return scanned.to_descriptor(fingerprint), False


def fingerprint_tree(
    local_root: Path,
    ignore: Optional[IgnoreSpec],
    cache: Optional[AssetCache],
    *,
    attributes_for: Optional[AttributeLookup] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel: Optional[CancelToken] = None,
    prune: bool = True,
) -> LocalFingerprints:
    """Scan and fingerprint the local hosting tree.

    Per-file read failures are collected, not raised. Nothing partial is
    returned on cancellation.

    Raises:
        ScanFailure: If the tree can't be walked
        Cancelled: If the token fires during the scan or fingerprint phase
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")

    scanner = LocalTreeScanner(ignore, attributes_for, cancel)
    scanned = list(scanner.scan(Path(local_root)))
    logger.debug("Scanned %d files under %s", len(scanned), local_root)

    descriptors: List[AssetDescriptor] = []
    failures: List[FingerprintFailureInfo] = []
    hits = misses = 0

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures: Dict[Future, ScannedFile] = {
            executor.submit(fingerprint_file, f, cache, cancel): f for f in scanned
        }
        try:
            for future in as_completed(futures):
                try:
                    descriptor, hit = future.result()
                except FingerprintFailure as e:
                    logger.warning("Could not fingerprint %s: %s", e.path, e.reason)
                    failures.append(FingerprintFailureInfo(path=e.path, reason=e.reason))
                    continue
                descriptors.append(descriptor)
                if hit:
                    hits += 1
                else:
                    misses += 1
        except Exception:
            # Stop issuing reads; in-flight ones finish when the pool shuts down
            for pending in futures:
                pending.cancel()
            raise

    if cancel is not None:
        cancel.raise_if_cancelled()

    snapshot = Snapshot(kind=SnapshotKind.LOCAL, assets=descriptors)
    failures.sort(key=lambda f: f.path)

    # Failed paths still exist locally; keep their entries for the next run
    if prune and cache is not None:
        cache.prune([*snapshot.paths(), *(f.path for f in failures)])

    logger.debug(
        "Fingerprinted %d files (%d cached, %d hashed, %d failed)",
        len(descriptors), hits, misses, len(failures),
    )
    return LocalFingerprints(snapshot, failures, hits, misses)


# ============= Merge =============

def _added(local: AssetDescriptor) -> DiffEntry:
    return DiffEntry(
        path=local.path,
        category=ChangeType.ADDED,
        local_attributes=dict(local.attributes),
        local_fingerprint=local.fingerprint,
        local_size=local.size,
    )


def _removed(remote: AssetDescriptor) -> DiffEntry:
    return DiffEntry(
        path=remote.path,
        category=ChangeType.REMOVED,
        remote_attributes=dict(remote.attributes),
        remote_fingerprint=remote.fingerprint,
        remote_size=remote.size,
    )


def _compared(local: AssetDescriptor, remote: AssetDescriptor) -> DiffEntry:
    # Content is authoritative; an attribute-only change still needs a deploy
    if local.fingerprint != remote.fingerprint or local.attributes != remote.attributes:
        category = ChangeType.MODIFIED
    else:
        category = ChangeType.UNCHANGED
    return DiffEntry(
        path=local.path,
        category=category,
        local_attributes=dict(local.attributes),
        remote_attributes=dict(remote.attributes),
        local_fingerprint=local.fingerprint,
        remote_fingerprint=remote.fingerprint,
        local_size=local.size,
        remote_size=remote.size,
    )


def merge_snapshots(
    local: Snapshot,
    remote: Snapshot,
    include_unchanged: bool = False,
) -> List[DiffEntry]:
    """Sorted merge of two path-ordered snapshots.

    Args:
        local: Fully fingerprinted local snapshot
        remote: Remote snapshot
        include_unchanged: Keep UNCHANGED rows instead of eliding them

    Returns:
        DiffEntries in ascending path order
    """
    if local.kind != SnapshotKind.LOCAL or remote.kind != SnapshotKind.REMOTE:
        raise ValueError("merge_snapshots expects a local and a remote snapshot")
    for asset in local.assets:
        if asset.fingerprint is None:
            raise ValueError(f"Local asset has not been fingerprinted: {asset.path}")

    entries: List[DiffEntry] = []
    la, ra = local.assets, remote.assets
    i = j = 0

    while i < len(la) or j < len(ra):
        if j >= len(ra) or (i < len(la) and la[i].path < ra[j].path):
            entries.append(_added(la[i]))
            i += 1
        elif i >= len(la) or ra[j].path < la[i].path:
            entries.append(_removed(ra[j]))
            j += 1
        else:
            entry = _compared(la[i], ra[j])
            if include_unchanged or entry.category != ChangeType.UNCHANGED:
                entries.append(entry)
            i += 1
            j += 1

    return entries


def reconcile(
    local_root: Path,
    ignore: Optional[IgnoreSpec],
    cache: Optional[AssetCache],
    remote_snapshot: Snapshot,
    *,
    attributes_for: Optional[AttributeLookup] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel: Optional[CancelToken] = None,
    include_unchanged: bool = False,
) -> ReconcileResult:
    """Reconcile a local hosting tree against the deployed snapshot.

    Paths that could not be fingerprinted are left out of the merge on both
    sides and listed in ``ReconcileResult.failures`` instead.

    Raises:
        ScanFailure: If the local tree can't be walked
        Cancelled: If cancellation was requested before the merge
    """
    local = fingerprint_tree(
        local_root,
        ignore,
        cache,
        attributes_for=attributes_for,
        max_workers=max_workers,
        cancel=cancel,
    )

    remote = remote_snapshot
    if local.failures:
        failed = {f.path for f in local.failures}
        remote = Snapshot(
            kind=SnapshotKind.REMOTE,
            assets=[a for a in remote_snapshot.assets if a.path not in failed],
        )

    entries = merge_snapshots(local.snapshot, remote, include_unchanged=include_unchanged)
    result = ReconcileResult(
        entries=entries,
        failures=local.failures,
        cache_hits=local.cache_hits,
        cache_misses=local.cache_misses,
    )
    logger.info(
        "Hosting diff: %d local, %d remote, %d changed, %d not evaluated",
        len(local.snapshot), len(remote_snapshot), len(result.changes), len(result.failures),
    )
    return result


__all__ = [
    "DEFAULT_MAX_WORKERS",
    "LocalFingerprints",
    "fingerprint_file",
    "fingerprint_tree",
    "merge_snapshots",
    "reconcile",
]
