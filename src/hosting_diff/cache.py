"""Persistent fingerprint cache for hosting assets.

The cache maps a local file's identity (path, size, mtime, plus ctime and
inode where the platform has them) to its last known content fingerprint, so
repeated diffs of a large static site only hash files that actually changed.

The cache is advisory: a missing, locked or corrupt store costs hashing time
and nothing else. AssetCache absorbs those conditions and keeps working
against an in-memory database instead.
"""

from __future__ import annotations
import contextlib
import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import portalocker

from .errors import CacheUnavailable
from .hashing import normalize_fingerprint

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

# SQLite's default limit on bound parameters is 999
_DELETE_BATCH = 500

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS asset_cache (
        app_id TEXT NOT NULL,
        path TEXT NOT NULL,
        size INTEGER NOT NULL,
        mtime_ns INTEGER NOT NULL,
        ctime_ns INTEGER,
        inode INTEGER,
        fingerprint TEXT NOT NULL,
        PRIMARY KEY (app_id, path)
    )
"""

# Fails with OperationalError when an older or foreign table has this name
_SCHEMA_PROBE = (
    "SELECT app_id, path, size, mtime_ns, ctime_ns, inode, fingerprint "
    "FROM asset_cache LIMIT 1"
)


class AssetCache:
    """Cache content fingerprints keyed by file identity.

    One database file per profile; rows are namespaced by application id so
    diffs of several apps from the same profile do not evict each other.
    There is one row per (app_id, path) and a lookup only hits when every
    stored identity field matches the current file.

    Thread Safety:
        A single connection is shared by worker threads behind a lock.
        Separate processes are serialized by an advisory lock file held
        from open() to close().
    """

    def __init__(
        self,
        cache_path: Optional[Path],
        app_id: str = "",
        lock_timeout: float = 10.0,
    ):
        """Create an unopened cache handle.

        Args:
            cache_path: Database file, or None for an in-memory cache
            app_id: Application the entries belong to
            lock_timeout: Seconds to wait for another process holding the cache
        """
        self.cache_path = Path(cache_path) if cache_path else None
        self.app_id = app_id
        self.lock_timeout = lock_timeout
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._file_lock: Optional[portalocker.Lock] = None
        self._persistent = False

    # ---- lifecycle ----------------------------------------------------------

    def open(self) -> "AssetCache":
        """Open the store, degrading to memory if it cannot be used."""
        if self._conn is not None:
            return self

        if self.cache_path is None:
            self._conn = self._connect(MEMORY)
            return self

        try:
            self._acquire_file_lock()
            self._conn = self._open_persistent(self.cache_path)
            self._persistent = True
        except CacheUnavailable as e:
            logger.warning("%s; continuing without a persistent cache", e)
            self._release_file_lock()
            self._conn = self._connect(MEMORY)
        return self

    def close(self) -> None:
        """Flush pending writes and release the store. Safe to call twice."""
        with self._lock:
            conn, self._conn = self._conn, None
            if conn is not None:
                try:
                    conn.commit()
                except sqlite3.Error as e:
                    logger.warning("Failed to flush asset cache: %s", e)
                finally:
                    conn.close()
        self._release_file_lock()
        self._persistent = False

    def __enter__(self) -> "AssetCache":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def persistent(self) -> bool:
        """True when entries will survive this process."""
        return self._persistent

    # ---- key/value contract -------------------------------------------------

    def lookup(
        self,
        path: str,
        size: int,
        mtime_ns: int,
        ctime_ns: Optional[int] = None,
        inode: Optional[int] = None,
    ) -> Optional[str]:
        """Return the cached fingerprint if the stored identity matches exactly.

        Any mismatch is a miss, never an error. So is a path SQLite cannot
        bind, such as a filename that was not valid UTF-8 on disk.
        """
        conn = self._require_open()
        with self._lock:
            try:
                row = conn.execute(
                    "SELECT size, mtime_ns, ctime_ns, inode, fingerprint "
                    "FROM asset_cache WHERE app_id = ? AND path = ?",
                    (self.app_id, path),
                ).fetchone()
            except (sqlite3.Error, UnicodeError) as e:
                logger.debug("Cache lookup failed for %s: %s", path, e)
                row = None

            if row is None or tuple(row[:4]) != (size, mtime_ns, ctime_ns, inode):
                self.misses += 1
                return None

            try:
                fingerprint = normalize_fingerprint(row[4])
            except (AttributeError, ValueError):
                logger.debug("Ignoring malformed cache entry for %s", path)
                self.misses += 1
                return None

            self.hits += 1
            return fingerprint

    def store(
        self,
        path: str,
        size: int,
        mtime_ns: int,
        fingerprint: str,
        ctime_ns: Optional[int] = None,
        inode: Optional[int] = None,
    ) -> None:
        """Upsert the entry for ``path``; last write wins."""
        conn = self._require_open()
        with self._lock:
            try:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO asset_cache
                        (app_id, path, size, mtime_ns, ctime_ns, inode, fingerprint)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (self.app_id, path, size, mtime_ns, ctime_ns, inode, fingerprint),
                )
            except (sqlite3.Error, UnicodeError) as e:
                logger.debug("Cache store failed for %s: %s", path, e)

    def prune(self, current_paths: Iterable[str]) -> int:
        """Remove entries for paths no longer present locally.

        Returns:
            Number of entries removed
        """
        keep = set(current_paths)
        conn = self._require_open()
        with self._lock:
            try:
                stale = [
                    row[0]
                    for row in conn.execute(
                        "SELECT path FROM asset_cache WHERE app_id = ?", (self.app_id,)
                    )
                    if row[0] not in keep
                ]
                for i in range(0, len(stale), _DELETE_BATCH):
                    batch = stale[i:i + _DELETE_BATCH]
                    placeholders = ",".join("?" * len(batch))
                    conn.execute(
                        f"DELETE FROM asset_cache WHERE app_id = ? AND path IN ({placeholders})",
                        [self.app_id, *batch],
                    )
                conn.commit()
            except (sqlite3.Error, UnicodeError) as e:
                logger.warning("Failed to prune asset cache: %s", e)
                return 0

        if stale:
            logger.debug("Pruned %d stale cache entries", len(stale))
        return len(stale)

    # ---- housekeeping -------------------------------------------------------

    def entry_count(self, all_apps: bool = False) -> int:
        """Number of entries for this app, or across every app."""
        conn = self._require_open()
        with self._lock:
            if all_apps:
                row = conn.execute("SELECT COUNT(*) FROM asset_cache").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM asset_cache WHERE app_id = ?", (self.app_id,)
                ).fetchone()
        return row[0]

    def clear(self, all_apps: bool = False) -> int:
        """Delete entries for this app (or every app). Returns rows removed."""
        conn = self._require_open()
        with self._lock:
            if all_apps:
                cursor = conn.execute("DELETE FROM asset_cache")
            else:
                cursor = conn.execute("DELETE FROM asset_cache WHERE app_id = ?", (self.app_id,))
            conn.commit()
        return cursor.rowcount

    def entries(self) -> List[Tuple[str, int, int, str]]:
        """(path, size, mtime_ns, fingerprint) rows for this app, ordered by path."""
        conn = self._require_open()
        with self._lock:
            return [
                tuple(row)
                for row in conn.execute(
                    "SELECT path, size, mtime_ns, fingerprint FROM asset_cache "
                    "WHERE app_id = ? ORDER BY path",
                    (self.app_id,),
                )
            ]

    # ---- internals ----------------------------------------------------------

    def _require_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("AssetCache is not open")
        return self._conn

    @staticmethod
    def _connect(target: str) -> sqlite3.Connection:
        conn = sqlite3.connect(target, check_same_thread=False)
        try:
            conn.execute(_SCHEMA)
            conn.execute(_SCHEMA_PROBE).fetchone()
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _open_persistent(self, path: Path) -> sqlite3.Connection:
        """Open the database file, replacing it once if it is corrupt."""
        if path.exists() and not path.is_file():
            raise CacheUnavailable(str(path), "not a regular file")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheUnavailable(str(path), str(e)) from e

        try:
            return self._connect(str(path))
        except sqlite3.DatabaseError as e:
            logger.warning("Asset cache at %s is corrupt (%s); starting fresh", path, e)
            self._move_aside(path)

        try:
            return self._connect(str(path))
        except sqlite3.Error as e:
            raise CacheUnavailable(str(path), str(e)) from e

    @staticmethod
    def _move_aside(path: Path) -> None:
        aside = path.with_name(path.name + ".corrupt")
        try:
            os.replace(path, aside)
        except OSError as e:
            raise CacheUnavailable(str(path), f"cannot replace corrupt store: {e}") from e
        for suffix in ("-journal", "-wal", "-shm"):
            with contextlib.suppress(OSError):
                path.with_name(path.name + suffix).unlink()

    def _acquire_file_lock(self) -> None:
        lock_path = self.cache_path.with_name(self.cache_path.name + ".lock")
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            lock = portalocker.Lock(str(lock_path), "w", timeout=self.lock_timeout)
            lock.acquire()
        except (portalocker.exceptions.LockException, OSError) as e:
            raise CacheUnavailable(
                str(self.cache_path), f"could not lock {lock_path}: {e}"
            ) from e
        self._file_lock = lock

    def _release_file_lock(self) -> None:
        lock, self._file_lock = self._file_lock, None
        if lock is not None:
            with contextlib.suppress(portalocker.exceptions.LockException, OSError):
                lock.release()
