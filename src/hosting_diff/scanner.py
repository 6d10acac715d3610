"""Local hosting tree scanning.

Walks a hosting directory and yields one ScannedFile per deployable file.
Exclusion rules are applied before descending, so excluded directories are
never read. Symbolic links are followed, but every directory is entered at
most once (tracked by device and inode), which keeps link cycles finite.
"""

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Set, Tuple

from .cancel import CancelToken
from .core import AssetDescriptor
from .errors import ScanFailure
from .ignore import IgnoreSpec

logger = logging.getLogger(__name__)

AttributeLookup = Callable[[str], Dict[str, str]]


@dataclass(frozen=True)
class ScannedFile:
    """Stat-level view of a local file, before fingerprinting."""

    path: str  # POSIX, relative to the scan root
    abs_path: Path
    size: int
    mtime_ns: int
    ctime_ns: Optional[int] = None
    inode: Optional[int] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_descriptor(self, fingerprint: str) -> AssetDescriptor:
        return AssetDescriptor(
            path=self.path,
            size=self.size,
            fingerprint=fingerprint,
            attributes=dict(self.attributes),
            mtime_ns=self.mtime_ns,
        )


class LocalTreeScanner:
    """Produces the local side of a reconciliation.

    ``scan()`` returns a lazy iterator; calling it again restarts the walk
    from scratch.
    """

    def __init__(
        self,
        ignore: Optional[IgnoreSpec] = None,
        attributes_for: Optional[AttributeLookup] = None,
        cancel: Optional[CancelToken] = None,
    ):
        self.ignore = ignore
        self.attributes_for = attributes_for
        self.cancel = cancel

    def scan(self, root: Path) -> Iterator[ScannedFile]:
        """Walk ``root`` and yield its files.

        Raises:
            ScanFailure: If the root or any directory below it can't be read
            Cancelled: If the cancel token fires between directory reads
        """
        root = Path(root)
        try:
            root_stat = os.stat(root)
        except OSError as e:
            raise ScanFailure(str(root), e.strerror or str(e)) from e
        if not stat.S_ISDIR(root_stat.st_mode):
            raise ScanFailure(str(root), "not a directory")

        visited = {(root_stat.st_dev, root_stat.st_ino)}
        yield from self._walk(root, "", visited)

    def _walk(self, directory: Path, prefix: str, visited: Set[Tuple[int, int]]) -> Iterator[ScannedFile]:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled()

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise ScanFailure(str(directory), e.strerror or str(e)) from e

        for entry in entries:
            rel = prefix + entry.name
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError as e:
                logger.debug("Skipping %s: %s", rel, e)
                continue

            if is_dir:
                if self.ignore is not None and not self.ignore.should_traverse(rel):
                    continue
                try:
                    dir_stat = os.stat(entry.path)
                except OSError as e:
                    raise ScanFailure(entry.path, e.strerror or str(e)) from e
                identity = (dir_stat.st_dev, dir_stat.st_ino)
                if identity in visited:
                    logger.debug("Skipping %s: directory already visited (symlink cycle?)", rel)
                    continue
                visited.add(identity)
                yield from self._walk(Path(entry.path), rel + "/", visited)

            elif is_file:
                if self.ignore is not None and self.ignore.is_ignored(rel):
                    continue
                try:
                    st = os.stat(entry.path)
                except OSError as e:
                    # Vanished between listing and stat
                    logger.debug("Skipping %s: %s", rel, e)
                    continue
                attributes = self.attributes_for(rel) if self.attributes_for else {}
                yield ScannedFile(
                    path=rel,
                    abs_path=Path(entry.path),
                    size=st.st_size,
                    mtime_ns=st.st_mtime_ns,
                    ctime_ns=st.st_ctime_ns,
                    inode=st.st_ino or None,
                    attributes=dict(attributes),
                )

            elif entry.is_symlink():
                logger.warning("Skipping dangling symlink: %s", rel)
            else:
                logger.debug("Skipping special file: %s", rel)


def scan_tree(
    root: Path,
    ignore: Optional[IgnoreSpec] = None,
    cancel: Optional[CancelToken] = None,
    attributes_for: Optional[AttributeLookup] = None,
) -> Iterator[ScannedFile]:
    """Convenience wrapper around LocalTreeScanner.scan()."""
    return LocalTreeScanner(ignore, attributes_for, cancel).scan(root)
