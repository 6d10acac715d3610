"""Gitignore-style exclusion rules for hosting directories."""

from pathlib import Path
from typing import Iterable

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern


IGNORE_FILE = ".hostingignore"

# Default patterns to always ignore
DEFAULTS = [
    # Version control
    ".git/",
    ".hg/",
    ".svn/",

    # Exclusion rules themselves are never deployed
    IGNORE_FILE,

    # Tool caches
    "__pycache__/",
    ".cache/",
    ".sass-cache/",
    ".parcel-cache/",

    # Editors
    ".idea/",
    ".vscode/",
    "*.swp",
    "*.swo",
    "*~",

    # OS files
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
]


class IgnoreSpec:
    """Manages gitignore-style patterns for hosting file exclusion."""

    def __init__(self, root: Path, extra: Iterable[str] = (), use_defaults: bool = True):
        """Initialize ignore spec with default and custom patterns.

        Args:
            root: Hosting root directory
            extra: Additional patterns to include
            use_defaults: Whether to start from DEFAULTS
        """
        self.root = root
        patterns = list(DEFAULTS) if use_defaults else []

        # Load project-specific .hostingignore if it exists
        ignore_file = root / IGNORE_FILE
        if ignore_file.is_file():
            for line in ignore_file.read_text().splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    patterns.append(line)

        patterns.extend(extra)
        self.patterns = patterns
        self.spec = PathSpec.from_lines(GitWildMatchPattern, patterns)

    def is_ignored(self, relpath: str) -> bool:
        """Check if a root-relative POSIX file path should be excluded."""
        return self.spec.match_file(relpath)

    def should_traverse(self, dirpath: str) -> bool:
        """Check if a root-relative directory should be descended into.

        Excluded directories are never traversed, so nothing below them is
        read even if a later pattern would re-include it.
        """
        if not dirpath.endswith("/"):
            dirpath = dirpath + "/"
        return not self.spec.match_file(dirpath)
