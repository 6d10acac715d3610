"""Text rendering of hosting diffs.

Pure functions with no bearing on diff correctness; swap them freely for
other output formats.
"""

import json
from typing import Dict, Iterable, List

from .core import ChangeType, DiffEntry, FingerprintFailureInfo, ReconcileResult

MARKERS = {
    ChangeType.ADDED: "+",
    ChangeType.REMOVED: "-",
    ChangeType.MODIFIED: "~",
    ChangeType.UNCHANGED: "=",
}

GROUP_TITLES = [
    (ChangeType.ADDED, "New hosting files"),
    (ChangeType.REMOVED, "Removed hosting files"),
    (ChangeType.MODIFIED, "Modified hosting files"),
]


def display_path(path: str) -> str:
    """Render a hosting path the way the remote store shows it."""
    return "/" + path


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def attribute_changes(entry: DiffEntry) -> List[str]:
    """Describe attribute differences of a MODIFIED entry, one per key.

    Ordered by the local attribute order, then remote-only keys.
    """
    local = entry.local_attributes or {}
    remote = entry.remote_attributes or {}
    lines = []
    for key in [*local, *(k for k in remote if k not in local)]:
        before, after = remote.get(key), local.get(key)
        if before == after:
            continue
        if before is None:
            lines.append(f"{key}: (unset) -> {after}")
        elif after is None:
            lines.append(f"{key}: {before} -> (unset)")
        else:
            lines.append(f"{key}: {before} -> {after}")
    return lines


def format_entry(entry: DiffEntry) -> str:
    line = f"{MARKERS[entry.category]} {display_path(entry.path)}"
    if entry.category == ChangeType.MODIFIED and not entry.content_changed:
        line += " (attributes changed)"
    return line


def format_diff(entries: Iterable[DiffEntry]) -> List[str]:
    """One display line per entry, in the order given."""
    return [format_entry(e) for e in entries]


def format_failures(failures: Iterable[FingerprintFailureInfo]) -> List[str]:
    return [f"! {display_path(f.path)}: {f.reason}" for f in failures]


def format_hosting_diffs(result: ReconcileResult) -> List[str]:
    """Grouped lines appended to an app diff. Empty when nothing changed."""
    lines: List[str] = []
    for category, title in GROUP_TITLES:
        group = [e for e in result.entries if e.category == category]
        if not group:
            continue
        lines.append(title)
        for entry in group:
            lines.append("  " + format_entry(entry))
            if category == ChangeType.MODIFIED:
                lines.extend("      " + change for change in attribute_changes(entry))

    if result.failures:
        lines.append("Could not evaluate hosting files")
        lines.extend("  " + line for line in format_failures(result.failures))
    return lines


def format_diff_json(result: ReconcileResult) -> str:
    """Machine-readable rendering of a reconcile result."""
    summary: Dict[str, int] = {c.value: 0 for c in ChangeType}
    for category, count in result.summary.items():
        summary[category.value] = count
    payload = {
        "entries": [e.model_dump(mode="json") for e in result.entries],
        "failures": [f.model_dump(mode="json") for f in result.failures],
        "summary": summary,
        "cache": {"hits": result.cache_hits, "misses": result.cache_misses},
    }
    return json.dumps(payload, indent=2, sort_keys=True)
