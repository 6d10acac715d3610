"""Remote hosting asset normalization.

The remote service reports deployed assets as loosely shaped records: paths
rooted at ``/``, attribute lists of ``{"name", "value"}`` pairs, digests with
or without a scheme. This module turns them into a remote Snapshot, refusing
anything that could corrupt the merge (empty, escaping or duplicate paths).
No filesystem access happens here.
"""

from typing import Any, Dict, Iterable, List, Mapping, Union

from pydantic import BaseModel, Field

from .core import AssetDescriptor, Snapshot, SnapshotKind
from .errors import MalformedRemoteAsset
from .hashing import normalize_fingerprint


class RemoteAsset(BaseModel):
    """Asset record as supplied by the remote client."""

    path: str
    size: int
    fingerprint: str  # hex digest
    attributes: Dict[str, str] = Field(default_factory=dict)


RemoteAssetLike = Union[RemoteAsset, Mapping[str, Any], tuple]


def normalize_remote_path(raw: str) -> str:
    """Convert a remote asset path to a hosting-root-relative POSIX path.

    Raises:
        MalformedRemoteAsset: If the path is empty or escapes the root
    """
    if not isinstance(raw, str):
        raise MalformedRemoteAsset(str(raw), "path must be a string")
    if "\\" in raw:
        raise MalformedRemoteAsset(raw, "backslash in path")

    path = raw.lstrip("/")
    if not path:
        raise MalformedRemoteAsset(raw, "empty path")

    for segment in path.split("/"):
        if segment == "..":
            raise MalformedRemoteAsset(raw, "parent directory segment escapes the hosting root")
        if segment in ("", "."):
            raise MalformedRemoteAsset(raw, "empty or '.' path segment")
    return path


def normalize_attributes(raw: Any, path: str = "") -> Dict[str, str]:
    """Coerce remote attribute records into an ordered str -> str mapping.

    Accepts a mapping, or a list of ``{"name": ..., "value": ...}`` records.
    Repeated names keep the last value.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return {str(k): str(v) for k, v in raw.items()}
    if isinstance(raw, (list, tuple)):
        attributes: Dict[str, str] = {}
        for item in raw:
            if isinstance(item, Mapping) and "name" in item:
                attributes[str(item["name"])] = str(item.get("value", ""))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                attributes[str(item[0])] = str(item[1])
            else:
                raise MalformedRemoteAsset(path, f"unrecognized attribute record: {item!r}")
        return attributes
    raise MalformedRemoteAsset(path, f"unrecognized attributes: {raw!r}")


def _coerce(item: RemoteAssetLike) -> RemoteAsset:
    """Accept the model, a (path, size, hex, attributes) tuple, or a mapping."""
    if isinstance(item, RemoteAsset):
        return item

    if isinstance(item, tuple):
        if len(item) not in (3, 4):
            raise MalformedRemoteAsset(str(item[0]) if item else "", "expected (path, size, fingerprint, attributes)")
        path, size, fingerprint = item[:3]
        attrs = item[3] if len(item) == 4 else None
    elif isinstance(item, Mapping):
        path = item.get("path", "")
        size = item.get("size", 0)
        fingerprint = item.get("fingerprint", item.get("hash"))
        attrs = item.get("attributes", item.get("attrs"))
    else:
        raise MalformedRemoteAsset("", f"unrecognized asset record: {item!r}")

    if not isinstance(path, str):
        raise MalformedRemoteAsset(repr(path), "path must be a string")
    if fingerprint is None:
        raise MalformedRemoteAsset(path, "missing fingerprint")
    try:
        size = int(size)
    except (TypeError, ValueError):
        raise MalformedRemoteAsset(path, f"invalid size: {size!r}")
    return RemoteAsset(
        path=path,
        size=size,
        fingerprint=str(fingerprint),
        attributes=normalize_attributes(attrs, path),
    )


def adapt_remote_assets(assets: Iterable[RemoteAssetLike]) -> Snapshot:
    """Translate the remote asset list into a remote Snapshot.

    Raises:
        MalformedRemoteAsset: On the first entry that can't be trusted
    """
    descriptors: List[AssetDescriptor] = []
    seen = set()

    for item in assets:
        asset = _coerce(item)
        path = normalize_remote_path(asset.path)
        if path in seen:
            raise MalformedRemoteAsset(asset.path, "duplicate path")
        seen.add(path)

        if asset.size < 0:
            raise MalformedRemoteAsset(asset.path, f"negative size: {asset.size}")
        try:
            fingerprint = normalize_fingerprint(asset.fingerprint)
        except ValueError as e:
            raise MalformedRemoteAsset(asset.path, str(e)) from e

        descriptors.append(AssetDescriptor(
            path=path,
            size=asset.size,
            fingerprint=fingerprint,
            attributes=dict(asset.attributes),
        ))

    return Snapshot(kind=SnapshotKind.REMOTE, assets=descriptors)
