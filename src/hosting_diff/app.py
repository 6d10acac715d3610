"""Local app loading: find the app root and its hosting directory."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import LoadError, MalformedRemoteAsset
from .ignore import IgnoreSpec
from .remote import normalize_attributes, normalize_remote_path

# Any of these marks a directory as an app root
APP_CONFIG_FILES = ("realm_config.json", "config.json", "stitch.json")

HOSTING_DIR = "hosting"
HOSTING_FILES_DIR = "files"
HOSTING_METADATA_FILE = "metadata.json"


@dataclass
class AppHosting:
    """Hosting section of a local app: the files root plus per-file attributes."""

    root_dir: Path
    metadata: Dict[str, Dict[str, str]] = field(default_factory=dict)
    exclude: List[str] = field(default_factory=list)

    def attributes_for(self, path: str) -> Dict[str, str]:
        """Attributes declared for a hosting-root-relative path."""
        return dict(self.metadata.get(path, {}))

    def ignore_spec(self, extra: Iterable[str] = ()) -> IgnoreSpec:
        return IgnoreSpec(self.root_dir, [*self.exclude, *extra])


def load_hosting_metadata(path: Path) -> Dict[str, Dict[str, str]]:
    """Read hosting/metadata.json.

    The document is a list of ``{"path": "/x", "attrs": [{"name", "value"}]}``
    records; a ``{path: attrs}`` object is accepted too.

    Raises:
        LoadError: If the document can't be read or has an unknown shape
    """
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise LoadError(f"Cannot read hosting metadata {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise LoadError(f"Hosting metadata {path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        records = [{"path": k, "attrs": v} for k, v in data.items()]
    elif isinstance(data, list):
        records = data
    else:
        raise LoadError(f"Hosting metadata {path} must be a list of asset records")

    metadata: Dict[str, Dict[str, str]] = {}
    for record in records:
        if not isinstance(record, dict) or "path" not in record:
            raise LoadError(f"Hosting metadata {path} has a record without a path: {record!r}")
        try:
            asset_path = normalize_remote_path(record["path"])
            metadata[asset_path] = normalize_attributes(
                record.get("attrs", record.get("attributes")), asset_path
            )
        except MalformedRemoteAsset as e:
            raise LoadError(f"Hosting metadata {path}: {e}") from e
    return metadata


class LocalApp:
    """A locally authored app directory."""

    def __init__(self, root_dir: Path, app_id: str = "", name: str = ""):
        self.root_dir = root_dir
        self.app_id = app_id
        self.name = name

    @classmethod
    def load(cls, start_path: Optional[Path] = None) -> "LocalApp":
        """Find the app root at or above ``start_path`` and read its identity.

        Raises:
            LoadError: If no app root is found or its config can't be parsed
        """
        start = Path(start_path) if start_path else Path.cwd()
        if not start.exists():
            raise LoadError(f"Local path does not exist: {start}")

        root = cls._find_root(start)
        if root is None:
            raise LoadError(
                f"No app found at {start} (expected one of {', '.join(APP_CONFIG_FILES)} "
                f"or a {HOSTING_DIR}/ directory)"
            )

        app_id, name = "", ""
        for config_name in APP_CONFIG_FILES:
            config_path = root / config_name
            if config_path.is_file():
                try:
                    data = json.loads(config_path.read_text())
                except (OSError, json.JSONDecodeError) as e:
                    raise LoadError(f"Cannot read app config {config_path}: {e}") from e
                if isinstance(data, dict):
                    app_id = str(data.get("app_id") or data.get("client_app_id") or "")
                    name = str(data.get("name") or "")
                break
        return cls(root, app_id=app_id, name=name)

    @staticmethod
    def _find_root(start: Path) -> Optional[Path]:
        """Walk up directory tree to find the app root."""
        current = start.resolve()
        if current.is_file():
            current = current.parent

        while True:
            if any((current / n).is_file() for n in APP_CONFIG_FILES) or (current / HOSTING_DIR).is_dir():
                return current
            if current == current.parent:
                return None
            current = current.parent

    @property
    def hosting_dir(self) -> Path:
        return self.root_dir / HOSTING_DIR

    def hosting(self, exclude: Iterable[str] = ()) -> AppHosting:
        """Load the hosting section.

        Raises:
            LoadError: If the hosting files directory is missing or metadata is bad
        """
        files_dir = self.hosting_dir / HOSTING_FILES_DIR
        if not files_dir.is_dir():
            raise LoadError(f"No hosting files directory at {files_dir}")

        metadata_path = self.hosting_dir / HOSTING_METADATA_FILE
        metadata = load_hosting_metadata(metadata_path) if metadata_path.is_file() else {}
        return AppHosting(root_dir=files_dir, metadata=metadata, exclude=list(exclude))
