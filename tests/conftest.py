"""Shared test fixtures and utilities."""

import json
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from hosting_diff.cache import AssetCache
from hosting_diff.client import Cluster, DataLake, Group
from hosting_diff.hashing import compute_bytes_digest
from hosting_diff.reconcile import RACY_WINDOW_NS
from hosting_diff.remote import adapt_remote_assets

Content = Union[str, bytes]

APP_ID = "app-123"


def _bytes(content: Content) -> bytes:
    return content.encode() if isinstance(content, str) else content


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep every test away from the real user cache and env overrides."""
    monkeypatch.setenv("HOSTING_DIFF_CACHE_DIR", str(tmp_path / "user-cache"))
    monkeypatch.delenv("HOSTING_DIFF_PROFILE", raising=False)
    monkeypatch.delenv("HOSTING_DIFF_WORKERS", raising=False)
    return tmp_path / "user-cache"


@pytest.fixture
def settle():
    """Wait until freshly written files are old enough to be cached."""
    def _settle():
        time.sleep(2 * RACY_WINDOW_NS / 1e9)
    return _settle


@pytest.fixture
def digest():
    """Fingerprint of in-memory content."""
    def _digest(content: Content) -> str:
        return compute_bytes_digest(_bytes(content))
    return _digest


@pytest.fixture
def app_dir(tmp_path):
    """An app root with a config and an empty hosting/files directory."""
    root = tmp_path / "app"
    (root / "hosting" / "files").mkdir(parents=True)
    (root / "realm_config.json").write_text(json.dumps({"app_id": APP_ID, "name": "test-app"}))
    return root


@pytest.fixture
def hosting_root(app_dir):
    return app_dir / "hosting" / "files"


@pytest.fixture
def write_file(hosting_root):
    """Factory fixture to write files relative to the hosting root."""
    def _write(path: str, content: Content = "test content"):
        file_path = hosting_root / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(_bytes(content))
        return file_path
    return _write


@pytest.fixture
def write_metadata(app_dir):
    """Factory fixture for hosting/metadata.json."""
    def _write(attrs_by_path: Dict[str, Dict[str, str]]):
        records = [
            {"path": "/" + path, "attrs": [{"name": k, "value": v} for k, v in attrs.items()]}
            for path, attrs in attrs_by_path.items()
        ]
        (app_dir / "hosting" / "metadata.json").write_text(json.dumps(records))
    return _write


@pytest.fixture
def make_remote():
    """Build a remote snapshot from path -> content (and optional attributes)."""
    def _make(files: Dict[str, Content], attrs: Optional[Dict[str, Dict[str, str]]] = None):
        attrs = attrs or {}
        return adapt_remote_assets([
            (path, len(_bytes(content)), compute_bytes_digest(_bytes(content)), attrs.get(path, {}))
            for path, content in files.items()
        ])
    return _make


@pytest.fixture
def cache(tmp_path):
    """Open AssetCache backed by a temp database."""
    asset_cache = AssetCache(tmp_path / "cache" / "assets.db", app_id=APP_ID)
    asset_cache.open()
    yield asset_cache
    asset_cache.close()


class FakeRemoteClient:
    """Implements the RemoteClient protocol directly with canned data."""

    def __init__(self, assets: Optional[List] = None, error: Optional[Exception] = None):
        self.assets = assets or []
        self.error = error
        self.calls = []

    def groups(self) -> List[Group]:
        return [Group(id="group-1", name="Project 0")]

    def clusters(self, group_id: str) -> List[Cluster]:
        return [Cluster(id="c1", name="Cluster0")]

    def data_lakes(self, group_id: str) -> List[DataLake]:
        return []

    def hosting_assets(self, group_id: str, app_id: str) -> List:
        self.calls.append((group_id, app_id))
        if self.error is not None:
            raise self.error
        return self.assets


@pytest.fixture
def fake_client():
    return FakeRemoteClient
