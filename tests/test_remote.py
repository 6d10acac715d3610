"""Tests for remote asset normalization."""

import pytest

from hosting_diff.core import SnapshotKind
from hosting_diff.errors import MalformedRemoteAsset
from hosting_diff.hashing import EMPTY_DIGEST, compute_bytes_digest
from hosting_diff.remote import (
    RemoteAsset,
    adapt_remote_assets,
    normalize_attributes,
    normalize_remote_path,
)

FP = compute_bytes_digest(b"hello")


class TestNormalizeRemotePath:
    """Test remote path normalization."""

    def test_leading_slash_is_stripped(self):
        assert normalize_remote_path("/index.html") == "index.html"
        assert normalize_remote_path("static/app.js") == "static/app.js"

    @pytest.mark.parametrize("raw", ["", "/", "a//b", "./a", "a/./b", "a/"])
    def test_empty_segments_rejected(self, raw):
        with pytest.raises(MalformedRemoteAsset):
            normalize_remote_path(raw)

    @pytest.mark.parametrize("raw", ["../etc/passwd", "/a/../../b", "a/.."])
    def test_escaping_paths_rejected(self, raw):
        with pytest.raises(MalformedRemoteAsset, match="escapes"):
            normalize_remote_path(raw)

    def test_backslash_rejected(self):
        with pytest.raises(MalformedRemoteAsset, match="backslash"):
            normalize_remote_path("static\\app.js")

    def test_non_string_rejected(self):
        with pytest.raises(MalformedRemoteAsset):
            normalize_remote_path(42)


class TestNormalizeAttributes:
    """Test attribute record coercion."""

    def test_name_value_records(self):
        raw = [{"name": "Content-Type", "value": "text/html"}, {"name": "Cache-Control", "value": "no-cache"}]
        assert normalize_attributes(raw) == {"Content-Type": "text/html", "Cache-Control": "no-cache"}

    def test_mapping_and_pairs(self):
        assert normalize_attributes({"A": 1}) == {"A": "1"}
        assert normalize_attributes([("A", "x")]) == {"A": "x"}
        assert normalize_attributes(None) == {}

    def test_repeated_name_keeps_last(self):
        raw = [{"name": "A", "value": "1"}, {"name": "A", "value": "2"}]
        assert normalize_attributes(raw) == {"A": "2"}

    def test_unknown_shape_rejected(self):
        with pytest.raises(MalformedRemoteAsset):
            normalize_attributes("Content-Type=text/html", "index.html")
        with pytest.raises(MalformedRemoteAsset):
            normalize_attributes([42], "index.html")


class TestAdaptRemoteAssets:
    """Test remote snapshot construction."""

    def test_tuples_become_sorted_snapshot(self):
        snapshot = adapt_remote_assets([
            ("/static/app.js", 5, FP, {}),
            ("/index.html", 0, EMPTY_DIGEST, {"Content-Type": "text/html"}),
        ])

        assert snapshot.kind == SnapshotKind.REMOTE
        assert snapshot.paths() == ["index.html", "static/app.js"]
        index = snapshot.by_path()["index.html"]
        assert index.fingerprint == EMPTY_DIGEST
        assert index.attributes == {"Content-Type": "text/html"}

    def test_mapping_records(self):
        snapshot = adapt_remote_assets([
            {"path": "/a.css", "size": 5, "hash": "sha256:" + FP.upper(),
             "attrs": [{"name": "Content-Type", "value": "text/css"}]},
        ])

        [asset] = snapshot.assets
        assert asset.path == "a.css"
        assert asset.fingerprint == FP
        assert asset.attributes == {"Content-Type": "text/css"}

    def test_model_records(self):
        snapshot = adapt_remote_assets([RemoteAsset(path="/a", size=5, fingerprint=FP)])
        assert snapshot.paths() == ["a"]

    def test_case_variants_are_distinct(self):
        snapshot = adapt_remote_assets([("/Foo.txt", 1, FP), ("/foo.txt", 1, FP)])
        assert snapshot.paths() == ["Foo.txt", "foo.txt"]

    def test_empty_list(self):
        assert len(adapt_remote_assets([])) == 0

    def test_duplicate_paths_rejected(self):
        """Two spellings of the same path are duplicates after normalization."""
        with pytest.raises(MalformedRemoteAsset, match="duplicate"):
            adapt_remote_assets([("/a.txt", 1, FP), ("a.txt", 1, FP)])

    def test_negative_size_rejected(self):
        with pytest.raises(MalformedRemoteAsset, match="negative size"):
            adapt_remote_assets([("/a.txt", -1, FP)])

    def test_bad_fingerprint_rejected(self):
        with pytest.raises(MalformedRemoteAsset, match="hex"):
            adapt_remote_assets([("/a.txt", 1, "deadbeef")])

    def test_missing_fingerprint_rejected(self):
        with pytest.raises(MalformedRemoteAsset, match="missing fingerprint"):
            adapt_remote_assets([{"path": "/a.txt", "size": 1}])

    def test_bad_size_rejected(self):
        with pytest.raises(MalformedRemoteAsset, match="invalid size"):
            adapt_remote_assets([("/a.txt", "big", FP)])

    def test_wrong_tuple_arity_rejected(self):
        with pytest.raises(MalformedRemoteAsset):
            adapt_remote_assets([("/a.txt", 1)])

    @pytest.mark.parametrize("record", [
        {"path": None, "size": 0, "hash": EMPTY_DIGEST},
        {"path": 42, "size": 0, "hash": EMPTY_DIGEST},
        (["index.html"], 0, EMPTY_DIGEST),
        (b"/index.html", 0, EMPTY_DIGEST, {}),
    ])
    def test_non_string_record_path_rejected(self, record):
        """A missing or non-text path is never stringified into a real one."""
        with pytest.raises(MalformedRemoteAsset, match="path must be a string"):
            adapt_remote_assets([record])

    def test_missing_path_key_rejected(self):
        with pytest.raises(MalformedRemoteAsset, match="empty path"):
            adapt_remote_assets([{"size": 0, "hash": EMPTY_DIGEST}])

    def test_escaping_path_rejected(self):
        with pytest.raises(MalformedRemoteAsset) as exc_info:
            adapt_remote_assets([("/ok.txt", 1, FP), ("/../secret", 1, FP)])
        assert exc_info.value.path == "/../secret"
