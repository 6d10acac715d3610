"""Integration tests for the hosting-diff CLI."""

import json

import pytest
from rich.console import Console
from typer.testing import CliRunner

from hosting_diff.cli import app
from hosting_diff.profile import hosting_cache_path

from conftest import APP_ID

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep long temp paths on one line."""
    monkeypatch.setattr("hosting_diff.cli.console", Console(width=300))


@pytest.fixture
def deployed(tmp_path, digest):
    """Factory writing a remote export file."""
    def _write(files, app_id=APP_ID):
        path = tmp_path / "deployed.json"
        path.write_text(json.dumps({
            "app_id": app_id,
            "assets": [
                {"path": "/" + p, "size": len(c), "hash": digest(c), "attrs": []}
                for p, c in files.items()
            ],
        }))
        return path
    return _write


class TestDiffCommand:
    """Test the diff command."""

    def test_identical(self, app_dir, write_file, deployed):
        write_file("index.html", "<html/>")
        remote = deployed({"index.html": "<html/>"})

        result = runner.invoke(app, ["diff", "--local", str(app_dir), "--remote", str(remote)])

        assert result.exit_code == 0, result.output
        assert "identical" in result.output

    def test_table_output(self, app_dir, write_file, deployed):
        write_file("new.html", "<p/>")
        remote = deployed({"old.html": "<p/>"})

        result = runner.invoke(app, ["diff", "--local", str(app_dir), "--remote", str(remote)])

        assert result.exit_code == 0, result.output
        assert "/new.html" in result.output
        assert "/old.html" in result.output
        assert "2 changes" in result.output

    def test_json_output(self, app_dir, write_file, deployed):
        write_file("a.txt", "same")
        write_file("b.txt", "new")
        remote = deployed({"a.txt": "same", "b.txt": "old"})

        result = runner.invoke(
            app, ["diff", "--local", str(app_dir), "--remote", str(remote), "--json", "--include-unchanged"]
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [(e["path"], e["category"]) for e in payload["entries"]] == [
            ("a.txt", "unchanged"),
            ("b.txt", "modified"),
        ]
        assert payload["summary"]["modified"] == 1

    def test_profile_cache_is_created(self, app_dir, write_file, deployed, isolated_env):
        write_file("a.txt", "a")
        remote = deployed({"a.txt": "a"})

        result = runner.invoke(
            app, ["diff", "--local", str(app_dir), "--remote", str(remote), "--profile", "work"]
        )

        assert result.exit_code == 0, result.output
        assert hosting_cache_path("work", isolated_env).exists()

    def test_remote_for_other_app(self, app_dir, deployed):
        remote = deployed({}, app_id="other-app")

        result = runner.invoke(
            app, ["diff", "--local", str(app_dir), "--remote", str(remote), "--app-id", APP_ID]
        )

        assert result.exit_code == 1
        assert "belongs to app" in result.output

    def test_malformed_remote(self, app_dir, tmp_path):
        remote = tmp_path / "bad.json"
        remote.write_text(json.dumps([{"path": "/../x", "size": 1, "hash": "0" * 64}]))

        result = runner.invoke(app, ["diff", "--local", str(app_dir), "--remote", str(remote)])

        assert result.exit_code == 1
        assert "Malformed remote asset" in result.output

    def test_missing_app(self, tmp_path, deployed):
        remote = deployed({})

        result = runner.invoke(app, ["diff", "--local", str(tmp_path / "nope"), "--remote", str(remote)])

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_invalid_workers(self, app_dir, deployed):
        result = runner.invoke(
            app, ["diff", "--local", str(app_dir), "--remote", str(deployed({})), "--workers", "0"]
        )

        assert result.exit_code == 1
        assert "--workers" in result.output

    def test_timeout(self, app_dir, write_file, deployed):
        write_file("a.txt")

        result = runner.invoke(
            app, ["diff", "--local", str(app_dir), "--remote", str(deployed({})), "--timeout", "1e-9"]
        )

        assert result.exit_code == 130
        assert "deadline exceeded" in result.output

    def test_zero_timeout_cancels(self, app_dir, write_file, deployed):
        """--timeout 0 is an already-expired deadline, not "no timeout"."""
        write_file("a.txt")

        result = runner.invoke(
            app, ["diff", "--local", str(app_dir), "--remote", str(deployed({})), "--timeout", "0"]
        )

        assert result.exit_code == 130
        assert "deadline exceeded" in result.output

    def test_remote_is_required(self, app_dir):
        result = runner.invoke(app, ["diff", "--local", str(app_dir)])
        assert result.exit_code != 0


class TestCacheCommands:
    """Test cache info and clear."""

    def test_info_without_cache(self, app_dir):
        result = runner.invoke(app, ["cache", "info", "--local", str(app_dir)])

        assert result.exit_code == 0, result.output
        assert "No cache yet" in result.output

    def test_info_and_clear(self, app_dir, write_file, deployed, settle):
        write_file("a.txt", "a")
        write_file("b.txt", "b")
        settle()
        remote = deployed({"a.txt": "a", "b.txt": "b"})
        runner.invoke(app, ["diff", "--local", str(app_dir), "--remote", str(remote)])

        info = runner.invoke(app, ["cache", "info", "--local", str(app_dir)])
        assert info.exit_code == 0, info.output
        assert "Entries: 2" in info.output

        cleared = runner.invoke(app, ["cache", "clear", "--local", str(app_dir)])
        assert cleared.exit_code == 0, cleared.output
        assert "Removed 2 cache entries" in cleared.output

    def test_clear_one_app(self, app_dir, write_file, deployed, settle):
        write_file("a.txt", "a")
        settle()
        remote = deployed({"a.txt": "a"})
        runner.invoke(app, ["diff", "--local", str(app_dir), "--remote", str(remote)])

        other = runner.invoke(app, ["cache", "clear", "--local", str(app_dir), "--app-id", "other"])
        assert "Removed 0 cache entries" in other.output

        mine = runner.invoke(app, ["cache", "clear", "--local", str(app_dir), "--app-id", APP_ID])
        assert "Removed 1 cache entries" in mine.output

    def test_clear_without_cache(self, app_dir):
        result = runner.invoke(app, ["cache", "clear", "--local", str(app_dir)])

        assert result.exit_code == 0
        assert "Nothing to clear" in result.output

    def test_invalid_profile(self, app_dir):
        result = runner.invoke(app, ["cache", "info", "--local", str(app_dir), "--profile", "../x"])

        assert result.exit_code == 1
        assert "Invalid profile" in result.output
