"""CLI for hosting-diff."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .api import diff_snapshot, open_asset_cache
from .app import LocalApp
from .cancel import CancelToken
from .client import SnapshotFileClient, fetch_remote_snapshot
from .config import HostingDiffConfig, load_config
from .display import display_result
from .errors import (
    Cancelled,
    ConfigError,
    HostingDiffError,
    LoadError,
)
from .formatting import format_diff_json
from .profile import hosting_cache_path


app = typer.Typer(help="""\
Preview what deploying a local app would change in its hosted static files.
Compares the local hosting directory against an export of the deployed
assets, reusing cached fingerprints between runs.""")

cache_app = typer.Typer(help="Inspect or reset the hosting asset cache.")
app.add_typer(cache_app, name="cache")

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str, code: int = 1) -> None:
    console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(code)


def _resolve_config(local: Optional[Path]) -> HostingDiffConfig:
    """Config for the app at ``local`` (or cwd), or defaults outside an app."""
    try:
        root = LocalApp.load(local).root_dir
    except LoadError:
        root = None
    try:
        return load_config(root)
    except ConfigError as e:
        _fail(str(e))


@app.command()
def diff(
    remote: Path = typer.Option(..., "--remote", "-r", help="JSON export of the deployed hosting assets"),
    local: Optional[Path] = typer.Option(None, "--local", help="Local path to the app (defaults to cwd)"),
    app_id: Optional[str] = typer.Option(None, "--app-id", help="App id (defaults to the id in the app config)"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile whose asset cache to use"),
    include_unchanged: bool = typer.Option(False, "--include-unchanged", help="List unchanged files too"),
    json_output: bool = typer.Option(False, "--json", help="Print machine-readable output"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Parallel fingerprinting workers"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Give up after this many seconds"),
):
    """Show differences between local and deployed hosting files.

    Examples:
        hosting-diff diff --remote deployed.json
        hosting-diff diff --local ./myapp --remote deployed.json --json
    """
    config = _resolve_config(local)
    if workers is not None:
        if workers < 1:
            _fail("--workers must be at least 1")
        config.max_workers = workers
    if include_unchanged:
        config.include_unchanged = True

    cancel = CancelToken.with_timeout(timeout) if timeout is not None else None

    try:
        remote_snapshot = fetch_remote_snapshot(SnapshotFileClient(remote), "", app_id or "")
        result = diff_snapshot(
            local or Path.cwd(),
            remote_snapshot,
            app_id=app_id,
            profile=profile,
            config=config,
            cancel=cancel,
        )
    except Cancelled as e:
        _fail(str(e), code=130)
    except HostingDiffError as e:
        _fail(str(e))

    if json_output:
        typer.echo(format_diff_json(result))
        return

    display_result(result, console)


@cache_app.command("info")
def cache_info(
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile to inspect"),
    local: Optional[Path] = typer.Option(None, "--local", help="Local path to the app (defaults to cwd)"),
):
    """Show where the asset cache lives and how many entries it holds."""
    config = _resolve_config(local)
    try:
        cache_path = hosting_cache_path(profile or config.profile, config.cache_dir)
    except ConfigError as e:
        _fail(str(e))

    console.print(f"[bold]Cache:[/bold] {cache_path}")
    if not cache_path.exists():
        console.print("[dim]No cache yet[/dim]")
        return

    with open_asset_cache(cache_path, lock_timeout=config.lock_timeout) as cache:
        if not cache.persistent:
            _fail("Cache is locked or unreadable")
        console.print(f"Entries: {cache.entry_count(all_apps=True)}")


@cache_app.command("clear")
def cache_clear(
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile to clear"),
    app_id: Optional[str] = typer.Option(None, "--app-id", help="Only clear entries for this app"),
    local: Optional[Path] = typer.Option(None, "--local", help="Local path to the app (defaults to cwd)"),
):
    """Delete cached fingerprints. Diffs stay correct, just slower next time."""
    config = _resolve_config(local)
    try:
        cache_path = hosting_cache_path(profile or config.profile, config.cache_dir)
    except ConfigError as e:
        _fail(str(e))

    if not cache_path.exists():
        console.print("[dim]Nothing to clear[/dim]")
        return

    with open_asset_cache(cache_path, app_id=app_id or "", lock_timeout=config.lock_timeout) as cache:
        if not cache.persistent:
            _fail("Cache is locked or unreadable")
        removed = cache.clear(all_apps=app_id is None)
    console.print(f"[green]✓[/green] Removed {removed} cache entries")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
