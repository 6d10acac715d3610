"""Stable API for hosting diff operations.

This module is the entry point for callers that already hold the remote
asset list (or a client able to fetch it) and want the hosting portion of an
app diff. It owns the asset cache's lifetime: the cache is opened at the
start of a call and flushed and closed on every exit path, including
cancellation.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .app import LocalApp
from .cache import AssetCache
from .cancel import CancelToken
from .client import RemoteClient, fetch_remote_snapshot
from .config import HostingDiffConfig, load_config
from .core import ReconcileResult, Snapshot
from .formatting import format_hosting_diffs
from .profile import hosting_cache_path
from .reconcile import reconcile
from .remote import RemoteAssetLike, adapt_remote_assets

logger = logging.getLogger(__name__)


@contextmanager
def open_asset_cache(
    cache_path: Optional[Path],
    app_id: str = "",
    lock_timeout: float = 10.0,
) -> Iterator[AssetCache]:
    """Scoped cache acquisition; always closes, even when the body raises."""
    cache = AssetCache(cache_path, app_id=app_id, lock_timeout=lock_timeout)
    cache.open()
    try:
        yield cache
    finally:
        cache.close()


def diff_snapshot(
    path: Path,
    remote: Snapshot,
    *,
    app_id: Optional[str] = None,
    profile: Optional[str] = None,
    config: Optional[HostingDiffConfig] = None,
    cancel: Optional[CancelToken] = None,
    include_unchanged: Optional[bool] = None,
) -> ReconcileResult:
    """Reconcile the hosting files of the app at ``path`` against ``remote``.

    Raises:
        LoadError: If the app or its hosting directory can't be loaded
        ScanFailure: If the hosting tree can't be walked
        Cancelled: If ``cancel`` fires before the merge
    """
    app = LocalApp.load(Path(path))
    cfg = config or load_config(app.root_dir)
    hosting = app.hosting()

    cache_id = app_id or app.app_id or str(app.root_dir.resolve())
    cache_path = hosting_cache_path(profile or cfg.profile, cfg.cache_dir)
    logger.debug("Using asset cache %s for app %s", cache_path, cache_id)

    with open_asset_cache(cache_path, cache_id, cfg.lock_timeout) as cache:
        return reconcile(
            hosting.root_dir,
            hosting.ignore_spec(cfg.exclude),
            cache,
            remote,
            attributes_for=hosting.attributes_for,
            max_workers=cfg.max_workers,
            cancel=cancel,
            include_unchanged=cfg.include_unchanged if include_unchanged is None else include_unchanged,
        )


def diff_hosting(
    path: Path,
    remote_assets: Iterable[RemoteAssetLike],
    **kwargs,
) -> ReconcileResult:
    """Like diff_snapshot, starting from the raw remote asset list.

    The remote list is validated before any local work starts.

    Raises:
        MalformedRemoteAsset: If the remote list can't be trusted
    """
    return diff_snapshot(path, adapt_remote_assets(remote_assets), **kwargs)


def hosting_diff_lines(
    client: RemoteClient,
    group_id: str,
    app_id: str,
    path: Path = Path("."),
    **kwargs,
) -> List[str]:
    """Hosting lines for an app diff, fetching deployed assets via ``client``.

    Client errors propagate unchanged.
    """
    remote = fetch_remote_snapshot(client, group_id, app_id)
    result = diff_snapshot(path, remote, app_id=app_id, **kwargs)
    return format_hosting_diffs(result)
