"""Remote client capability protocol.

The reconciliation core never talks to the network. A client implementing
RemoteClient hands over pre-fetched data; test doubles implement the same
protocol directly instead of wrapping a real client.
"""

import json
from pathlib import Path
from typing import Any, List, Protocol

from pydantic import BaseModel

from .core import Snapshot
from .errors import UpstreamError
from .remote import adapt_remote_assets


class Group(BaseModel):
    """Project (group) the application lives in."""
    id: str
    name: str = ""


class Cluster(BaseModel):
    """Database cluster linked to a group."""
    id: str = ""
    name: str


class DataLake(BaseModel):
    """Data lake linked to a group."""
    name: str


class RemoteClient(Protocol):
    """Capabilities the diff workflow needs from the remote service."""

    def groups(self) -> List[Group]:
        ...

    def clusters(self, group_id: str) -> List[Cluster]:
        ...

    def data_lakes(self, group_id: str) -> List[DataLake]:
        ...

    def hosting_assets(self, group_id: str, app_id: str) -> List[Any]:
        """Deployed hosting assets as (path, size, fingerprint_hex, attributes)
        tuples or equivalent records."""
        ...


class SnapshotFileClient:
    """Serves hosting assets from a JSON export of a deployed app.

    The file holds either a bare list of asset records or an object with an
    ``assets`` list and optional ``app_id`` / ``group_id``. Other
    capabilities are not available offline.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Any:
        try:
            return json.loads(self.path.read_text())
        except OSError as e:
            raise UpstreamError(f"Cannot read remote snapshot {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise UpstreamError(f"Remote snapshot {self.path} is not valid JSON: {e}") from e

    def groups(self) -> List[Group]:
        data = self._load()
        if isinstance(data, dict) and data.get("group_id"):
            return [Group(id=str(data["group_id"]))]
        return []

    def clusters(self, group_id: str) -> List[Cluster]:
        raise UpstreamError("Clusters are not available from a snapshot file")

    def data_lakes(self, group_id: str) -> List[DataLake]:
        raise UpstreamError("Data lakes are not available from a snapshot file")

    def hosting_assets(self, group_id: str, app_id: str) -> List[Any]:
        data = self._load()
        if isinstance(data, list):
            return data
        if not isinstance(data, dict) or not isinstance(data.get("assets"), list):
            raise UpstreamError(f"Remote snapshot {self.path} has no 'assets' list")

        exported_app = data.get("app_id")
        if app_id and exported_app and exported_app != app_id:
            raise UpstreamError(
                f"Remote snapshot {self.path} belongs to app '{exported_app}', not '{app_id}'"
            )
        return data["assets"]


def fetch_remote_snapshot(client: RemoteClient, group_id: str, app_id: str) -> Snapshot:
    """Ask the client for deployed assets and normalize them.

    Client errors propagate unchanged.
    """
    return adapt_remote_assets(client.hosting_assets(group_id, app_id))
