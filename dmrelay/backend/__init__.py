"""Backend package for the direct-message relay."""

from .config import LeavePolicy, RelaySettings, load_settings
from .query import QueryService
from .registry import RoomRegistry, resolve_room_id
from .session import SessionManager
from .state import RelayState
from .store import (
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    PostgresSnapshotStore,
    SnapshotStore,
    create_store,
)
from .unread import UnreadTracker

__all__ = [
    "create_store",
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    "LeavePolicy",
    "load_settings",
    "PostgresSnapshotStore",
    "QueryService",
    "RelaySettings",
    "RelayState",
    "resolve_room_id",
    "RoomRegistry",
    "SessionManager",
    "SnapshotStore",
    "UnreadTracker",
]
