"""Domain models for messages, room listings and persisted snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dmrelay.backend.errors import CorruptSnapshot


def _field_or(data: dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


@dataclass(frozen=True)
class Message:
    """One chat message.

    ``extra`` holds any other fields the client sent alongside ``sender`` and
    ``payload``; they are stored, replayed and persisted unchanged.
    """

    sender: str
    payload: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "sender": self.sender, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        extra = {key: value for key, value in data.items() if key not in ("sender", "payload")}
        return cls(sender=data["sender"], payload=data.get("payload"), extra=extra)


@dataclass(frozen=True)
class RoomSummary:
    room_id: str
    unread_count: int


@dataclass(frozen=True)
class Snapshot:
    """Full copy of room histories and unread counters.

    ``rooms`` maps a room id to its serialized history, ``unread`` maps a room
    id to the per-user counters. The serialized form keeps the
    ``activeRooms``/``unreadMessages`` layout of existing history files.
    """

    rooms: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    unread: dict[str, dict[str, int]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls(rooms={}, unread={})

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeRooms": {room_id: {"history": list(history)} for room_id, history in self.rooms.items()},
            "unreadMessages": {room_id: dict(counters) for room_id, counters in self.unread.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Snapshot":
        if not isinstance(data, dict):
            raise CorruptSnapshot("Snapshot root must be an object")

        raw_rooms = _field_or(data, "activeRooms", {})
        raw_unread = _field_or(data, "unreadMessages", {})
        if not isinstance(raw_rooms, dict) or not isinstance(raw_unread, dict):
            raise CorruptSnapshot("activeRooms and unreadMessages must be objects")

        rooms: dict[str, list[dict[str, Any]]] = {}
        for room_id, room in raw_rooms.items():
            if not isinstance(room, dict):
                raise CorruptSnapshot(f"Room {room_id!r} must be an object")
            history = _field_or(room, "history", [])
            if not isinstance(history, list):
                raise CorruptSnapshot(f"History of room {room_id!r} must be a list")
            for entry in history:
                if not isinstance(entry, dict) or not isinstance(entry.get("sender"), str):
                    raise CorruptSnapshot(f"Room {room_id!r} holds a message without a sender")
            rooms[room_id] = list(history)

        unread: dict[str, dict[str, int]] = {}
        for room_id, counters in raw_unread.items():
            if not isinstance(counters, dict):
                raise CorruptSnapshot(f"Counters of room {room_id!r} must be an object")
            checked: dict[str, int] = {}
            for user_id, count in counters.items():
                # null is a counter incremented before it was ever set
                if count is None:
                    count = 0
                # bool is an int subclass; reject it along with negatives
                if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                    raise CorruptSnapshot(f"Invalid unread count for {user_id!r} in room {room_id!r}")
                checked[user_id] = count
            unread[room_id] = checked

        return cls(rooms=rooms, unread=unread)
