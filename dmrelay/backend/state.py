"""Process-wide relay state: the room registry and unread tracker behind one lock."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from dmrelay.backend.models import Message, Snapshot
from dmrelay.backend.registry import Room, RoomRegistry
from dmrelay.backend.unread import UnreadTracker


@dataclass
class RelayState:
    registry: RoomRegistry = field(default_factory=RoomRegistry)
    tracker: UnreadTracker = field(default_factory=UnreadTracker)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def open_room(self, room_id: str) -> Room:
        """Return the room, creating its history and counter map on first use."""
        with self.lock:
            room = self.registry.get_or_create(room_id)
            self.tracker.ensure_room(room_id)
            return room

    def snapshot(self) -> Snapshot:
        with self.lock:
            rooms = {
                room_id: [message.to_dict() for message in self.registry.history_of(room_id)]
                for room_id in self.registry.room_ids()
            }
            return Snapshot(rooms=rooms, unread=self.tracker.as_dict())

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "RelayState":
        state = cls()
        for room_id, history in snapshot.rooms.items():
            room = state.open_room(room_id)
            room.history.extend(Message.from_dict(entry) for entry in history)
        for room_id, counters in snapshot.unread.items():
            # counters without a stored history still describe a room
            state.open_room(room_id)
            for user_id, count in counters.items():
                state.tracker.ensure_room(room_id)[user_id] = count
        return state
