"""Room registry: canonical room identity and append-only message history."""

from __future__ import annotations

from dataclasses import dataclass, field

from dmrelay.backend.errors import UnknownRoom
from dmrelay.backend.models import Message

ROOM_ID_SEPARATOR = "-"


def resolve_room_id(user_a: str, user_b: str) -> str:
    """Return the symmetric room id for a two-party conversation."""
    return ROOM_ID_SEPARATOR.join(sorted((user_a, user_b)))


def room_participants(room_id: str) -> tuple[str, ...]:
    return tuple(room_id.split(ROOM_ID_SEPARATOR))


def room_contains(room_id: str, user_id: str) -> bool:
    return user_id in room_participants(room_id)


@dataclass
class Room:
    room_id: str
    history: list[Message] = field(default_factory=list)

    @property
    def participants(self) -> tuple[str, ...]:
        return room_participants(self.room_id)


class RoomRegistry:
    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def get(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise UnknownRoom(room_id)
        return room

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self._rooms[room_id] = room
        return room

    def append_message(self, room_id: str, message: Message) -> None:
        self.get(room_id).history.append(message)

    def history_of(self, room_id: str) -> tuple[Message, ...]:
        return tuple(self.get(room_id).history)

    def room_ids(self) -> list[str]:
        return list(self._rooms)

    def rooms_for(self, user_id: str) -> list[str]:
        return [room_id for room_id in self._rooms if room_contains(room_id, user_id)]

    def __len__(self) -> int:
        return len(self._rooms)
