"""Error kinds raised by the relay core."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for errors recovered at the event handler boundary."""

    kind = "RelayError"


class UnknownRoom(RelayError):
    kind = "UnknownRoom"

    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room {room_id!r} does not exist")
        self.room_id = room_id


class NotJoined(RelayError):
    kind = "NotJoined"

    def __init__(self) -> None:
        super().__init__("Connection has not joined a room")


class InvalidMessage(RelayError):
    kind = "InvalidMessage"


class CorruptSnapshot(RelayError):
    """Persisted snapshot exists but cannot be decoded."""

    kind = "CorruptSnapshot"


class DeliveryError(RelayError):
    """A connection could not receive an outbound event."""

    kind = "DeliveryError"


class InvalidUserId(RelayError):
    kind = "InvalidUserId"
