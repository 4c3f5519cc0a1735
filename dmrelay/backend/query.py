"""Read-only queries over room listings and unread totals."""

from __future__ import annotations

from dataclasses import dataclass

from dmrelay.backend.models import RoomSummary
from dmrelay.backend.state import RelayState


@dataclass
class QueryService:
    state: RelayState

    def list_rooms(self, user_id: str) -> list[RoomSummary]:
        with self.state.lock:
            return [
                RoomSummary(room_id=room_id, unread_count=self.state.tracker.count_for(room_id=room_id, user_id=user_id))
                for room_id in self.state.registry.rooms_for(user_id)
            ]

    def unread_total(self, user_id: str) -> int:
        with self.state.lock:
            return self.state.tracker.total_for(user_id)
