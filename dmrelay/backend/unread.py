"""Per-room, per-user unread message counters."""

from __future__ import annotations

from dmrelay.backend.registry import room_contains


class UnreadTracker:
    def __init__(self) -> None:
        self._counters: dict[str, dict[str, int]] = {}

    def ensure_room(self, room_id: str) -> dict[str, int]:
        return self._counters.setdefault(room_id, {})

    def reset(self, room_id: str, user_id: str) -> None:
        self.ensure_room(room_id)[user_id] = 0

    def reset_on_join(self, room_id: str, user_id: str) -> None:
        self.reset(room_id=room_id, user_id=user_id)

    def increment_for(self, room_id: str, user_id: str) -> int:
        """Add one unread message, initializing a missing counter to zero."""
        counters = self.ensure_room(room_id)
        counters[user_id] = counters.get(user_id, 0) + 1
        return counters[user_id]

    def count_for(self, room_id: str, user_id: str) -> int:
        return self._counters.get(room_id, {}).get(user_id, 0)

    def total_for(self, user_id: str) -> int:
        return sum(
            self.count_for(room_id=room_id, user_id=user_id)
            for room_id in self._counters
            if room_contains(room_id, user_id)
        )

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {room_id: dict(counters) for room_id, counters in self._counters.items()}
