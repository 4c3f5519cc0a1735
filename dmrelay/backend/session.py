"""Session manager binding live connections to rooms.

Each connection moves ``Disconnected -> Joined -> Disconnected``. All reads and
writes of the shared registry/tracker happen under ``RelayState.lock`` and
never across an ``await``. A per-room ``asyncio.Lock`` spans a join's history
replay and a send's append plus broadcast, so every connection in a room sees
messages in history order. Snapshot writes happen outside both locks.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from dmrelay.backend.config import LeavePolicy
from dmrelay.backend.errors import DeliveryError, InvalidMessage, InvalidUserId, NotJoined
from dmrelay.backend.models import Message
from dmrelay.backend.registry import ROOM_ID_SEPARATOR, resolve_room_id
from dmrelay.backend.state import RelayState
from dmrelay.backend.store import SnapshotStore

logger = logging.getLogger(__name__)

SEND_EVENT = "SEND"


class Connection(Protocol):
    async def emit(self, event: str, data: dict[str, Any]) -> None:
        """Deliver one named event, raising ``DeliveryError`` when the peer is gone."""


@dataclass(frozen=True)
class Session:
    room_id: str
    user_id: str


class SessionManager:
    def __init__(
        self,
        state: RelayState,
        store: SnapshotStore,
        leave_policy: LeavePolicy = LeavePolicy.RESET_SELF,
        flush_on_send: bool = False,
    ) -> None:
        self.state = state
        self.store = store
        self.leave_policy = leave_policy
        self.flush_on_send = flush_on_send
        self._sessions: dict[Connection, Session] = {}
        self._save_lock = asyncio.Lock()
        self._room_locks: dict[str, asyncio.Lock] = {}

    def session_for(self, connection: Connection) -> Session | None:
        return self._sessions.get(connection)

    def connections_in(self, room_id: str) -> list[Connection]:
        return [connection for connection, session in self._sessions.items() if session.room_id == room_id]

    def _room_lock(self, room_id: str) -> asyncio.Lock:
        return self._room_locks.setdefault(room_id, asyncio.Lock())

    async def join(self, connection: Connection, self_id: str, peer_id: str) -> str:
        for user_id in (self_id, peer_id):
            if not user_id or ROOM_ID_SEPARATOR in user_id:
                raise InvalidUserId(f"Invalid user id {user_id!r}")

        if connection in self._sessions:
            await self.leave(connection)

        room_id = resolve_room_id(self_id, peer_id)
        # held through the replay so no live message lands inside the history
        async with self._room_lock(room_id):
            with self.state.lock:
                self.state.open_room(room_id)
                self.state.tracker.reset_on_join(room_id=room_id, user_id=self_id)
                self._sessions[connection] = Session(room_id=room_id, user_id=self_id)
                history = self.state.registry.history_of(room_id)

            logger.info("%s joined room %s, replaying %d messages", self_id, room_id, len(history))
            for message in history:
                await self._deliver(connection, message)
        return room_id

    async def send(self, connection: Connection, message: Message) -> str:
        session = self._sessions.get(connection)
        if session is None:
            raise NotJoined()

        room_id = session.room_id
        async with self._room_lock(room_id):
            with self.state.lock:
                participants = self.state.registry.get(room_id).participants
                if message.sender not in participants:
                    raise InvalidMessage(f"{message.sender!r} is not a participant of room {room_id!r}")
                receiver = next((user_id for user_id in participants if user_id != message.sender), None)
                if receiver is not None:
                    self.state.tracker.increment_for(room_id=room_id, user_id=receiver)
                self.state.registry.append_message(room_id, message)
                targets = self.connections_in(room_id)

            logger.debug("Broadcasting message from %s to %d connections in %s", message.sender, len(targets), room_id)
            for target in targets:
                await self._deliver(target, message)
        if self.flush_on_send:
            await self.flush()
        return room_id

    async def leave(self, connection: Connection) -> bool:
        session = self._sessions.get(connection)
        if session is None:
            return False

        await self.flush()
        with self.state.lock:
            if self.leave_policy is LeavePolicy.RESET_SELF:
                self.state.tracker.reset(room_id=session.room_id, user_id=session.user_id)
            self._sessions.pop(connection, None)

        logger.info("%s left room %s", session.user_id, session.room_id)
        return True

    async def disconnect(self, connection: Connection) -> bool:
        """Clean up after a transport-level close exactly like an explicit leave."""
        return await self.leave(connection)

    async def flush(self) -> bool:
        async with self._save_lock:
            snapshot = self.state.snapshot()
            try:
                await asyncio.to_thread(self.store.save, snapshot)
            except Exception:
                logger.exception("Failed to persist snapshot, keeping in-memory state")
                return False
        return True

    async def run_periodic_flush(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            await self.flush()

    async def _deliver(self, connection: Connection, message: Message) -> None:
        try:
            await connection.emit(SEND_EVENT, message.to_dict())
        except DeliveryError as exc:
            # the connection's own handler runs disconnect once the close arrives
            logger.warning("Dropping delivery to stale connection: %s", exc)
