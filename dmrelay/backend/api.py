"""FastAPI endpoints for room queries and the realtime messaging websocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import RelaySettings, load_settings
from .errors import DeliveryError, RelayError, UnknownRoom
from .models import Message
from .query import QueryService
from .session import SessionManager
from .state import RelayState
from .store import SnapshotStore, create_store

logger = logging.getLogger(__name__)

USER_ID_PATTERN = r"^[^-]+$"


class RoomEntry(BaseModel):
    roomId: str
    unreadCount: int


class RoomListResponse(BaseModel):
    rooms: list[RoomEntry]


class UnreadResponse(BaseModel):
    unreadCount: int


class InboundFrame(BaseModel):
    event: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class JoinRoomEvent(BaseModel):
    sender: str = Field(min_length=1, pattern=USER_ID_PATTERN)
    receiver: str = Field(min_length=1, pattern=USER_ID_PATTERN)


class SendEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    sender: str = Field(min_length=1)
    payload: Any = None


class WebSocketConnection:
    """Adapts a websocket to the session manager's connection interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        try:
            await self.websocket.send_json({"event": event, "data": data})
        except (RuntimeError, WebSocketDisconnect) as exc:
            raise DeliveryError(str(exc)) from exc

    async def emit_error(self, kind: str, detail: str) -> None:
        with contextlib.suppress(DeliveryError):
            await self.emit("error", {"kind": kind, "detail": detail})


async def dispatch_event(manager: SessionManager, connection: WebSocketConnection, frame: InboundFrame) -> None:
    if frame.event == "joinRoom":
        join = JoinRoomEvent.model_validate(frame.data)
        room_id = await manager.join(connection, self_id=join.sender, peer_id=join.receiver)
        await connection.emit("joined", {"roomId": room_id})
    elif frame.event == "SEND":
        send = SendEvent.model_validate(frame.data)
        message = Message(sender=send.sender, payload=send.payload, extra=dict(send.model_extra or {}))
        await manager.send(connection, message)
    elif frame.event == "leaveRoom":
        await manager.leave(connection)
    else:
        raise ValueError(f"Unknown event {frame.event!r}")


def create_app(store: SnapshotStore | None = None, settings: RelaySettings | None = None) -> FastAPI:
    relay_settings = settings if settings is not None else load_settings()
    snapshot_store = (
        store
        if store is not None
        else create_store(database_url=relay_settings.database_url, snapshot_path=relay_settings.snapshot_path)
    )
    # CorruptSnapshot propagates: a malformed snapshot is fatal at startup
    relay_state = RelayState.from_snapshot(snapshot_store.load())
    manager = SessionManager(
        state=relay_state,
        store=snapshot_store,
        leave_policy=relay_settings.leave_policy,
        flush_on_send=relay_settings.flush_on_send,
    )
    queries = QueryService(state=relay_state)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        flush_task: asyncio.Task[None] | None = None
        if relay_settings.flush_interval_s > 0:
            flush_task = asyncio.create_task(manager.run_periodic_flush(relay_settings.flush_interval_s))
        try:
            yield
        finally:
            if flush_task is not None:
                flush_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await flush_task
            await manager.flush()
            logger.info("Relay state flushed on shutdown")

    app = FastAPI(title="DM Relay API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(relay_settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.relay_state = relay_state
    app.state.session_manager = manager

    def get_queries() -> QueryService:
        return queries

    @app.get("/api/rooms/{user_id}", response_model=RoomListResponse)
    def list_rooms(user_id: str, local_queries: QueryService = Depends(get_queries)) -> RoomListResponse:
        rooms = local_queries.list_rooms(user_id)
        return RoomListResponse(
            rooms=[RoomEntry(roomId=room.room_id, unreadCount=room.unread_count) for room in rooms],
        )

    @app.get("/api/unread/{user_id}", response_model=UnreadResponse)
    def unread_total(user_id: str, local_queries: QueryService = Depends(get_queries)) -> UnreadResponse:
        return UnreadResponse(unreadCount=local_queries.unread_total(user_id))

    @app.websocket("/ws")
    async def relay_ws(websocket: WebSocket) -> None:
        await websocket.accept()
        connection = WebSocketConnection(websocket)

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    frame = InboundFrame.model_validate_json(raw)
                    await dispatch_event(manager, connection, frame)
                except UnknownRoom as exc:
                    logger.error("Event referenced a missing room: %s", exc)
                    await connection.emit_error(exc.kind, str(exc))
                except RelayError as exc:
                    logger.warning("Rejected event: %s", exc)
                    await connection.emit_error(exc.kind, str(exc))
                except (ValidationError, ValueError) as exc:
                    logger.warning("Rejected malformed event: %s", exc)
                    await connection.emit_error("InvalidEvent", str(exc))
        except WebSocketDisconnect:
            logger.info("Websocket closed by client")
        finally:
            await manager.disconnect(connection)

    return app
