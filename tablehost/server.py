from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

import websockets
from websockets.asyncio.server import ServerConnection

from bigtwo.cards import parse_cards
from bigtwo.models import Action, ActionType, Event, Rejection, RoomConfig
from bigtwo.registry import RoomRegistry

LOGGER = logging.getLogger("bigtwo_host")

# HostServer glues the room engine to WebSocket clients.
# Every network concern lives here; Room stays pure.

_MESSAGE_ACTIONS = {
    "ready": ActionType.READY,
    "play": ActionType.PLAY,
    "pass": ActionType.PASS,
    "stats": ActionType.STATS,
}


@dataclass
class ClientSession:
    player_id: str
    name: str
    room_id: str
    websocket: ServerConnection


class HostServer:
    def __init__(self, config: Optional[RoomConfig] = None) -> None:
        self.registry = RoomRegistry(config)
        self.sessions: Dict[str, ClientSession] = {}
        self.locks: Dict[str, asyncio.Lock] = {}

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        # websockets.serve keeps accepting clients until the process stops.
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Table host listening on %s:%s", host, port)
            await asyncio.Future()

    def _room_lock(self, room_id: str) -> asyncio.Lock:
        lock = self.locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self.locks[room_id] = lock
        return lock

    @contextlib.asynccontextmanager
    async def _locked_room(self, room_id: str) -> AsyncIterator[None]:
        # A closed room drops its lock; waiters on that lock move to the current one.
        while True:
            lock = self._room_lock(room_id)
            await lock.acquire()
            if self.locks.get(room_id) is lock:
                break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        # First message must be "join" so we know the room and the name.
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "join":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected join")
            await websocket.close()
            return
        room_raw = hello.get("room")
        name_raw = hello.get("name")
        if not isinstance(room_raw, str) or not isinstance(name_raw, str):
            await self._send_error(websocket, code="BAD_SCHEMA", msg="room and name required")
            await websocket.close()
            return
        room_id = room_raw.strip()
        name = name_raw.strip()
        if not room_id or not name:
            await self._send_error(websocket, code="BAD_SCHEMA", msg="room and name required")
            await websocket.close()
            return

        session = ClientSession(player_id=uuid.uuid4().hex, name=name, room_id=room_id, websocket=websocket)
        joined = await self._join(session)
        if not joined:
            await websocket.close()
            return

        try:
            async for raw in websocket:
                message = self._decode(raw)
                await self._handle_message(session, message)
        except websockets.ConnectionClosed:
            pass
        finally:
            await self._leave(session)
        LOGGER.info("Player %s (%s) disconnected from room %s", session.name, session.player_id, room_id)

    async def _join(self, session: ClientSession) -> bool:
        async with self._locked_room(session.room_id):
            room = self.registry.get_or_create(session.room_id)
            self.sessions[session.player_id] = session
            events = room.apply(Action(ActionType.JOIN, session.player_id, name=session.name))
            joined = session.player_id in room.pool
            if joined:
                await self._send_json(
                    session.websocket,
                    "welcome",
                    {"player_id": session.player_id, "room": session.room_id, "name": session.name},
                )
            await self._deliver(session.room_id, events)
            if not joined:
                self.sessions.pop(session.player_id, None)
                self._forget_room_locked(session.room_id)
            return joined

    async def _leave(self, session: ClientSession) -> None:
        async with self._locked_room(session.room_id):
            room = self.registry.get(session.room_id)
            self.sessions.pop(session.player_id, None)
            if room is None:
                return
            events = room.apply(Action(ActionType.LEAVE, session.player_id))
            await self._deliver(session.room_id, events)
            self._forget_room_locked(session.room_id)

    def _forget_room_locked(self, room_id: str) -> None:
        if self.registry.discard_if_empty(room_id):
            self.locks.pop(room_id, None)

    async def _handle_message(self, session: ClientSession, message: Dict[str, object]) -> None:
        if not message:
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="Malformed message")
            return
        msg_type = message.get("type")
        action_type = _MESSAGE_ACTIONS.get(msg_type) if isinstance(msg_type, str) else None
        if action_type is None:
            await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return

        action = Action(action_type, session.player_id)
        if action_type == ActionType.PLAY:
            labels = message.get("cards")
            if not isinstance(labels, list) or not all(isinstance(label, str) for label in labels):
                await self._send_error(session.websocket, code="BAD_SCHEMA", msg="cards must be a list of labels")
                return
            try:
                action.cards = parse_cards(labels)
            except ValueError as exc:
                await self._send_json(
                    session.websocket,
                    "invalid_action",
                    {"code": Rejection.BAD_CARD.value, "msg": str(exc)},
                )
                return
        elif action_type == ActionType.STATS:
            name = message.get("name")
            action.name = name if isinstance(name, str) and name.strip() else None

        async with self._locked_room(session.room_id):
            room = self.registry.get(session.room_id)
            if room is None:
                return
            events = room.apply(action)
            await self._deliver(session.room_id, events)

    async def _deliver(self, room_id: str, events: List[Event]) -> None:
        # Called with the room lock held so one room's messages keep their order.
        for event in events:
            if event.to is None:
                await self._broadcast(room_id, event.ev, event.data)
                continue
            session = self.sessions.get(event.to)
            if session:
                await self._send_json(session.websocket, event.ev, event.data)

    async def _broadcast(self, room_id: str, msg_type: str, payload: Dict[str, object]) -> None:
        targets = [session.websocket for session in self.sessions.values() if session.room_id == room_id]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body: Dict[str, object] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return message if isinstance(message, dict) else {}
