from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

from hanbingo.core.events import GameEvent


logger = logging.getLogger(__name__)


def game_updated_message(*, session_id: str, event: GameEvent) -> dict[str, object]:
    """The lightweight notification clients get; they re-fetch state on receipt."""

    return {
        "type": "game_updated",
        "game_id": session_id,
        "event": event.type,
        "version": event.version,
        "turn_number": event.turn_number,
    }


class GameWebSocketHub:
    """In-process WebSocket fan-out keyed by session id.

    Connections register with `connect()`; `publish()` sends a
    `game_updated` notice for a controller event to every socket of that
    session. Sockets that fail to receive are dropped.
    """

    def __init__(self) -> None:
        self._by_session: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_session[session_id].add(websocket)

    async def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_session.get(session_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_session.pop(session_id, None)

    async def publish(self, session_id: str, event: GameEvent) -> None:
        async with self._lock:
            conns = list(self._by_session.get(session_id, ()))
        if not conns:
            return

        message = game_updated_message(session_id=session_id, event=event)
        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(message)
            except Exception:
                logger.debug("Dropping websocket for session %s", session_id, exc_info=True)
                dead.append(ws)

        if dead:
            async with self._lock:
                remaining = self._by_session.get(session_id, set())
                remaining.difference_update(dead)


hub = GameWebSocketHub()
