from __future__ import annotations

from typing import Any
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from hanbingo.actions import dispatch_action
from hanbingo.api.deps import get_config, get_item_source, get_redis, get_sessions
from hanbingo.api.models import ActionResponse, GameSettings, SessionListResponse, SessionView
from hanbingo.config import GameConfig
from hanbingo.item_pool import ItemSource
from hanbingo.sessions import GameSession, SessionRegistry
from hanbingo.streams import read_events

router = APIRouter()


def _session_or_404(sessions: SessionRegistry, session_id: UUID) -> GameSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return session


@router.websocket("/ws/game/{game_id}")
async def game_updates_ws(websocket: WebSocket, game_id: UUID, sessions: SessionRegistry = Depends(get_sessions)) -> None:
    gid = str(game_id)
    await sessions.hub.connect(gid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await sessions.hub.disconnect(gid, websocket)
    except Exception:
        await sessions.hub.disconnect(gid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/game", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_game_route(
    settings: GameSettings | None = None,
    sessions: SessionRegistry = Depends(get_sessions),
    config: GameConfig = Depends(get_config),
    item_source: ItemSource | None = Depends(get_item_source),
    r: redis.Redis = Depends(get_redis),
) -> SessionView:
    session = sessions.create(config=config, r=r, item_source=item_source)
    try:
        await session.controller.start_game(settings or GameSettings())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return session.view()


@router.get("/game", response_model=SessionListResponse)
async def list_games_route(sessions: SessionRegistry = Depends(get_sessions)) -> SessionListResponse:
    return SessionListResponse(sessions=[s.view() for s in sessions.list_sessions()])


@router.get("/game/{game_id}", response_model=SessionView)
async def get_game_route(game_id: UUID, sessions: SessionRegistry = Depends(get_sessions)) -> SessionView:
    return _session_or_404(sessions, game_id).view()


@router.post("/game/{game_id}/start", response_model=ActionResponse)
async def start_game_route(
    game_id: UUID,
    settings: GameSettings | None = None,
    sessions: SessionRegistry = Depends(get_sessions),
) -> ActionResponse:
    """Start the next game of an existing session (after `reset`)."""

    controller = _session_or_404(sessions, game_id).controller
    try:
        applied = await controller.start_game(settings or GameSettings())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return ActionResponse(applied=applied, state=controller.state)


@router.post("/game/{game_id}/actions/{action}", response_model=ActionResponse)
async def action_route(
    game_id: UUID,
    action: str,
    body: dict[str, Any] | None = None,
    sessions: SessionRegistry = Depends(get_sessions),
) -> ActionResponse:
    controller = _session_or_404(sessions, game_id).controller
    try:
        applied = dispatch_action(controller=controller, action=action, payload=body or {})
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return ActionResponse(applied=applied, state=controller.state)


@router.get("/game/{game_id}/events")
async def get_game_events_route(
    game_id: UUID,
    count: int = 50,
    start: str = "-",
    end: str = "+",
    sessions: SessionRegistry = Depends(get_sessions),
    r: redis.Redis = Depends(get_redis),
) -> dict[str, object]:
    """Debug endpoint: read a session's event stream from Redis."""

    if count < 1 or count > 200:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 200")

    session = _session_or_404(sessions, game_id)
    try:
        events = read_events(r=r, stream=session.stream, count=count, start=start, end=end)
    except redis.RedisError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return {"game_id": str(game_id), "stream": session.stream.key, "events": events}
