from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

import redis

from hanbingo.api.models import SessionView
from hanbingo.config import GameConfig
from hanbingo.controller import PhaseController
from hanbingo.core.events import GameEvent
from hanbingo.item_pool import ItemSource
from hanbingo.opponents import OpponentPolicy
from hanbingo.streams import EventStream, make_stream_listener
from hanbingo.timer import LoopScheduler, Scheduler
from hanbingo.websocket_hub import GameWebSocketHub, hub as default_hub


logger = logging.getLogger(__name__)


def _loop_scheduler(config: GameConfig) -> Scheduler:
    return LoopScheduler(time_unit_sec=config.time_unit_sec)


@dataclass(slots=True)
class GameSession:
    """One running game: its controller plus the AI seats driving it."""

    session_id: UUID
    controller: PhaseController
    opponents: OpponentPolicy
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def stream(self) -> EventStream:
        return EventStream(session_id=str(self.session_id))

    def view(self) -> SessionView:
        return SessionView(session_id=self.session_id, state=self.controller.state)


class SessionRegistry:
    """In-memory sessions for this process.

    Games are not persisted; a restart drops them. Every controller event is
    mirrored to the session's Redis stream and announced on the WebSocket hub.
    """

    def __init__(
        self,
        *,
        hub: GameWebSocketHub | None = None,
        scheduler_factory: Callable[[GameConfig], Scheduler] | None = None,
    ) -> None:
        self.hub = hub or default_hub
        self._scheduler_factory = scheduler_factory or _loop_scheduler
        self._sessions: dict[UUID, GameSession] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def create(self, *, config: GameConfig, r: redis.Redis | None = None, item_source: ItemSource | None = None) -> GameSession:
        """Create a session in SETUP. Must be called from inside the event loop."""

        session_id = uuid4()
        controller = PhaseController(
            scheduler=self._scheduler_factory(config),
            seed=config.seed,
            item_source=item_source,
        )
        session = GameSession(session_id=session_id, controller=controller, opponents=OpponentPolicy(controller).attach())

        if r is not None:
            controller.subscribe(make_stream_listener(r=r, stream=session.stream))
        controller.subscribe(self._broadcaster(str(session_id)))

        self._sessions[session_id] = session
        logger.info("Created session %s (seed=%s)", session_id, controller.seed)
        return session

    def get(self, session_id: UUID) -> GameSession | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[GameSession]:
        return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def _broadcaster(self, session_id: str) -> Callable[[GameEvent], None]:
        def _on_event(event: GameEvent) -> None:
            task = asyncio.get_running_loop().create_task(self.hub.publish(session_id, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return _on_event
