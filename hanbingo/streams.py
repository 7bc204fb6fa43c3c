from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import redis

from hanbingo.core.events import GameEvent


logger = logging.getLogger(__name__)

# Approximate cap per session stream; ticks alone add one entry per second.
STREAM_MAXLEN = 5000


@dataclass(frozen=True, slots=True)
class EventStream:
    session_id: str

    @property
    def key(self) -> str:
        return f"hanbingo:events:{self.session_id}"


def event_fields(*, event: GameEvent, session_id: str) -> dict[str, str]:
    # Stream fields are flat strings; the payload travels as JSON.
    return {
        "type": event.type,
        "session_id": session_id,
        "turn_number": str(event.turn_number),
        "version": str(event.version),
        "ts": event.ts.isoformat(),
        "payload": json.dumps(event.payload, ensure_ascii=False, sort_keys=True),
    }


def publish_event(*, r: redis.Redis, stream: EventStream, event: GameEvent) -> str:
    """Append one controller event to the session's stream."""

    fields = event_fields(event=event, session_id=stream.session_id)
    stream_id = r.xadd(stream.key, fields, maxlen=STREAM_MAXLEN, approximate=True)  # type: ignore[arg-type]
    return cast(str, stream_id)


def read_events(
    *,
    r: redis.Redis,
    stream: EventStream,
    count: int = 50,
    start: str = "-",
    end: str = "+",
) -> list[dict[str, Any]]:
    entries = r.xrange(stream.key, min=start, max=end, count=count)
    out: list[dict[str, Any]] = []
    for mid, fields in entries:  # type: ignore[union-attr]
        data: dict[str, Any] = dict(fields)
        data["payload"] = json.loads(data.get("payload") or "{}")
        out.append({"id": mid, "fields": data})
    return out


def make_stream_listener(*, r: redis.Redis, stream: EventStream) -> Callable[[GameEvent], None]:
    """Controller listener that mirrors events into Redis.

    The outbox never affects the game: publish failures are logged and dropped.
    """

    def _publish(event: GameEvent) -> None:
        try:
            publish_event(r=r, stream=stream, event=event)
        except redis.RedisError:
            logger.warning("Failed to publish %s to %s", event.type, stream.key, exc_info=True)

    return _publish
