from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventType = Literal[
    "PHASE_CHANGED",
    "TIMER_TICK",
    "CELL_PEEKED",
    "ANSWER_RECORDED",
    "RESULTS_SHOWN",
    "ROUND_EVALUATED",
]


@dataclass(frozen=True, slots=True)
class GameEvent:
    type: EventType
    turn_number: int
    version: int
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, turn_number: int, version: int, payload: dict[str, Any]) -> "GameEvent":
        return GameEvent(type=type, turn_number=turn_number, version=version, payload=payload, ts=datetime.now(timezone.utc))
