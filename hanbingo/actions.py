from __future__ import annotations

from typing import Any, Literal, get_args

from hanbingo.api.models import HUMAN_PLAYER_ID
from hanbingo.controller import PhaseController


ActionName = Literal["peek", "finish_peek", "select", "answer", "reset"]
ACTION_NAMES: frozenset[str] = frozenset(get_args(ActionName))


def _required(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or not str(value).strip():
        raise ValueError(f"{key} is required")
    return str(value)


def dispatch_action(*, controller: PhaseController, action: str, payload: dict[str, Any]) -> bool:
    """Apply one human action from the API to a controller.

    Returns whether the controller applied it. Malformed requests (unknown
    action, missing field, non-human player) raise ValueError; actions that are
    well-formed but illegal right now are simply not applied.
    """

    if action not in ACTION_NAMES:
        raise ValueError(f"Unknown action: {action}")

    pid = str(payload.get("player_id") or HUMAN_PLAYER_ID)
    player = controller.state.player(pid)
    if player is not None and player.is_ai:
        raise ValueError(f"{pid} is controlled by the AI")

    if action == "peek":
        return controller.peek(_required(payload, "cell_id"), player_id=pid)
    if action == "finish_peek":
        return controller.finish_peek(player_id=pid)
    if action == "select":
        return controller.select(_required(payload, "item_id"), player_id=pid)
    if action == "answer":
        return controller.answer_quiz(pid, _required(payload, "option_id"))
    return controller.reset_to_setup()
