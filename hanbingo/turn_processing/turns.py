from __future__ import annotations

from hanbingo.api.models import GameState


def current_turn_player_id(*, state: GameState) -> str:
    """Return which player_id owns the current turn (`players[turn_index]`)."""

    player = state.current_player
    if player is None:
        raise ValueError("No players")
    return player.player_id


def next_turn_index(*, state: GameState) -> int:
    # Round-robin by seat; never skips anyone.
    if not state.players:
        raise ValueError("No players")
    return (state.turn_index + 1) % len(state.players)


def assert_is_players_turn(*, state: GameState, player_id: str) -> None:
    expected = current_turn_player_id(state=state)
    if player_id != expected:
        from hanbingo.turn_processing.validators import ActionRejected

        raise ActionRejected(f"Not your turn (expected player_id={expected})")
