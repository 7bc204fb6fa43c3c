from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from hanbingo.api.models import GamePhase
from hanbingo.fsm import PhaseMachine, next_phase


def test_full_cycle_of_legal_transitions() -> None:
    phase = GamePhase.setup
    for event, expected in [
        ("start_game", GamePhase.loading),
        ("pool_loaded", GamePhase.turn_start),
        ("begin_peek", GamePhase.peek),
        ("finish_peek", GamePhase.select),
        ("choose_cell", GamePhase.quiz),
        ("next_turn", GamePhase.turn_start),
        ("begin_peek", GamePhase.peek),
        ("finish_peek", GamePhase.select),
        ("choose_cell", GamePhase.quiz),
        ("round_won", GamePhase.game_over),
        ("back_to_setup", GamePhase.setup),
    ]:
        phase = next_phase(phase, event)
        assert phase == expected


@pytest.mark.parametrize(
    ("phase", "event"),
    [
        (GamePhase.setup, "begin_peek"),
        (GamePhase.peek, "choose_cell"),
        (GamePhase.quiz, "back_to_setup"),
        (GamePhase.turn_start, "round_won"),
        (GamePhase.game_over, "start_game"),
    ],
)
def test_illegal_transitions_are_refused(phase: GamePhase, event: str) -> None:
    with pytest.raises(TransitionNotAllowed):
        next_phase(phase, event)


def test_machine_can_resume_from_any_phase() -> None:
    for phase in GamePhase:
        assert PhaseMachine(phase).phase == phase
