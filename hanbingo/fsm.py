from __future__ import annotations

from statemachine import State, StateMachine

from hanbingo.api.models import GamePhase


class PhaseMachine(StateMachine):
    """Transition table for the game phases.

    setup -> loading -> turn_start -> peek -> select -> quiz -> (turn_start | game_over) -> setup

    The controller owns the side effects; this machine only guards which
    transition is legal from which phase. Round evaluation happens inside the
    quiz exit transitions, so it never shows up as a resting phase.
    """

    in_setup = State(GamePhase.setup.value, value=GamePhase.setup.value, initial=True)
    loading = State(GamePhase.loading.value, value=GamePhase.loading.value)
    turn_intro = State(GamePhase.turn_start.value, value=GamePhase.turn_start.value)
    peeking = State(GamePhase.peek.value, value=GamePhase.peek.value)
    selecting = State(GamePhase.select.value, value=GamePhase.select.value)
    quizzing = State(GamePhase.quiz.value, value=GamePhase.quiz.value)
    game_over = State(GamePhase.game_over.value, value=GamePhase.game_over.value)

    start_game = in_setup.to(loading)
    pool_loaded = loading.to(turn_intro)
    begin_peek = turn_intro.to(peeking)
    finish_peek = peeking.to(selecting)
    choose_cell = selecting.to(quizzing)
    next_turn = quizzing.to(turn_intro)
    round_won = quizzing.to(game_over)
    back_to_setup = game_over.to(in_setup)

    def __init__(self, phase: GamePhase = GamePhase.setup):
        super().__init__(start_value=phase.value)

    @property
    def phase(self) -> GamePhase:
        return GamePhase(str(self.current_state.value))


def next_phase(phase: GamePhase, event: str) -> GamePhase:
    """Return the phase reached by firing `event` from `phase`.

    Raises `statemachine.exceptions.TransitionNotAllowed` for illegal moves.
    """

    machine = PhaseMachine(phase)
    machine.send(event)
    return machine.phase
