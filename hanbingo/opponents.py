from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from hanbingo.api.models import GamePhase, Item, QuizState
from hanbingo.controller import PhaseController, PhaseToken
from hanbingo.core.events import GameEvent


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OpponentConfig:
    """Simulated opponent behaviour, delays in game time units."""

    think_delay: tuple[float, float] = (1.0, 2.0)
    peek_count: tuple[int, int] = (1, 2)
    peek_finish_delay: float = 1.5
    # May outlast the quiz countdown on purpose; the timeout then wins.
    answer_delay: tuple[float, float] = (1.0, 11.0)
    turn_accuracy: float = 0.8
    bystander_accuracy: float = 0.7


class OpponentPolicy:
    """Drives every AI seat of one controller.

    Reacts to PHASE_CHANGED events, and only acts through the controller's
    public entry points, so AI moves pass the same validation as human ones.
    """

    def __init__(
        self,
        controller: PhaseController,
        *,
        rng: random.Random | None = None,
        config: OpponentConfig | None = None,
    ) -> None:
        self.controller = controller
        self.rng = rng or random.Random(controller.rng.random())
        self.config = config or OpponentConfig()

    def attach(self) -> "OpponentPolicy":
        self.controller.subscribe(self.on_event)
        return self

    def on_event(self, event: GameEvent) -> None:
        if event.type != "PHASE_CHANGED":
            return

        state = self.controller.state
        player = state.current_player
        if state.phase == GamePhase.peek and player is not None and player.is_ai:
            self._plan_peeks(player.player_id)
        elif state.phase == GamePhase.select and player is not None and player.is_ai:
            self._plan_select(player.player_id)
        elif state.phase == GamePhase.quiz:
            self._plan_answers()

    def choose_option(self, quiz: QuizState, *, on_turn: bool) -> Item:
        accuracy = self.config.turn_accuracy if on_turn else self.config.bystander_accuracy
        correct = next(o for o in quiz.options if o.id == quiz.correct_option_id)
        if self.rng.random() < accuracy:
            return correct
        wrong = [o for o in quiz.options if o.id != quiz.correct_option_id]
        return self.rng.choice(wrong)

    # ---- PEEK ----

    def _plan_peeks(self, player_id: str) -> None:
        token = self.controller.token()
        delay = self._bounded(self.rng.uniform(*self.config.think_delay))
        self.controller.scheduler.call_later(delay, lambda: self._peek(token, player_id))

    def _peek(self, token: PhaseToken, player_id: str) -> None:
        if not self.controller.is_current(token):
            return

        player = self.controller.state.player(player_id)
        if player is None:
            return
        candidates = [c for c in player.unflipped_cells() if c.id not in self.controller.state.peeked_cell_ids]
        count = min(self.rng.randint(*self.config.peek_count), len(candidates))
        for cell in self.rng.sample(candidates, count):
            self.controller.peek(cell.id, player_id=player_id)

        delay = self._bounded(self.config.peek_finish_delay)
        self.controller.scheduler.call_later(delay, lambda: self._finish_peek(token, player_id))

    def _finish_peek(self, token: PhaseToken, player_id: str) -> None:
        if self.controller.is_current(token):
            self.controller.finish_peek(player_id=player_id)

    # ---- SELECT ----

    def _plan_select(self, player_id: str) -> None:
        token = self.controller.token()
        delay = self._bounded(self.rng.uniform(*self.config.think_delay))
        self.controller.scheduler.call_later(delay, lambda: self._select(token, player_id))

    def _select(self, token: PhaseToken, player_id: str) -> None:
        if not self.controller.is_current(token):
            return

        player = self.controller.state.player(player_id)
        if player is None:
            return
        cells = player.unflipped_cells() or list(player.board)
        cell = self.rng.choice(cells)
        logger.debug("%s selects %s", player_id, cell.item.id)
        self.controller.select(cell.item.id, player_id=player_id)

    # ---- QUIZ ----

    def _plan_answers(self) -> None:
        state = self.controller.state
        quiz = state.quiz
        if quiz is None:
            return

        token = self.controller.token()
        turn_player = state.current_player
        for p in state.players:
            if not p.is_ai or p.player_id in quiz.answers:
                continue
            on_turn = turn_player is not None and p.player_id == turn_player.player_id
            delay = self.rng.uniform(*self.config.answer_delay)
            self.controller.scheduler.call_later(delay, lambda pid=p.player_id, t=on_turn: self._answer(token, pid, t))

    def _answer(self, token: PhaseToken, player_id: str, on_turn: bool) -> None:
        if not self.controller.is_current(token):
            return
        quiz = self.controller.state.quiz
        if quiz is None or player_id in quiz.answers:
            return
        option = self.choose_option(quiz, on_turn=on_turn)
        self.controller.answer_quiz(player_id, option.id)

    def _bounded(self, delay: float) -> float:
        # Act before the shared countdown runs out; immediately if it nearly has.
        return min(delay, max(self.controller.state.time_left - 1, 0))
