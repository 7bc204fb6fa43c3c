from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple
from uuid import UUID, uuid4

from hanbingo.api.models import HUMAN_PLAYER_ID, GamePhase, GameSettings, GameState, Item
from hanbingo.bingo import evaluate_round, first_winner
from hanbingo.core.events import EventType, GameEvent
from hanbingo.fsm import next_phase
from hanbingo.game_setup import build_players
from hanbingo.item_pool import FALLBACK_ITEMS, ItemSource, load_item_pool, require_board_pool
from hanbingo.quiz import all_answered, build_quiz, fill_timeouts, is_correct, record_answer, require_quiz_pool
from hanbingo.timer import QUIZ_TIMEOUT, TURN_TIMEOUT, Countdown, Scheduler
from hanbingo.turn_processing.turns import next_turn_index
from hanbingo.turn_processing.validators import ActionRejected, ValidationContext, pipeline_for_action


logger = logging.getLogger(__name__)

LOG_LIMIT = 5

StateListener = Callable[[GameEvent], None]


@dataclass(frozen=True, slots=True)
class Timing:
    """Phase durations, in game time units."""

    turn_intro: float = 1
    turn_timeout: int = TURN_TIMEOUT
    quiz_timeout: int = QUIZ_TIMEOUT
    reveal_delay: float = 3


class PhaseToken(NamedTuple):
    """What a delayed callback captured when it was scheduled."""

    game_id: UUID | None
    turn_number: int
    phase: GamePhase


class PhaseController:
    """Owns the authoritative GameState and sequences every phase transition.

    Humans and AI opponents use the same entry points (`peek`, `finish_peek`,
    `select`, `answer_quiz`). Calls that don't apply to the current phase or
    actor are ignored and return False.

    Each change commits a new GameState snapshot. Delayed work (timer ticks,
    AI think time, the reveal pause) captures a `PhaseToken` and does nothing
    if `is_current(token)` no longer holds when it fires.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        seed: int | None = None,
        item_source: ItemSource | None = None,
        fallback_items: Sequence[Item] = FALLBACK_ITEMS,
        timing: Timing | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.seed = seed if seed is not None else random.SystemRandom().randint(1, 2**31 - 1)
        self.rng = random.Random(self.seed)
        self.timing = timing or Timing()

        self._item_source = item_source
        self._fallback_items = tuple(fallback_items)
        self._listeners: list[StateListener] = []
        self._countdown = Countdown(scheduler, on_expire=self._on_expire, on_tick=self._on_tick)
        self._state = GameState(seed=self.seed)

    @property
    def state(self) -> GameState:
        return self._state

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def token(self) -> PhaseToken:
        s = self._state
        return PhaseToken(game_id=s.game_id, turn_number=s.turn_number, phase=s.phase)

    def is_current(self, token: PhaseToken) -> bool:
        return token == self.token()

    # ---- entry points ----

    async def start_game(self, settings: GameSettings | Mapping[str, Any]) -> bool:
        """SETUP -> LOADING -> TURN_START.

        Raises pydantic.ValidationError for bad settings and ItemPoolError when the
        fallback dataset can't fill a board; both leave the game in SETUP.
        """

        if self._state.phase != GamePhase.setup:
            logger.debug("start_game ignored in phase %s", self._state.phase.value)
            return False

        settings = GameSettings.model_validate(settings)
        require_board_pool(self._fallback_items)
        require_quiz_pool(self._fallback_items)

        game_id = uuid4()
        self._transition("start_game", game_id=game_id, settings=settings, winner_id=None, log=())

        items, used_fallback = await load_item_pool(
            tier=settings.difficulty_tier,
            fetch=self._item_source,
            fallback=self._fallback_items,
        )
        if self._state.game_id != game_id or self._state.phase != GamePhase.loading:
            return False

        players = build_players(items=items, settings=settings, rng=self.rng)
        self._note(f"Game started: {settings.difficulty_tier.value}, first to {settings.win_lines} line(s)")
        self._enter_turn_start(
            "pool_loaded",
            items=items,
            players=players,
            turn_index=self.rng.randrange(len(players)),
            used_fallback_items=used_fallback,
        )
        return True

    def peek(self, cell_id: str, *, player_id: str = HUMAN_PLAYER_ID) -> bool:
        if not self._accepts("peek", player_id=player_id, target=cell_id):
            return False
        self._commit(peeked_cell_ids=(*self._state.peeked_cell_ids, cell_id))
        self._emit("CELL_PEEKED", player_id=player_id, cell_id=cell_id)
        return True

    def finish_peek(self, *, player_id: str = HUMAN_PLAYER_ID) -> bool:
        if not self._accepts("finish_peek", player_id=player_id):
            return False
        self._finish_peek()
        return True

    def select(self, item_id: str, *, player_id: str = HUMAN_PLAYER_ID) -> bool:
        if not self._accepts("select", player_id=player_id, target=item_id):
            return False
        player = self._state.player(player_id)
        cell = player.cell_for_item(item_id) if player else None
        if cell is None:
            raise RuntimeError(f"validated select of {item_id!r} has no cell")
        self._begin_quiz(cell.item)
        return True

    def answer_quiz(self, player_id: str, option_id: str) -> bool:
        if not self._accepts("answer", player_id=player_id, target=option_id):
            return False
        quiz = self._state.quiz
        if quiz is None:
            raise RuntimeError("validated answer without an open quiz")
        self._commit(quiz=record_answer(quiz, player_id, option_id))
        self._emit("ANSWER_RECORDED", player_id=player_id)
        self._maybe_show_results()
        return True

    def reset_to_setup(self) -> bool:
        if not self._accepts("reset", player_id=HUMAN_PLAYER_ID):
            return False
        self._countdown.stop()
        self._transition(
            "back_to_setup",
            game_id=None,
            settings=None,
            items=(),
            players=(),
            turn_index=0,
            turn_number=0,
            time_left=0,
            peeked_cell_ids=(),
            quiz=None,
            winner_id=None,
            used_fallback_items=False,
            log=(),
        )
        return True

    # ---- transitions ----

    def _enter_turn_start(self, event: str, **update: Any) -> None:
        self._transition(
            event,
            turn_number=self._state.turn_number + 1,
            peeked_cell_ids=(),
            quiz=None,
            time_left=0,
            **update,
        )
        player = self._state.current_player
        if player is None:
            raise RuntimeError("TURN_START without a current player")
        self._note(f"{player.display_name}'s turn")

        token = self.token()
        self.scheduler.call_later(self.timing.turn_intro, lambda: self._begin_peek(token))

    def _begin_peek(self, token: PhaseToken) -> None:
        if not self.is_current(token):
            return
        self._transition("begin_peek", time_left=self.timing.turn_timeout)
        self._countdown.start(self.timing.turn_timeout)

    def _finish_peek(self) -> None:
        # The countdown keeps running: PEEK and SELECT share one time allowance.
        self._transition("finish_peek", peeked_cell_ids=())
        if self._state.time_left <= 0:
            self._force_select()

    def _force_select(self) -> None:
        player = self._state.current_player
        if player is None:
            raise RuntimeError("forced select without a current player")
        unflipped = player.unflipped_cells()
        cell = self.rng.choice(unflipped) if unflipped else player.board[0]
        self._note("Time's up! A random card was selected.")
        self._begin_quiz(cell.item)

    def _begin_quiz(self, item: Item) -> None:
        quiz = build_quiz(target=item, items=self._state.items, rng=self.rng)
        self._transition("choose_cell", quiz=quiz, time_left=self.timing.quiz_timeout, message="Quiz battle!")
        self._countdown.start(self.timing.quiz_timeout)

    def _maybe_show_results(self) -> None:
        state = self._state
        quiz = state.quiz
        if quiz is None or quiz.results_shown or not all_answered(quiz, state.players):
            return

        self._countdown.stop()
        self._commit(quiz=quiz.model_copy(update={"results_shown": True}))
        self._emit(
            "RESULTS_SHOWN",
            correct=[p.player_id for p in state.players if is_correct(quiz, p.player_id)],
        )

        token = self.token()
        self.scheduler.call_later(self.timing.reveal_delay, lambda: self._evaluate(token))

    def _evaluate(self, token: PhaseToken) -> None:
        if not self.is_current(token):
            return
        state = self._state
        quiz = state.quiz
        if quiz is None or state.settings is None:
            raise RuntimeError("evaluation without an open quiz")

        players = evaluate_round(state.players, quiz)
        self._emit(
            "ROUND_EVALUATED",
            target_item_id=quiz.target_item.id,
            correct=[p.player_id for p in players if is_correct(quiz, p.player_id)],
            scores={p.player_id: p.score for p in players},
        )

        winner = first_winner(players, state.settings.win_lines)
        if winner is not None:
            self._transition(
                "round_won",
                players=players,
                quiz=None,
                time_left=0,
                winner_id=winner.player_id,
                message=f"{winner.display_name} wins!",
            )
            return

        self._enter_turn_start("next_turn", players=players, turn_index=next_turn_index(state=state))

    # ---- countdown ----

    def _on_tick(self, remaining: int) -> None:
        self._commit(time_left=remaining)
        self._emit("TIMER_TICK", time_left=remaining)

    def _on_expire(self) -> None:
        phase = self._state.phase
        if phase == GamePhase.peek:
            self._note("Time's up! Peeking is over.")
            self._finish_peek()
        elif phase == GamePhase.select:
            self._force_select()
        elif phase == GamePhase.quiz and self._state.quiz is not None:
            self._commit(quiz=fill_timeouts(self._state.quiz, self._state.players), message="Time's up!")
            self._maybe_show_results()

    # ---- plumbing ----

    def _accepts(self, action: str, *, player_id: str, target: str | None = None) -> bool:
        ctx = ValidationContext(player_id=player_id, action=action, target=target)
        try:
            pipeline_for_action(action).validate(ctx=ctx, state=self._state)
        except ActionRejected as e:
            logger.debug("Ignored %s from %s: %s", action, player_id, e)
            return False
        return True

    def _transition(self, event: str, *, message: str | None = None, **update: Any) -> None:
        previous = self._state.phase
        phase = next_phase(previous, event)
        self._commit(phase=phase, message=message, **update)
        logger.info("game %s: %s -> %s (%s)", self._state.game_id, previous.value, phase.value, event)
        self._emit("PHASE_CHANGED", phase=phase.value, previous=previous.value, event=event)

    def _note(self, message: str) -> None:
        self._commit(message=message)

    def _commit(self, *, message: str | None = None, **update: Any) -> GameState:
        if message:
            logger.info("game %s: %s", self._state.game_id, message)
            log = update.pop("log", self._state.log)
            update["log"] = (message, *log)[:LOG_LIMIT]
        self._state = self._state.model_copy(update={**update, "version": self._state.version + 1})
        return self._state

    def _emit(self, type: EventType, **payload: Any) -> None:
        event = GameEvent.now(type=type, turn_number=self._state.turn_number, version=self._state.version, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed on %s (game %s)", type, self._state.game_id)
