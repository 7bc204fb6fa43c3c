from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from hanbingo.api.models import GamePhase, GameState


# Max distinct cells a player may look at in one PEEK phase.
PEEK_LIMIT = 3


class ActionRejected(ValueError):
    """An entry point was called outside its legal phase/actor/target."""


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    player_id: str
    action: str
    # cell id (peek), item id (select) or option id (answer).
    target: str | None = None


class TurnValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class PhaseValidator(TurnValidator):
    allowed_phases: frozenset[GamePhase]

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise ActionRejected(f"Action '{ctx.action}' not allowed in phase '{state.phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class KnownPlayerValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.player(ctx.player_id) is None:
            raise ActionRejected(f"Player not found: {ctx.player_id}")


@dataclass(frozen=True, slots=True)
class CurrentTurnValidator(TurnValidator):
    """Only the player whose turn it is may peek/select."""

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        from hanbingo.turn_processing.turns import assert_is_players_turn

        assert_is_players_turn(state=state, player_id=ctx.player_id)


@dataclass(frozen=True, slots=True)
class PeekTargetValidator(TurnValidator):
    limit: int = PEEK_LIMIT

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        player = state.player(ctx.player_id)
        cell = player.cell(ctx.target or "") if player else None
        if cell is None:
            raise ActionRejected(f"Cell '{ctx.target}' is not on your board")
        if cell.is_flipped:
            raise ActionRejected("Flipped cells cannot be peeked")
        if cell.id in state.peeked_cell_ids:
            raise ActionRejected("Cell already peeked this turn")
        if len(state.peeked_cell_ids) >= self.limit:
            raise ActionRejected(f"At most {self.limit} peeks per turn")


@dataclass(frozen=True, slots=True)
class PeekMadeValidator(TurnValidator):
    """A human must look at one cell before ending the peek phase early."""

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        player = state.player(ctx.player_id)
        if player is not None and not player.is_ai and not state.peeked_cell_ids:
            raise ActionRejected("Peek at least one cell first")


@dataclass(frozen=True, slots=True)
class SelectTargetValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        player = state.player(ctx.player_id)
        cell = player.cell_for_item(ctx.target or "") if player else None
        if cell is None:
            raise ActionRejected(f"Item '{ctx.target}' is not on your board")
        # Flipped cells only become selectable once nothing else is left.
        if cell.is_flipped and player is not None and player.unflipped_cells():
            raise ActionRejected("Cell is already flipped")


@dataclass(frozen=True, slots=True)
class QuizOpenValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.quiz is None:
            raise ActionRejected("No quiz in progress")
        if state.quiz.results_shown:
            raise ActionRejected("Quiz is already resolved")


@dataclass(frozen=True, slots=True)
class AnswerOptionValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.quiz is None or ctx.target not in state.quiz.option_ids():
            raise ActionRejected(f"Unknown option '{ctx.target}'")


@dataclass(frozen=True, slots=True)
class WriteOnceAnswerValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        if state.quiz is not None and ctx.player_id in state.quiz.answers:
            raise ActionRejected("Answer already recorded")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TurnValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: GameState) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "peek": ValidatorPipeline(
        validators=(
            PhaseValidator(allowed_phases=frozenset({GamePhase.peek})),
            KnownPlayerValidator(),
            CurrentTurnValidator(),
            PeekTargetValidator(),
        )
    ),
    "finish_peek": ValidatorPipeline(
        validators=(
            PhaseValidator(allowed_phases=frozenset({GamePhase.peek})),
            KnownPlayerValidator(),
            CurrentTurnValidator(),
            PeekMadeValidator(),
        )
    ),
    "select": ValidatorPipeline(
        validators=(
            PhaseValidator(allowed_phases=frozenset({GamePhase.select})),
            KnownPlayerValidator(),
            CurrentTurnValidator(),
            SelectTargetValidator(),
        )
    ),
    "answer": ValidatorPipeline(
        validators=(
            PhaseValidator(allowed_phases=frozenset({GamePhase.quiz})),
            KnownPlayerValidator(),
            QuizOpenValidator(),
            AnswerOptionValidator(),
            WriteOnceAnswerValidator(),
        )
    ),
    "reset": ValidatorPipeline(
        validators=(PhaseValidator(allowed_phases=frozenset({GamePhase.game_over})),),
    ),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
