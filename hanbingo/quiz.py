from __future__ import annotations

import random
from collections.abc import Iterable, Sequence

from hanbingo.api.models import TIMEOUT_MARKER, Item, PlayerState, QuizMode, QuizState
from hanbingo.item_pool import distinct_items


DISTRACTOR_COUNT = 3


class QuizPreconditionError(ValueError):
    pass


def require_quiz_pool(items: Iterable[Item]) -> None:
    """Fail fast when a quiz (target + 3 distractors) could not be built from `items`."""

    n = len(distinct_items(items))
    if n < DISTRACTOR_COUNT + 1:
        raise QuizPreconditionError(f"A quiz needs at least {DISTRACTOR_COUNT + 1} distinct items (got {n})")


def build_quiz(
    *,
    target: Item,
    items: Sequence[Item],
    rng: random.Random,
    mode: QuizMode | None = None,
) -> QuizState:
    """Build a four-option quiz for `target` with three random distractors from `items`."""

    others = [i for i in distinct_items(items) if i.id != target.id]
    if len(others) < DISTRACTOR_COUNT:
        raise QuizPreconditionError(
            f"Need {DISTRACTOR_COUNT} distractors besides '{target.id}' (got {len(others)})"
        )

    options = [target, *rng.sample(others, DISTRACTOR_COUNT)]
    rng.shuffle(options)

    if mode is None:
        mode = QuizMode.item_to_meaning if rng.random() < 0.5 else QuizMode.meaning_to_item

    return QuizState(
        target_item=target,
        mode=mode,
        options=tuple(options),
        correct_option_id=target.id,
    )


def record_answer(quiz: QuizState, player_id: str, option_id: str) -> QuizState:
    """Write-once: a player's first recorded answer is final."""

    if player_id in quiz.answers:
        return quiz
    return quiz.model_copy(update={"answers": {**quiz.answers, player_id: option_id}})


def fill_timeouts(quiz: QuizState, players: Iterable[PlayerState]) -> QuizState:
    for p in players:
        quiz = record_answer(quiz, p.player_id, TIMEOUT_MARKER)
    return quiz


def all_answered(quiz: QuizState, players: Iterable[PlayerState]) -> bool:
    return all(p.player_id in quiz.answers for p in players)


def is_correct(quiz: QuizState, player_id: str) -> bool:
    return quiz.answers.get(player_id) == quiz.correct_option_id
