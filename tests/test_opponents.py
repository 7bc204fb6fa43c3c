from __future__ import annotations

import random
from collections.abc import Callable

from hanbingo.api.models import TIMEOUT_MARKER, GamePhase, GameSettings
from hanbingo.bingo import count_completed_lines
from hanbingo.controller import PhaseController
from hanbingo.core.events import GameEvent
from hanbingo.item_pool import FALLBACK_ITEMS
from hanbingo.opponents import OpponentConfig, OpponentPolicy
from hanbingo.quiz import build_quiz
from hanbingo.timer import ManualScheduler


def _phase_changed(controller: PhaseController) -> GameEvent:
    s = controller.state
    return GameEvent.now(type="PHASE_CHANGED", turn_number=s.turn_number, version=s.version, payload={})


def test_choose_option_follows_accuracy(make_controller: Callable[..., PhaseController]) -> None:
    controller = make_controller()
    items = FALLBACK_ITEMS[:25]
    quiz = build_quiz(target=items[0], items=items, rng=random.Random(0))

    always = OpponentPolicy(controller, rng=random.Random(1), config=OpponentConfig(turn_accuracy=1.0, bystander_accuracy=0.0))
    for _ in range(20):
        assert always.choose_option(quiz, on_turn=True).id == quiz.correct_option_id
        assert always.choose_option(quiz, on_turn=False).id != quiz.correct_option_id


def test_choose_option_rates_are_roughly_right(make_controller: Callable[..., PhaseController]) -> None:
    controller = make_controller()
    items = FALLBACK_ITEMS[:25]
    quiz = build_quiz(target=items[0], items=items, rng=random.Random(0))
    policy = OpponentPolicy(controller, rng=random.Random(2))

    n = 2000
    on_turn = sum(policy.choose_option(quiz, on_turn=True).id == quiz.correct_option_id for _ in range(n)) / n
    bystander = sum(policy.choose_option(quiz, on_turn=False).id == quiz.correct_option_id for _ in range(n)) / n
    assert 0.75 < on_turn < 0.85
    assert 0.65 < bystander < 0.75


async def test_ai_turn_peeks_then_selects(
    make_controller: Callable[..., PhaseController],
    scheduler: ManualScheduler,
    force_turn: Callable[[PhaseController, int], None],
) -> None:
    controller = make_controller()
    OpponentPolicy(controller, rng=random.Random(3)).attach()
    seen: list[GameEvent] = []
    controller.subscribe(seen.append)

    await controller.start_game(GameSettings())
    force_turn(controller, 1)

    assert scheduler.advance_until(lambda: controller.state.phase == GamePhase.quiz, limit=10)
    assert controller.state.time_left == 10

    peeks = [e for e in seen if e.type == "CELL_PEEKED"]
    assert 1 <= len(peeks) <= 2
    assert all(e.payload["player_id"] == "player-2" for e in peeks)

    ai = controller.state.player("player-2")
    assert ai.cell_for_item(controller.state.quiz.target_item.id) is not None
    assert not any("Time's up" in line for line in controller.state.log)


async def test_ai_answers_every_quiz(
    make_controller: Callable[..., PhaseController],
    scheduler: ManualScheduler,
    force_turn: Callable[[PhaseController, int], None],
) -> None:
    controller = make_controller()
    OpponentPolicy(controller, rng=random.Random(4), config=OpponentConfig(answer_delay=(1.0, 2.0))).attach()

    await controller.start_game(GameSettings(player_count=4))
    force_turn(controller, 0)
    scheduler.advance(1)
    human = controller.state.player("player-1")
    controller.peek(human.board[0].id)
    controller.finish_peek()
    controller.select(human.board[0].item.id)

    scheduler.advance(2)
    quiz = controller.state.quiz
    assert set(quiz.answers) == {"player-2", "player-3", "player-4"}
    assert all(a in quiz.option_ids() for a in quiz.answers.values())
    assert not quiz.results_shown


async def test_ai_acts_immediately_when_time_is_nearly_out(
    make_controller: Callable[..., PhaseController],
    scheduler: ManualScheduler,
    force_turn: Callable[[PhaseController, int], None],
) -> None:
    controller = make_controller()
    await controller.start_game(GameSettings())
    force_turn(controller, 1)
    scheduler.advance(1)
    scheduler.advance(28)
    assert controller.state.phase == GamePhase.peek
    assert controller.state.time_left == 2

    # Attach late and replay the PEEK entry so the plan sees only 2 units left.
    policy = OpponentPolicy(controller, rng=random.Random(5)).attach()
    policy.on_event(_phase_changed(controller))

    scheduler.advance(1)
    assert controller.state.phase == GamePhase.quiz
    assert not any("Time's up" in line for line in controller.state.log)


async def test_ai_only_game_runs_to_a_winner(
    make_controller: Callable[..., PhaseController],
    scheduler: ManualScheduler,
) -> None:
    controller = make_controller(seed=2024)
    OpponentPolicy(controller).attach()

    flipped: dict[str, set[str]] = {}

    def _check_monotonic(_: GameEvent) -> None:
        for p in controller.state.players:
            now = {c.id for c in p.board if c.is_flipped}
            assert flipped.get(p.player_id, set()) <= now
            flipped[p.player_id] = now
            assert p.score == count_completed_lines(p.board)

    controller.subscribe(_check_monotonic)

    await controller.start_game(GameSettings(player_count=3))
    # The human never acts: every human turn and answer times out.
    assert scheduler.advance_until(lambda: controller.state.phase == GamePhase.game_over, step=1.0, limit=40_000)

    s = controller.state
    winner = s.player(s.winner_id)
    assert winner is not None and winner.is_ai
    assert winner.score >= 1
    assert all(p.score < 1 for p in s.players[: s.players.index(winner)])


async def test_late_ai_answer_after_quiz_timeout_changes_nothing(
    make_controller: Callable[..., PhaseController],
    scheduler: ManualScheduler,
    force_turn: Callable[[PhaseController, int], None],
) -> None:
    controller = make_controller()
    OpponentPolicy(controller, rng=random.Random(6), config=OpponentConfig(answer_delay=(10.5, 11.0))).attach()

    await controller.start_game(GameSettings())
    force_turn(controller, 0)
    scheduler.advance(1)
    human = controller.state.player("player-1")
    controller.peek(human.board[0].id)
    controller.finish_peek()
    controller.select(human.board[0].item.id)
    controller.answer_quiz("player-1", human.board[0].item.id)

    scheduler.advance(10)
    quiz = controller.state.quiz
    assert quiz.results_shown
    assert quiz.answers["player-2"] == TIMEOUT_MARKER
    version = controller.state.version

    # The AI answer fires mid-reveal and must be dropped.
    scheduler.advance(1.5)
    assert controller.state.quiz == quiz
    assert controller.state.version == version

    scheduler.advance(1.5)
    s = controller.state
    assert s.phase == GamePhase.turn_start
    assert not s.player("player-2").cell_for_item(human.board[0].item.id).is_flipped


async def test_stale_or_unknown_ai_callbacks_are_ignored(
    make_controller: Callable[..., PhaseController],
    scheduler: ManualScheduler,
    force_turn: Callable[[PhaseController, int], None],
) -> None:
    controller = make_controller()
    policy = OpponentPolicy(controller, rng=random.Random(7))

    await controller.start_game(GameSettings())
    force_turn(controller, 1)
    scheduler.advance(1)
    token = controller.token()
    version = controller.state.version

    policy._peek(token, "player-9")
    policy._select(token, "player-9")
    assert controller.state.version == version

    controller._state = controller.state.model_copy(update={"turn_number": controller.state.turn_number + 1})
    policy._peek(token, "player-2")
    assert controller.state.peeked_cell_ids == ()
