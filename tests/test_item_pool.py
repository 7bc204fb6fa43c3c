from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import pytest

from hanbingo.api.models import GamePhase, Grade, Item
from hanbingo.controller import PhaseController
from hanbingo.item_pool import FALLBACK_ITEMS, ItemPoolError, distinct_items, load_item_pool, require_board_pool


def _generated(n: int) -> list[Item]:
    return [Item.make(id=f"gen-{i}", display_form=chr(0x4E00 + i), meaning=f"m{i}", pronunciation=f"p{i}") for i in range(n)]


def test_fallback_dataset_is_thirty_distinct_items() -> None:
    assert len(FALLBACK_ITEMS) == 30
    assert len(distinct_items(FALLBACK_ITEMS)) == 30
    assert FALLBACK_ITEMS[0].display_form == "天"
    assert FALLBACK_ITEMS[0].combined_label == "하늘 천"


def test_require_board_pool() -> None:
    assert [i.id for i in require_board_pool(FALLBACK_ITEMS)] == [str(n) for n in range(1, 26)]
    with pytest.raises(ItemPoolError):
        require_board_pool(FALLBACK_ITEMS[:24])
    with pytest.raises(ItemPoolError):
        require_board_pool([*FALLBACK_ITEMS[:24], FALLBACK_ITEMS[0]])


async def test_fetched_items_are_used_when_valid() -> None:
    calls: list[tuple[Grade, int]] = []

    async def _fetch(tier: Grade, count: int) -> Sequence[Item]:
        calls.append((tier, count))
        return _generated(30)

    items, used_fallback = await load_item_pool(tier=Grade.grade_5, fetch=_fetch)
    assert calls == [(Grade.grade_5, 25)]
    assert not used_fallback
    assert [i.id for i in items] == [f"gen-{i}" for i in range(25)]


async def test_fetch_failure_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    async def _boom(tier: Grade, count: int) -> Sequence[Item]:
        raise RuntimeError("quota exceeded")

    with caplog.at_level(logging.WARNING, logger="hanbingo.item_pool"):
        items, used_fallback = await load_item_pool(tier=Grade.grade_8, fetch=_boom)

    assert used_fallback
    assert items == FALLBACK_ITEMS[:25]
    assert "using fallback items" in caplog.text


async def test_short_fetch_falls_back() -> None:
    async def _short(tier: Grade, count: int) -> Sequence[Item]:
        return _generated(10)

    items, used_fallback = await load_item_pool(tier=Grade.grade_8, fetch=_short)
    assert used_fallback
    assert items == FALLBACK_ITEMS[:25]


async def test_no_source_uses_fallback() -> None:
    items, used_fallback = await load_item_pool(tier=Grade.grade_8, fetch=None)
    assert used_fallback
    assert len(items) == 25


async def test_controller_fetches_exactly_once_per_game(make_controller: Callable[..., PhaseController]) -> None:
    calls: list[Grade] = []

    async def _fetch(tier: Grade, count: int) -> Sequence[Item]:
        calls.append(tier)
        return _generated(25)

    controller = make_controller(item_source=_fetch)
    await controller.start_game({"difficulty_tier": "6급"})

    assert calls == [Grade.grade_6]
    assert not controller.state.used_fallback_items
    assert {i.id for i in controller.state.items} == {f"gen-{i}" for i in range(25)}


async def test_controller_starts_on_fallback_when_the_source_fails(make_controller: Callable[..., PhaseController]) -> None:
    async def _boom(tier: Grade, count: int) -> Sequence[Item]:
        raise RuntimeError("model unavailable")

    controller = make_controller(item_source=_boom)
    phases: list[str] = []
    controller.subscribe(lambda e: phases.append(e.payload["phase"]) if e.type == "PHASE_CHANGED" else None)

    assert await controller.start_game({"difficulty_tier": "7급"})

    s = controller.state
    assert phases == ["LOADING", "TURN_START"]
    assert s.phase == GamePhase.turn_start
    assert s.used_fallback_items
    assert s.items == FALLBACK_ITEMS[:25]
    assert all({c.item.id for c in p.board} == {i.id for i in s.items} for p in s.players)
