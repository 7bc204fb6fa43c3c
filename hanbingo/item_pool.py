from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from hanbingo.api.models import BOARD_SIZE, Grade, Item


logger = logging.getLogger(__name__)

# fetch(tier, count) -> items. May raise; callers fall back to FALLBACK_ITEMS.
ItemSource = Callable[[Grade, int], Awaitable[Sequence[Item]]]


class ItemPoolError(ValueError):
    """Not enough distinct items to build a board."""


def _hanja(id: str, char: str, hun: str, eum: str) -> Item:
    return Item.make(id=id, display_form=char, meaning=hun, pronunciation=eum)


# Offline dataset (opening of the Thousand Character Classic).
FALLBACK_ITEMS: tuple[Item, ...] = (
    _hanja("1", "天", "하늘", "천"),
    _hanja("2", "地", "땅", "지"),
    _hanja("3", "玄", "검을", "현"),
    _hanja("4", "黄", "누를", "황"),
    _hanja("5", "宇", "집", "우"),
    _hanja("6", "宙", "집", "주"),
    _hanja("7", "洪", "넓을", "홍"),
    _hanja("8", "荒", "거칠", "황"),
    _hanja("9", "日", "날", "일"),
    _hanja("10", "月", "달", "월"),
    _hanja("11", "盈", "찰", "영"),
    _hanja("12", "昃", "기울", "측"),
    _hanja("13", "辰", "별", "진"),
    _hanja("14", "宿", "잘", "수"),
    _hanja("15", "列", "벌일", "열"),
    _hanja("16", "張", "베풀", "장"),
    _hanja("17", "寒", "찰", "한"),
    _hanja("18", "來", "올", "래"),
    _hanja("19", "暑", "더울", "서"),
    _hanja("20", "往", "갈", "왕"),
    _hanja("21", "秋", "가을", "추"),
    _hanja("22", "收", "거둘", "수"),
    _hanja("23", "冬", "겨울", "동"),
    _hanja("24", "藏", "감출", "장"),
    _hanja("25", "閏", "윤달", "윤"),
    _hanja("26", "餘", "남을", "여"),
    _hanja("27", "成", "이룰", "성"),
    _hanja("28", "歲", "해", "세"),
    _hanja("29", "律", "법", "률"),
    _hanja("30", "呂", "법칙", "려"),
)


def distinct_items(items: Iterable[Item]) -> list[Item]:
    """Drop repeated ids, keeping first occurrences in order."""

    seen: dict[str, Item] = {}
    for item in items:
        seen.setdefault(item.id, item)
    return list(seen.values())


def require_board_pool(items: Iterable[Item], *, count: int = BOARD_SIZE) -> tuple[Item, ...]:
    """Return the first `count` distinct items, or raise ItemPoolError."""

    pool = distinct_items(items)
    if len(pool) < count:
        raise ItemPoolError(f"Need at least {count} distinct items to build a board (got {len(pool)})")
    return tuple(pool[:count])


async def load_item_pool(
    *,
    tier: Grade,
    count: int = BOARD_SIZE,
    fetch: ItemSource | None,
    fallback: Sequence[Item] = FALLBACK_ITEMS,
) -> tuple[tuple[Item, ...], bool]:
    """Fetch the game's item set once, falling back to the static dataset.

    Returns `(items, used_fallback)`. A fetch failure is never fatal: any error,
    or a short/duplicated result, yields the first `count` fallback items.
    """

    if fetch is None:
        logger.info("No item source configured; using fallback items")
        return require_board_pool(fallback, count=count), True

    try:
        fetched = await fetch(tier, count)
        return require_board_pool(fetched, count=count), False
    except Exception:
        logger.warning("Item pool fetch failed for tier %s; using fallback items", tier.value, exc_info=True)
        return require_board_pool(fallback, count=count), True
