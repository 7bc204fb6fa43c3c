from __future__ import annotations

import random
from collections.abc import Sequence

from hanbingo.api.models import HUMAN_PLAYER_ID, Cell, GameSettings, Item, PlayerState
from hanbingo.item_pool import require_board_pool


# Blue, red, green, yellow.
PLAYER_COLORS = ("#3b82f6", "#ef4444", "#22c55e", "#f59e0b")


def build_board(*, items: Sequence[Item], seat: int, rng: random.Random) -> tuple[Cell, ...]:
    """Lay the shared items out in a fresh random order for one player.

    Cell ids are unique per board (`<item id>-<seat>`); item identity is shared.
    """

    order = rng.sample(list(items), len(items))
    return tuple(Cell(id=f"{item.id}-{seat}", item=item, grid_index=idx) for idx, item in enumerate(order))


def build_players(*, items: Sequence[Item], settings: GameSettings, rng: random.Random) -> tuple[PlayerState, ...]:
    """Create all players with independent permutations of the same 25 items.

    Seat 0 is the human (`player-1`); every other seat is AI-controlled.
    """

    pool = require_board_pool(items)

    players: list[PlayerState] = []
    for seat in range(settings.player_count):
        is_ai = seat != 0
        pid = HUMAN_PLAYER_ID if seat == 0 else f"player-{seat + 1}"
        players.append(
            PlayerState(
                player_id=pid,
                display_name=f"P{seat + 1} AI" if is_ai else "P1 (you)",
                is_ai=is_ai,
                color=PLAYER_COLORS[seat % len(PLAYER_COLORS)],
                board=build_board(items=pool, seat=seat, rng=rng),
            )
        )

    return tuple(players)
