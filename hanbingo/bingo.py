from __future__ import annotations

from collections.abc import Sequence

from hanbingo.api.models import BOARD_SIZE, Cell, PlayerState, QuizState
from hanbingo.quiz import is_correct


GRID = 5


def _lines() -> tuple[tuple[int, ...], ...]:
    rows = [tuple(r * GRID + c for c in range(GRID)) for r in range(GRID)]
    cols = [tuple(r * GRID + c for r in range(GRID)) for c in range(GRID)]
    diagonals = [
        tuple(i * (GRID + 1) for i in range(GRID)),
        tuple((i + 1) * (GRID - 1) for i in range(GRID)),
    ]
    return tuple(rows + cols + diagonals)


# 5 rows, 5 columns, {0,6,12,18,24} and {4,8,12,16,20}.
LINES = _lines()


def count_completed_lines(board: Sequence[Cell]) -> int:
    """Count rows, columns and main diagonals whose 5 cells are all flipped.

    `board` must be the 25 cells in row-major order.
    """

    if len(board) != BOARD_SIZE:
        raise ValueError(f"Board must have {BOARD_SIZE} cells (got {len(board)})")
    return sum(1 for line in LINES if all(board[i].is_flipped for i in line))


def flip_item(player: PlayerState, item_id: str) -> PlayerState:
    """Flip the player's own cell bound to `item_id` and recompute the score."""

    board = tuple(
        c.model_copy(update={"is_flipped": True}) if c.item.id == item_id and not c.is_flipped else c
        for c in player.board
    )
    return player.model_copy(update={"board": board, "score": count_completed_lines(board)})


def evaluate_round(players: Sequence[PlayerState], quiz: QuizState) -> tuple[PlayerState, ...]:
    """Apply a resolved quiz: correct answerers flip the target on their own board.

    Players who answered wrong (or timed out) are returned unchanged.
    """

    target_id = quiz.target_item.id
    return tuple(flip_item(p, target_id) if is_correct(quiz, p.player_id) else p for p in players)


def first_winner(players: Sequence[PlayerState], win_lines: int) -> PlayerState | None:
    # Ties go to the first player in seat order.
    return next((p for p in players if p.score >= win_lines), None)
