from __future__ import annotations

from enum import StrEnum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


BOARD_SIZE = 25

# Recorded for players who did not answer before the quiz deadline.
# Never a real option id, so it always scores as wrong.
TIMEOUT_MARKER = "TIMEOUT_WRONG"

HUMAN_PLAYER_ID = "player-1"


class Grade(StrEnum):
    grade_8 = "8급"
    grade_7 = "7급"
    grade_6 = "6급"
    grade_5 = "5급"
    grade_4 = "4급"
    grade_3 = "3급"
    grade_2 = "2급"
    grade_1 = "1급"


class GamePhase(StrEnum):
    setup = "SETUP"
    loading = "LOADING"
    turn_start = "TURN_START"
    peek = "PEEK"
    select = "SELECT"
    quiz = "QUIZ"
    game_over = "GAME_OVER"


class QuizMode(StrEnum):
    item_to_meaning = "ITEM_TO_MEANING"
    meaning_to_item = "MEANING_TO_ITEM"


class Item(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    # e.g. "天"
    display_form: str
    # e.g. "하늘"
    meaning: str
    # e.g. "천"
    pronunciation: str
    # e.g. "하늘 천"
    combined_label: str

    @classmethod
    def make(cls, *, id: str, display_form: str, meaning: str, pronunciation: str) -> "Item":
        return cls(
            id=id,
            display_form=display_form,
            meaning=meaning,
            pronunciation=pronunciation,
            combined_label=f"{meaning} {pronunciation}",
        )


class Cell(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    item: Item
    # Set once a correct quiz answer flips it; never reverts.
    is_flipped: bool = False
    grid_index: int = Field(..., ge=0, lt=BOARD_SIZE)


class PlayerState(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    display_name: str
    is_ai: bool
    color: str

    # Row-major, board[i].grid_index == i.
    board: tuple[Cell, ...] = ()

    # Completed bingo lines; only ever recomputed from the board.
    score: int = 0

    def cell(self, cell_id: str) -> Cell | None:
        return next((c for c in self.board if c.id == cell_id), None)

    def cell_for_item(self, item_id: str) -> Cell | None:
        return next((c for c in self.board if c.item.id == item_id), None)

    def unflipped_cells(self) -> list[Cell]:
        return [c for c in self.board if not c.is_flipped]


class QuizState(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_item: Item
    mode: QuizMode
    options: tuple[Item, ...]
    correct_option_id: str

    # player_id -> option id (or TIMEOUT_MARKER). First write per player wins.
    answers: dict[str, str] = Field(default_factory=dict)
    results_shown: bool = False

    def option_ids(self) -> list[str]:
        return [o.id for o in self.options]


class GameSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    difficulty_tier: Grade = Grade.grade_8
    player_count: int = Field(2, ge=2, le=4)
    win_lines: Literal[1, 3] = 1


class GameState(BaseModel):
    """The single authoritative game value.

    Every change is committed as a new copy with `version + 1`; holders of an
    older copy must re-read the controller's state before acting on it.
    """

    model_config = ConfigDict(frozen=True)

    # New id per started game; None while in SETUP.
    game_id: UUID | None = None
    version: int = 0

    # For reproducibility/debugging.
    seed: int | None = None

    phase: GamePhase = GamePhase.setup
    settings: GameSettings | None = None

    # The shared 25-item set every board is a permutation of.
    items: tuple[Item, ...] = ()
    players: tuple[PlayerState, ...] = ()

    turn_index: int = 0
    # Increments on every TURN_START; used to detect stale delayed callbacks.
    turn_number: int = 0

    # Shared countdown (PEEK + SELECT share one time allowance, QUIZ gets its own).
    time_left: int = 0

    # Cells the current turn player looked at during PEEK.
    peeked_cell_ids: tuple[str, ...] = ()

    # Only present during QUIZ.
    quiz: QuizState | None = None

    winner_id: str | None = None
    used_fallback_items: bool = False

    # Most recent first, capped.
    log: tuple[str, ...] = ()

    @property
    def current_player(self) -> PlayerState | None:
        if not self.players:
            return None
        return self.players[self.turn_index]

    def player(self, player_id: str) -> PlayerState | None:
        return next((p for p in self.players if p.player_id == player_id), None)


class SessionView(BaseModel):
    session_id: UUID
    state: GameState


class SessionListResponse(BaseModel):
    sessions: list[SessionView]


class ActionResponse(BaseModel):
    applied: bool
    state: GameState
