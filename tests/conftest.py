from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from hanbingo.api.models import GameSettings
from hanbingo.controller import PhaseController
from hanbingo.timer import ManualScheduler


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs.

    This makes OPENAI_BASE_URL / OPENAI_MODEL available to the opt-in LLM tests
    without needing to manually export them in your shell.

    In CI, we *don't* auto-load `.env` by default, so integration tests that require
    a live model stay skipped unless explicitly opted-in.
    """

    # Opt-in on CI with: HANBINGO_LOAD_DOTENV_FOR_TESTS=1
    if os.environ.get("CI") and os.environ.get("HANBINGO_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def make_controller(scheduler: ManualScheduler) -> Callable[..., PhaseController]:
    def _make(*, seed: int = 7, **kwargs) -> PhaseController:  # type: ignore[no-untyped-def]
        return PhaseController(scheduler=scheduler, seed=seed, **kwargs)

    return _make


@pytest.fixture()
async def started(make_controller: Callable[..., PhaseController]) -> PhaseController:
    """A two-player game sitting in TURN_START with the human to move."""

    controller = make_controller()
    assert await controller.start_game(GameSettings())
    _force_turn(controller, 0)
    return controller


def _force_turn(controller: PhaseController, index: int) -> None:
    """Point the pending turn at `index`. Only valid while in TURN_START."""

    controller._state = controller.state.model_copy(update={"turn_index": index})


@pytest.fixture()
def force_turn() -> Callable[[PhaseController, int], None]:
    return _force_turn
