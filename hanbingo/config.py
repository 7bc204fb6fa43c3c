from __future__ import annotations

import os
from dataclasses import dataclass


_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class GameConfig:
    # Wall-clock seconds per game time unit.
    time_unit_sec: float = 1.0
    # Fixed seed for reproducible games; random per game when None.
    seed: int | None = None
    # Ask the LLM for the item pool (falls back to the static set on any failure).
    llm_items: bool = True


def config_from_env() -> GameConfig:
    """Read game settings from `HANBINGO_*` environment variables."""

    seed = os.environ.get("HANBINGO_SEED")
    time_unit = float(os.environ.get("HANBINGO_TIME_UNIT_SEC", "1.0"))
    if time_unit <= 0:
        raise ValueError("HANBINGO_TIME_UNIT_SEC must be positive")

    return GameConfig(
        time_unit_sec=time_unit,
        seed=int(seed) if seed else None,
        llm_items=os.environ.get("HANBINGO_LLM_ITEMS", "1").strip().lower() not in _FALSY,
    )
