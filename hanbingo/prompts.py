from __future__ import annotations

from functools import lru_cache
from pathlib import Path


class PromptLoadError(RuntimeError):
    pass


def prompts_dir() -> Path:
    # hanbingo/prompts.py -> hanbingo/ -> project root
    return Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Load (once) a prompt text file from the repo `prompts/` directory.

    Example:
        load_prompt("item_writer.txt")
    """

    path = prompts_dir() / name
    try:
        return path.read_text(encoding="utf-8").strip() + "\n"
    except FileNotFoundError as e:
        raise PromptLoadError(f"Prompt not found: {path}") from e
