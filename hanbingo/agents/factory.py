from __future__ import annotations

import os
from typing import cast

from hanbingo.agents.ag2_backend import Ag2ChatAgent
from hanbingo.agents.autogen_config import DEFAULT_MODEL
from hanbingo.agents.base import Agent


def create_default_agent(*, name: str) -> Agent:
    """Create the default LLM-backed agent (AG2, configured from env)."""

    model = os.environ.get("OPENAI_MODEL", DEFAULT_MODEL)
    return cast(Agent, Ag2ChatAgent(name=name, model=model))
