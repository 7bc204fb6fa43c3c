from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import pytest

from hanbingo.agents import ag2_backend
from hanbingo.agents.ag2_backend import Ag2ChatAgent
from hanbingo.agents.item_pool_writer import ITEM_POOL_SCHEMA
from hanbingo.core.context import RenderedContext


@dataclass
class _Response:
    messages: list[dict[str, Any]]
    summary: str = ""

    def process(self) -> None:
        return None


_INSTANCES: list[_SlowAgent] = []


@dataclass
class _SlowAgent:
    """Stands in for ConversableAgent; `run` blocks like a real model call."""

    name: str
    system_message: str
    llm_config: object
    human_input_mode: str
    calls: list[dict[str, Any]] = field(default_factory=list)
    reply: str = '{"items": []}'
    latency: float = 0.3

    def __post_init__(self) -> None:
        _INSTANCES.append(self)

    def run(self, *, message: str, max_turns: int, **kwargs: Any) -> _Response:
        self.calls.append({"message": message, "max_turns": max_turns, **kwargs})
        time.sleep(self.latency)
        return _Response(messages=[{"role": "user", "content": message}, {"role": "assistant", "content": f"  {self.reply}  "}])


@pytest.fixture()
def slow_agent(monkeypatch: pytest.MonkeyPatch) -> type[_SlowAgent]:
    _INSTANCES.clear()
    monkeypatch.setattr(ag2_backend, "ConversableAgent", _SlowAgent)
    monkeypatch.setattr(ag2_backend, "llm_config_from_env", lambda *, default_model: {"model": default_model})
    return _SlowAgent


async def test_model_call_does_not_stall_game_timers(slow_agent: type[_SlowAgent]) -> None:
    agent = Ag2ChatAgent(name="item_writer", model="test-model")
    ctx = RenderedContext(system_prompt="write items")

    lateness: list[float] = []

    async def _ticker() -> None:
        for _ in range(4):
            started = time.perf_counter()
            await asyncio.sleep(0.05)
            lateness.append(time.perf_counter() - started - 0.05)

    action, _ = await asyncio.gather(
        agent.propose_action(prompt="go", ctx=ctx, structured_output=ITEM_POOL_SCHEMA),
        _ticker(),
    )

    assert action.content == '{"items": []}'
    assert max(lateness) < 0.15


async def test_structured_output_reaches_the_model_call(slow_agent: type[_SlowAgent]) -> None:
    agent = Ag2ChatAgent(name="item_writer", model="test-model")
    action = await agent.propose_action(
        prompt="go",
        ctx=RenderedContext(system_prompt="write items"),
        structured_output=ITEM_POOL_SCHEMA,
    )

    sent = _INSTANCES[-1]
    assert sent.system_message == "write items"
    assert sent.llm_config == {"model": "test-model"}
    assert sent.calls == [{"message": "go", "max_turns": 1, "response_format": ITEM_POOL_SCHEMA.as_response_format()}]
    assert action.metadata == {"model": "test-model", "structured": True}


def test_reply_text_falls_back_to_summary() -> None:
    assert ag2_backend._reply_text([{"content": "  "}, "junk"], " done ") == "done"
    assert ag2_backend._reply_text(None, None) == ""
