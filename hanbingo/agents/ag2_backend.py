from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from autogen import ConversableAgent

from hanbingo.agents.autogen_config import llm_config_from_env
from hanbingo.agents.base import AgentAction
from hanbingo.agents.json_schema import JsonSchema
from hanbingo.core.context import RenderedContext


def _reply_text(history: object, summary: object) -> str:
    """Newest non-empty assistant text, or the run summary when there is none."""

    if isinstance(history, list):
        for entry in reversed(history):
            text = entry.get("content") if isinstance(entry, dict) else None
            if isinstance(text, str) and text.strip():
                return text.strip()
    return summary.strip() if isinstance(summary, str) else ""


@dataclass(slots=True)
class Ag2ChatAgent:
    """One-shot AG2 (`autogen`) agent used to write content.

    AG2's `run()` talks to the model synchronously, so each request runs in a
    worker thread. Game countdowns on the event loop keep ticking meanwhile.

    Reads OPENAI_MODEL, OPENAI_API_KEY and OPENAI_BASE_URL (see autogen_config).
    """

    name: str
    model: str

    async def propose_action(
        self,
        *,
        prompt: str,
        ctx: RenderedContext,
        structured_output: JsonSchema | None = None,
    ) -> AgentAction:
        text = await asyncio.to_thread(self._complete, prompt, ctx.system_prompt, structured_output)

        metadata: dict[str, Any] = {"model": self.model, "structured": structured_output is not None}
        return AgentAction(kind="chat", content=text, metadata=metadata)

    def _complete(self, prompt: str, system_prompt: str, structured_output: JsonSchema | None) -> str:
        writer = ConversableAgent(
            name=self.name,
            system_message=system_prompt,
            llm_config=llm_config_from_env(default_model=self.model),
            human_input_mode="NEVER",
        )

        # Passed through to the OpenAI client as-is.
        options: dict[str, Any] = {}
        if structured_output is not None:
            options["response_format"] = structured_output.as_response_format()

        response = writer.run(message=prompt, max_turns=1, **options)
        response.process()
        return _reply_text(list(response.messages), response.summary)
