from __future__ import annotations

import json
import logging
import time

from hanbingo.agents.autogen_config import MissingCredentialError, has_llm_credentials
from hanbingo.agents.base import Agent
from hanbingo.agents.json_schema import JsonSchema
from hanbingo.api.models import Grade, Item
from hanbingo.contexts import make_item_writer_context


logger = logging.getLogger(__name__)


class ItemPoolWriteError(RuntimeError):
    pass


# Strict structured outputs need an object at the root.
ITEM_POOL_SCHEMA = JsonSchema(
    name="write_item_pool",
    schema={
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "char": {"type": "string"},
                        "hun": {"type": "string"},
                        "eum": {"type": "string"},
                    },
                    "required": ["char", "hun", "eum"],
                },
            },
        },
        "required": ["items"],
    },
    strict=True,
)


def _field(raw: dict, key: str, index: int) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ItemPoolWriteError(f"Item {index}: missing/invalid '{key}' field")
    return value.strip()


def parse_item_pool(text: str, *, id_prefix: str | None = None) -> list[Item]:
    """Parse strict JSON output for the item pool.

    Expected JSON object:
        {"items": [{"char": "天", "hun": "하늘", "eum": "천"}, ...]}
    A bare top-level array is accepted as well. Items repeating an earlier
    `char` are dropped. Ids are `<id_prefix>-<index>`.
    """

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ItemPoolWriteError(f"Invalid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise ItemPoolWriteError("Expected a JSON object with an 'items' array")

    prefix = id_prefix or f"gen-{int(time.time() * 1000)}"
    items: list[Item] = []
    seen: set[str] = set()
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise ItemPoolWriteError(f"Item {index}: expected an object")
        char = _field(raw, "char", index)
        hun = _field(raw, "hun", index)
        eum = _field(raw, "eum", index)

        # Models sometimes repeat the sound in the meaning ("하늘 천").
        if hun.endswith(f" {eum}"):
            hun = hun[: -len(eum)].strip()

        if char in seen:
            continue
        seen.add(char)
        items.append(Item.make(id=f"{prefix}-{index}", display_form=char, meaning=hun, pronunciation=eum))

    return items


async def write_item_pool_with_agent(
    *,
    agent: Agent,
    tier: Grade,
    count: int,
    max_attempts: int = 2,
) -> list[Item]:
    """Ask an agent for `count` distinct items of `tier`.

    Validates strict JSON and that enough distinct items came back.
    """

    ctx = make_item_writer_context(tier=tier, count=count)
    prompt = (
        f"Generate a list of {count} distinct Hanja suitable for grade {tier.value}.\n"
        "Return ONLY strict JSON matching the required schema. No explanation.\n"
    )

    last_err: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        action = await agent.propose_action(prompt=prompt, ctx=ctx, structured_output=ITEM_POOL_SCHEMA)

        try:
            items = parse_item_pool(action.content)
        except ItemPoolWriteError as e:
            logger.info("Item pool attempt %d/%d unusable: %s", attempt, max_attempts, e)
            last_err = e
            continue

        if len(items) < count:
            last_err = ItemPoolWriteError(f"Expected {count} distinct items, got {len(items)}")
            logger.info("Item pool attempt %d/%d unusable: %s", attempt, max_attempts, last_err)
            continue

        return items[:count]

    raise ItemPoolWriteError(f"Failed to write a valid item pool after {max_attempts} attempts: {last_err}")


async def fetch_item_pool(tier: Grade, count: int) -> list[Item]:
    """`ItemSource` backed by the default LLM agent."""

    if not has_llm_credentials():
        raise MissingCredentialError("No LLM credentials configured")

    from hanbingo.agents.factory import create_default_agent

    agent = create_default_agent(name="item_writer")
    return await write_item_pool_with_agent(agent=agent, tier=tier, count=count)
