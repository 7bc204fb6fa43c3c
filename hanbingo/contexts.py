from __future__ import annotations

from hanbingo.api.models import Grade
from hanbingo.core.context import BaseAgentContext, RenderedContext, TierContext, compose_context
from hanbingo.prompts import load_prompt


def make_item_writer_context(*, tier: Grade, count: int, system_prefix: str = "") -> RenderedContext:
    """Build the item writer's system context.

    The shared rules come from prompts/item_writer.txt; the tier overlay names
    the grade and how many items are wanted.
    """

    rules = load_prompt("item_writer.txt")
    parts: list[str] = []
    if system_prefix.strip():
        parts.append(system_prefix.strip())
    parts.append(rules.strip())

    base = BaseAgentContext(system_prompt="\n\n".join(parts).strip())
    overlay = TierContext(
        tier=tier.value,
        count=count,
        prompt=f"Write {count} distinct items for grade {tier.value} (한국어문회 {tier.value} 배정한자).",
    )
    return compose_context(base=base, tier=overlay)
