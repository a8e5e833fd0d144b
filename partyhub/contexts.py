from __future__ import annotations

from partyhub.core.context import BaseAgentContext
from partyhub.prompts import load_prompt


def make_base_generator_context(*, system_prefix: str = "") -> BaseAgentContext:
    """Construct the base shared context for all content generators.

    The shared context includes the output rules from prompt_templates/base_generator.txt.
    You can optionally prepend extra system-level instructions via system_prefix.
    """

    base_rules = load_prompt("base_generator.txt")
    parts: list[str] = []
    if system_prefix.strip():
        parts.append(system_prefix.strip())
    parts.append(base_rules.strip())

    return BaseAgentContext(system_prompt="\n\n".join(parts).strip())
