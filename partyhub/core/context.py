from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class BaseAgentContext:
    """Global, shared instructions for all content generators."""

    system_prompt: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ContentContext:
    """Per-request overlay: which content type to produce and the game facts it must respect."""

    content_type: str
    prompt: str
    facts: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RenderedContext:
    """Final, merged context passed into the LLM agent."""

    system_prompt: str

    def as_messages(self) -> list[dict[str, str]]:
        return [{"role": "system", "content": self.system_prompt}]


def compose_context(*, base: BaseAgentContext, content: ContentContext) -> RenderedContext:
    parts: list[str] = []
    parts.append(base.system_prompt.strip())

    parts.append(
        "\n".join(
            [
                "CONTENT REQUEST:",
                f"- content_type: {content.content_type}",
                "- instructions:",
                content.prompt.strip(),
            ]
        ).strip()
    )

    if content.facts:
        parts.append("GAME FACTS (JSON):\n" + json.dumps(content.facts, indent=2, sort_keys=True, default=str))

    system_prompt = "\n\n".join([p for p in parts if p.strip()]).strip()
    return RenderedContext(system_prompt=system_prompt)
