from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from autogen import ConversableAgent

from partyhub.agents.autogen_config import llm_config_from_settings
from partyhub.agents.base import AgentAction
from partyhub.agents.json_schema import JsonSchema
from partyhub.core.context import RenderedContext


def _extract_last_content(messages: object) -> str:
    """Extract the last message content from AG2 chat history."""

    if not isinstance(messages, list):
        return ""

    for msg in reversed(messages):
        if isinstance(msg, dict):
            content = msg.get("content")
            if isinstance(content, str) and content.strip():
                return content.strip()
    return ""


@dataclass(slots=True)
class Ag2ChatAgent:
    """AG2 agent wrapper using the documented `autogen` API.

    - Context stacking is handled by our code (RenderedContext).
    - LLM transport/config is handled by AG2 (`autogen`).

    Environment variables supported:
    - OPENAI_MODEL
    - OPENAI_API_KEY (optional if OPENAI_BASE_URL is set)
    - OPENAI_BASE_URL (for OpenAI-compatible servers like Ollama, e.g. http://127.0.0.1:11434/v1)
    """

    name: str
    model: str

    def _run_sync(self, *, prompt: str, ctx: RenderedContext, structured_output: JsonSchema | None) -> str:
        agent = ConversableAgent(
            name=self.name,
            system_message=ctx.system_prompt,
            llm_config=llm_config_from_settings(),
            human_input_mode="NEVER",
        )

        # AG2 forwards unknown kwargs through to the OpenAI client.
        extra: dict[str, Any] = {}
        if structured_output is not None:
            extra["response_format"] = structured_output.as_response_format()

        result = agent.run(message=prompt, max_turns=1, **extra)
        result.process()

        text = _extract_last_content(list(result.messages))
        if not text:
            summary = result.summary
            if isinstance(summary, str):
                text = summary.strip()
        return text

    async def propose_action(
        self,
        *,
        prompt: str,
        ctx: RenderedContext,
        structured_output: JsonSchema | None = None,
    ) -> AgentAction:
        """Send a prompt using the stacked system context.

        The AG2 run is blocking, so it is pushed onto a worker thread to keep the event loop free.
        """

        text = await asyncio.to_thread(self._run_sync, prompt=prompt, ctx=ctx, structured_output=structured_output)
        metadata: dict[str, Any] = {"model": self.model}
        if structured_output is not None:
            metadata["structured"] = True
        return AgentAction(kind="content", content=text, metadata=metadata)
