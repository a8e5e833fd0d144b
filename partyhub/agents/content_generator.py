from __future__ import annotations

import json
import logging
from typing import Any

from partyhub.agents.autogen_config import LLMNotConfigured
from partyhub.agents.base import Agent
from partyhub.contexts import make_base_generator_context
from partyhub.core.context import ContentContext, compose_context
from partyhub.generation_specs import ContentSpec, ContentType, content_spec_for
from partyhub.prompts import load_prompt
from partyhub.settings import settings_from_env

logger = logging.getLogger(__name__)


class ContentGenerationError(RuntimeError):
    pass


def _strip_code_fence(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        s = s.split("\n", 1)[1] if "\n" in s else ""
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def parse_generated_content(text: str, *, spec: ContentSpec) -> dict[str, Any]:
    """Parse the model output for one content type.

    Expected a single JSON object carrying the content type's required keys. A surrounding
    markdown fence is tolerated; anything else that is not JSON is rejected.
    """

    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ContentGenerationError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ContentGenerationError("Expected a JSON object")

    missing = [k for k in spec.required_keys if k not in data]
    if missing:
        raise ContentGenerationError(f"Missing keys: {', '.join(missing)}")

    return data


async def generate_content(
    content_type: ContentType | str,
    context: dict[str, Any],
    *,
    agent: Agent | None = None,
    max_attempts: int = 3,
) -> dict[str, Any]:
    """Ask an agent for one piece of structured content.

    Retries unparseable replies up to `max_attempts`, then raises ContentGenerationError.
    Callers treat that error as "use the static fallback".
    """

    spec = content_spec_for(content_type)

    if agent is None:
        if settings_from_env().disable_ai:
            raise ContentGenerationError("AI content generation is disabled")
        from partyhub.agents.factory import create_default_agent

        agent = create_default_agent(name=f"generator-{spec.content_type.value}")

    ctx = compose_context(
        base=make_base_generator_context(),
        content=ContentContext(
            content_type=spec.content_type.value,
            prompt=load_prompt(spec.prompt_file),
            facts=context,
        ),
    )
    prompt = f"Produce the {spec.content_type.value} JSON object now."

    last_err: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            action = await agent.propose_action(prompt=prompt, ctx=ctx, structured_output=spec.schema)
        except LLMNotConfigured as e:
            raise ContentGenerationError(str(e)) from e
        except Exception as e:
            # Transport failures (timeouts, HTTP errors from the model server) count as a failed attempt.
            logger.warning("generator attempt %s/%s for %s failed: %s", attempt, max_attempts, spec.content_type, e)
            last_err = e
            continue

        try:
            return parse_generated_content(action.content, spec=spec)
        except ContentGenerationError as e:
            logger.debug("generator attempt %s/%s for %s rejected: %s", attempt, max_attempts, spec.content_type, e)
            last_err = e

    raise ContentGenerationError(
        f"Failed to generate {spec.content_type.value} after {max_attempts} attempts: {last_err}"
    )
