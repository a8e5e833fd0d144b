from __future__ import annotations

from typing import cast

from partyhub.agents.ag2_backend import Ag2ChatAgent
from partyhub.agents.base import Agent
from partyhub.settings import settings_from_env


def create_default_agent(*, name: str) -> Agent:
    """Create the default LLM-backed agent.

    Currently uses AG2/autogen and reads model configuration from env.
    """

    return cast(Agent, Ag2ChatAgent(name=name, model=settings_from_env().openai_model))
