from __future__ import annotations

from typing import Any

from autogen import LLMConfig

from partyhub.settings import Settings, settings_from_env


class LLMNotConfigured(RuntimeError):
    pass


def llm_config_from_settings(settings: Settings | None = None) -> LLMConfig:
    s = settings or settings_from_env()

    # Many OpenAI-compatible servers ignore the key but some SDKs require it.
    api_key = s.openai_api_key or ("ollama" if s.openai_base_url else None)

    if not api_key:
        raise LLMNotConfigured(
            "Set OPENAI_API_KEY for hosted OpenAI, or set OPENAI_BASE_URL for a local OpenAI-compatible server"
        )

    # AG2 expects a 'config_list' similar to OAI_CONFIG_LIST.
    config: dict[str, Any] = {"model": s.openai_model, "api_key": api_key}
    if s.openai_base_url:
        config["base_url"] = s.openai_base_url

    return LLMConfig(config_list=[config])
