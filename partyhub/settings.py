from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str
    openai_model: str
    openai_base_url: str | None
    openai_api_key: str | None
    disable_ai: bool
    log_level: str


def settings_from_env() -> Settings:
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        openai_model=os.environ.get("OPENAI_MODEL", "gpt-4o-mini"),
        # For Ollama, typically http://127.0.0.1:11434/v1
        openai_base_url=os.environ.get("OPENAI_BASE_URL"),
        openai_api_key=os.environ.get("OPENAI_API_KEY"),
        disable_ai=_env_flag("PARTYHUB_DISABLE_AI"),
        log_level=os.environ.get("PARTYHUB_LOG_LEVEL", "INFO").upper(),
    )
