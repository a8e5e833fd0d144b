from __future__ import annotations

from pathlib import Path


class PromptLoadError(RuntimeError):
    pass


def prompts_dir() -> Path:
    # partyhub/prompts.py -> partyhub/prompt_templates/
    return Path(__file__).resolve().parent / "prompt_templates"


def load_prompt(name: str) -> str:
    """Load a prompt text file from the package `prompt_templates/` directory.

    Example:
        load_prompt("base_generator.txt")
    """

    path = prompts_dir() / name
    try:
        return path.read_text(encoding="utf-8").strip() + "\n"
    except FileNotFoundError as e:
        raise PromptLoadError(f"Prompt not found: {path}") from e
