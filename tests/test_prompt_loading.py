from __future__ import annotations

import pytest

from partyhub.generation_specs import CONTENT_SPECS
from partyhub.prompts import PromptLoadError, load_prompt


def test_load_base_generator_prompt() -> None:
    text = load_prompt("base_generator.txt")
    assert "party-game server" in text
    assert text.endswith("\n")


@pytest.mark.parametrize("spec", list(CONTENT_SPECS.values()), ids=lambda s: s.content_type.value)
def test_every_content_type_has_a_prompt(spec) -> None:  # type: ignore[no-untyped-def]
    assert load_prompt(spec.prompt_file).strip()


def test_missing_prompt_raises() -> None:
    with pytest.raises(PromptLoadError):
        load_prompt("nope.txt")
