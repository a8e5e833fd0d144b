from __future__ import annotations

from typing import Any

import pytest

from partyhub.api.models import GameRecordHeader
from partyhub.errors import BusinessRuleViolation, PermissionDenied
from partyhub.turn_processing.validators import PhaseValidator, ValidationContext, pipeline_for_action

OWNER = "11111111-1111-4111-8111-111111111111"
OTHER = "22222222-2222-4222-8222-222222222222"


def _header(**overrides: Any) -> GameRecordHeader:
    raw: dict[str, Any] = {
        "type": "deduction",
        "status": "waiting_for_players",
        "phase": "role_assignment",
        "owner_id": OWNER,
        "players": [OWNER],
        # Body fields are ignored by the header.
        "config": {"name": "x"},
    }
    raw.update(overrides)
    return GameRecordHeader.model_validate(raw)


def _run(action: str, header: GameRecordHeader, player_id: str | None = OWNER) -> None:
    ctx = ValidationContext(game_id="g1", player_id=player_id, action=action)
    pipeline_for_action(action).validate(ctx=ctx, state=header)


def test_phase_validator_denies_wrong_phase() -> None:
    v = PhaseValidator(allowed_phases=frozenset({"day_voting"}))
    ctx = ValidationContext(game_id="g1", player_id=OWNER, action="vote")

    with pytest.raises(BusinessRuleViolation) as e:
        v.validate(ctx=ctx, state=_header(phase="night_actions"))

    assert e.value.code == "INVALID_PHASE"
    assert "not allowed" in str(e.value)
    assert "night_actions" in str(e.value)


def test_owner_check_is_case_insensitive() -> None:
    _run("deduction.start", _header(), player_id=OWNER.upper())


def test_non_owner_denied() -> None:
    with pytest.raises(PermissionDenied) as e:
        _run("deduction.delete", _header(), player_id=OTHER)
    assert str(e.value) == "Only the game creator can delete the game"


def test_type_check_runs_first() -> None:
    with pytest.raises(BusinessRuleViolation) as e:
        _run("deduction.delete", _header(type="rpg"), player_id=OTHER)
    assert e.value.code == "INVALID_GAME_TYPE"


@pytest.mark.parametrize(
    ("status", "phase"),
    [("active", "day_discussion"), ("active", "role_assignment"), ("paused", "night_actions")],
)
def test_delete_denied_once_play_has_begun(status: str, phase: str) -> None:
    with pytest.raises(BusinessRuleViolation) as e:
        _run("deduction.delete", _header(status=status, phase=phase))
    assert e.value.code == "GAME_ACTIVE"


def test_delete_allowed_in_lobby_and_for_paused_lobby() -> None:
    _run("deduction.delete", _header())
    _run("deduction.delete", _header(status="paused"))


@pytest.mark.parametrize(
    ("status", "code"),
    [("active", "GAME_ALREADY_ACTIVE"), ("completed", "GAME_COMPLETED"), ("cancelled", "GAME_COMPLETED")],
)
def test_start_denied_by_status(status: str, code: str) -> None:
    with pytest.raises(BusinessRuleViolation) as e:
        _run("deduction.start", _header(status=status))
    assert e.value.code == code


@pytest.mark.parametrize("status", ["active", "paused", "completed", "cancelled"])
def test_join_only_while_lobby_is_open(status: str) -> None:
    with pytest.raises(BusinessRuleViolation) as e:
        _run("deduction.join", _header(status=status), player_id=OTHER)
    assert e.value.code == "GAME_NOT_JOINABLE"


def test_unknown_action_pipeline_raises() -> None:
    with pytest.raises(ValueError) as e:
        pipeline_for_action("nope")
    assert "Unknown action" in str(e.value)
