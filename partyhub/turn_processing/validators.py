from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from partyhub.api.models import DeductionPhase, GameRecordHeader, GameStatus, GameType
from partyhub.errors import BusinessRuleViolation, PermissionDenied


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    game_id: str
    player_id: str | None
    action: str


class TurnValidator(ABC):
    """A small, composable validation unit for a lifecycle operation."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: GameRecordHeader) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class GameTypeValidator(TurnValidator):
    expected: GameType

    def validate(self, *, ctx: ValidationContext, state: GameRecordHeader) -> None:
        if state.type != self.expected:
            raise BusinessRuleViolation("Invalid game type", code="INVALID_GAME_TYPE")


@dataclass(frozen=True, slots=True)
class OwnerValidator(TurnValidator):
    """Only the owner recorded at creation may run the action."""

    message: str = "Only the game creator can perform this action"

    def validate(self, *, ctx: ValidationContext, state: GameRecordHeader) -> None:
        if not ctx.player_id or not state.owner_id or ctx.player_id.lower() != state.owner_id.lower():
            raise PermissionDenied(self.message)


@dataclass(frozen=True, slots=True)
class StatusValidator(TurnValidator):
    """Reject a status outside `allowed` (when given) or inside `denied`."""

    code: str
    message: str
    allowed: frozenset[GameStatus] | None = None
    denied: frozenset[GameStatus] = frozenset()

    def validate(self, *, ctx: ValidationContext, state: GameRecordHeader) -> None:
        if self.allowed is not None and state.status not in self.allowed:
            raise BusinessRuleViolation(self.message, code=self.code)
        if state.status in self.denied:
            raise BusinessRuleViolation(self.message, code=self.code)


@dataclass(frozen=True, slots=True)
class PhaseValidator(TurnValidator):
    """Validates the current game phase for a given action."""

    allowed_phases: frozenset[str]
    code: str = "INVALID_PHASE"
    message: str | None = None

    def validate(self, *, ctx: ValidationContext, state: GameRecordHeader) -> None:
        if state.phase not in self.allowed_phases:
            allowed = ",".join(sorted(self.allowed_phases))
            raise BusinessRuleViolation(
                self.message or f"Action '{ctx.action}' not allowed in phase '{state.phase}' (allowed: {allowed})",
                code=self.code,
            )


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TurnValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: GameRecordHeader) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "deduction.read": ValidatorPipeline(validators=(GameTypeValidator(expected=GameType.deduction),)),
    "deduction.delete": ValidatorPipeline(
        validators=(
            GameTypeValidator(expected=GameType.deduction),
            OwnerValidator(message="Only the game creator can delete the game"),
            StatusValidator(
                denied=frozenset({GameStatus.active}),
                code="GAME_ACTIVE",
                message="Cannot delete an active game",
            ),
            PhaseValidator(
                allowed_phases=frozenset({DeductionPhase.role_assignment.value}),
                code="GAME_ACTIVE",
                message="Cannot delete a game that has already started",
            ),
        )
    ),
    "deduction.start": ValidatorPipeline(
        validators=(
            GameTypeValidator(expected=GameType.deduction),
            OwnerValidator(message="Only the game creator can start the game"),
            StatusValidator(
                denied=frozenset({GameStatus.active}),
                code="GAME_ALREADY_ACTIVE",
                message="Game is already active",
            ),
            StatusValidator(
                denied=frozenset({GameStatus.completed, GameStatus.cancelled}),
                code="GAME_COMPLETED",
                message="Cannot start completed game",
            ),
        )
    ),
    "deduction.join": ValidatorPipeline(
        validators=(
            GameTypeValidator(expected=GameType.deduction),
            StatusValidator(
                allowed=frozenset({GameStatus.waiting_for_players, GameStatus.ready_to_start}),
                code="GAME_NOT_JOINABLE",
                message="Game is not accepting new players",
            ),
        )
    ),
    "rpg.delete": ValidatorPipeline(
        validators=(
            GameTypeValidator(expected=GameType.rpg),
            OwnerValidator(message="Only the game creator can delete the game"),
        )
    ),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
