from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from partyhub.api.models import DeductionGameState, DeductionPhase
from partyhub.errors import BusinessRuleViolation


class DeductionFSM(StateMachine):
    """FSM wrapper around DeductionGameState.phase.

    - phases: role assignment -> day discussion <-> day voting -> night actions -> ... -> game over
    - stores apply the state changes; the FSM only guards which phase may follow which.
    """

    role_assignment = State(
        DeductionPhase.role_assignment.value,
        value=DeductionPhase.role_assignment.value,
        initial=True,
    )
    day_discussion = State(DeductionPhase.day_discussion.value, value=DeductionPhase.day_discussion.value)
    day_voting = State(DeductionPhase.day_voting.value, value=DeductionPhase.day_voting.value)
    night_actions = State(DeductionPhase.night_actions.value, value=DeductionPhase.night_actions.value)
    game_over = State(DeductionPhase.game_over.value, value=DeductionPhase.game_over.value, final=True)

    start = role_assignment.to(day_discussion)
    call_vote = day_discussion.to(day_voting)
    nightfall = day_voting.to(night_actions)
    dawn = night_actions.to(day_discussion)
    conclude = (
        role_assignment.to(game_over)
        | day_discussion.to(game_over)
        | day_voting.to(game_over)
        | night_actions.to(game_over)
    )

    def __init__(self, game: DeductionGameState):
        self.game = game
        super().__init__(start_value=game.phase.value)

    def apply(self, event: str) -> DeductionPhase:
        """Fire `event` and write the resulting phase back onto the game."""

        try:
            self.send(event)
        except TransitionNotAllowed as e:
            raise BusinessRuleViolation(
                f"Cannot '{event}' from phase '{self.game.phase.value}'",
                code="INVALID_PHASE_TRANSITION",
            ) from e
        self.sync_phase_to_model()
        return self.game.phase

    def sync_phase_to_model(self) -> None:
        self.game.phase = DeductionPhase(str(self.current_state_value))
