from __future__ import annotations

from partyhub.api.models import ClueCard, DeductionGameState, GamePhaseEvent, NightAction
from partyhub.errors import PermissionDenied


def event_visible_to(event: GamePhaseEvent, viewer_id: str | None) -> bool:
    return event.is_public or (viewer_id is not None and viewer_id in event.affected_players)


def clue_visible_to(clue: ClueCard, viewer_id: str | None) -> bool:
    return clue.is_revealed or (viewer_id is not None and viewer_id in (clue.affected_players or []))


def night_action_visible_to(action: NightAction, viewer_id: str, *, include_secrets: bool) -> bool:
    """Night-action policy.

    - include_secrets=False: the viewer sees their own actions plus anything already resolved.
    - include_secrets=True: every action, resolved or not (owner/moderator view; the API gate
      decides who may ask for it).
    """

    if include_secrets:
        return True
    return action.actor_id == viewer_id or action.is_resolved


def require_participant(state: DeductionGameState, viewer_id: str) -> None:
    if viewer_id not in state.data.alive_players:
        raise PermissionDenied("Player not in this game", code="PLAYER_NOT_IN_GAME")


def sanitize_for_viewer(state: DeductionGameState, viewer_id: str, include_secrets: bool = False) -> DeductionGameState:
    """Return a copy of `state` redacted to what `viewer_id` may see.

    The stored record is never mutated, and the copy is deep so no filtered list aliases
    a list of the input.
    """

    require_participant(state, viewer_id)

    out = state.model_copy(deep=True)
    data = out.data
    data.events = [e for e in data.events if event_visible_to(e, viewer_id)]
    data.clues_available = [c for c in data.clues_available if clue_visible_to(c, viewer_id)]
    data.night_actions = [
        a for a in data.night_actions if night_action_visible_to(a, viewer_id, include_secrets=include_secrets)
    ]
    return out


def sanitize_for_public(state: DeductionGameState) -> DeductionGameState:
    """Spectator view: public events, revealed clues, and no night actions at all."""

    out = state.model_copy(deep=True)
    data = out.data
    data.events = [e for e in data.events if event_visible_to(e, None)]
    data.clues_available = [c for c in data.clues_available if clue_visible_to(c, None)]
    data.night_actions = []
    return out
