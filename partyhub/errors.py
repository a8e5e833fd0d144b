from __future__ import annotations

from typing import Any


class GameError(ValueError):
    """Domain error carrying a stable code and the HTTP status it maps to.

    Stores raise these; the API layer turns them into the JSON error envelope.
    """

    status_code: int = 400
    default_code: str = "GAME_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}


class InvalidRequest(GameError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class BusinessRuleViolation(GameError):
    status_code = 400
    default_code = "BUSINESS_RULE_VIOLATION"


class AuthRequired(GameError):
    status_code = 401
    default_code = "AUTH_REQUIRED"


class PermissionDenied(GameError):
    status_code = 403
    default_code = "INSUFFICIENT_PERMISSIONS"


class NotFound(GameError):
    status_code = 404
    default_code = "NOT_FOUND"


class Conflict(GameError):
    status_code = 409
    default_code = "CONFLICT"


class VersionConflict(Conflict):
    default_code = "VERSION_CONFLICT"
