"""Typed rejections raised by the game services.

Every error here is recoverable at the request boundary: the Flask error
handler registered in ``create_app`` turns it into a JSON body carrying a
machine-readable ``reason`` next to the human message.
"""

from typing import Any, Dict


class GameError(Exception):
    status_code = 400
    default_reason = 'error'

    def __init__(self, message: str, reason: str = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.message, 'reason': self.reason}
        payload.update(self.extra)
        return payload


class ValidationError(GameError):
    """Malformed request, e.g. coordinates outside the board."""
    status_code = 400
    default_reason = 'invalid_request'


class NotAdjacentError(ValidationError):
    default_reason = 'not_adjacent'


class NotFoundError(GameError):
    status_code = 404
    default_reason = 'not_found'


class ConflictError(GameError):
    """The tile was taken by another player before this request committed."""
    status_code = 409
    default_reason = 'tile_unavailable'


class StateError(GameError):
    """Action attempted while the session is not in the required status."""
    status_code = 409
    default_reason = 'game_not_active'


class AuthorizationError(GameError):
    status_code = 403
    default_reason = 'forbidden'
