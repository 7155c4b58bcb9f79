"""
Exception hierarchy shared by the game engines, the move pipeline and the
HTTP/socket layers.
"""


class GameError(Exception):
    """Base exception for all game-related errors."""


class ValidationError(GameError):
    """The move or request is not legal in the current state. Nothing was mutated."""


class NotYourTurnError(ValidationError):
    """A participant other than the current turn holder tried to move."""


class RoomFullError(ValidationError):
    """The room already has all of its participants."""


class RoomNotFoundError(GameError):
    """No room exists for the given code."""


class RoomBusyError(GameError):
    """Another move on the same room is still being applied; retry later."""


class EnrichmentUnavailable(GameError):
    """The flavor text generator failed or returned something unusable."""


class PersistenceError(GameError):
    """Writing the room to the durable store failed."""
