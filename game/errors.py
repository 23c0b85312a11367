"""Error types raised by the game engine, the room service and the store."""


class GameError(Exception):
    """Base class for every error the game reports to a caller."""


class InvalidActionError(GameError, ValueError):
    """Action rejected before any write (bad input, wrong phase, not your turn)."""


class NotAllowedError(GameError):
    """Actor may not perform this action (e.g. host-only action by a guest)."""


class NotFoundError(GameError):
    """Room or participant does not exist."""


class DuplicateSubmissionError(GameError):
    """Uniqueness constraint hit: the row was already written by someone else."""


class TransientStoreError(GameError):
    """Datastore I/O failed; the caller may retry."""
