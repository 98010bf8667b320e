"""Arena exceptions - raised before any state is mutated."""


class ArenaError(Exception):
    """Base class for all arena errors."""


class AuthorizationError(ArenaError):
    """Caller is not allowed to perform the operation.

    Raised when the caller doesn't own the referenced character, isn't a
    participant, isn't the current-turn player or isn't the operator.
    """


class StateError(ArenaError):
    """Operation is not valid in the current state.

    Raised when a battle is not in progress, a turn was already ended,
    a player is already battling, or no pending challenge exists.
    """


class ValidationError(ArenaError):
    """Arguments are malformed (unknown attack kind, insufficient points, self-challenge)."""


class ResourceNotFoundError(ArenaError):
    """Referenced battle, character or item does not exist."""
