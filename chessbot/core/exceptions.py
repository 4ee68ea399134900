"""
Custom exceptions raised by the services and the persistence layer.

Every exception carries a single-line, non-technical `user_message` that the session engine forwards to the user.
The exception's own message (str(exc)) is meant for the logs.
"""

TEMPORARY_FAILURE = "Something went wrong on our side. Please try again in a moment."


class GameError(Exception):
    """Top-level exception for anything that stops an operation on a game."""

    user_message: str = TEMPORARY_FAILURE

    def __init__(self, message: str = "", user_message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class AlreadyPlayingError(GameError):
    user_message = "You are already playing."


class NotPlayingError(GameError):
    user_message = "You are not playing."


class NotYourTurnError(GameError):
    user_message = "Not your turn!"


class InvalidNotationError(GameError):
    user_message = "This is not a valid move"


class IllegalMoveError(GameError):
    user_message = "This move is not legal"


class StoreUnavailableError(GameError):
    """The transaction could not be opened or committed. Transient: nothing was persisted."""

    user_message = TEMPORARY_FAILURE


class InvariantViolationError(GameError):
    """The store holds a state that should be impossible (e.g. a 'pending' game with both seats taken)."""

    user_message = TEMPORARY_FAILURE


class RepositoryError(GameError):
    """A record that must exist could not be found."""

    user_message = TEMPORARY_FAILURE
