"""
Orchestration of communication from the chat transport to matchmaking, the move pipeline and the board cache
(and the notifications flowing back).
"""

import logging

from chessbot.board.cache import BoardCache
from chessbot.core.config import Settings, get_settings
from chessbot.core.exceptions import (
    AlreadyPlayingError,
    GameError,
    InvariantViolationError,
    NotPlayingError,
    StoreUnavailableError,
)
from chessbot.core.models import GameModel, MoveApplied, Paired, Resigned, UserId, WaitingForOpponent
from chessbot.core.shared_types import Color, Termination
from chessbot.db.repository import GameStore
from chessbot.services.matchmaking import Matchmaker
from chessbot.services.move_pipeline import MovePipeline
from chessbot.transport.models import InboundMessage, Notifier

logger = logging.getLogger(__name__)

JoinResult = Paired | WaitingForOpponent | GameError
MoveResult = MoveApplied | GameError
ResignResult = Resigned | GameError


class SessionEngine:
    """Entry point for the transport: one method per kind of inbound message."""

    def __init__(
        self,
        store: GameStore,
        notifier: Notifier,
        cache: BoardCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.cache = cache if cache is not None else BoardCache()
        self.settings = settings if settings is not None else get_settings()
        self.matchmaker = Matchmaker(store)
        self.moves = MovePipeline(store, self.cache)

    # -- Transport entry point --
    def handle(self, message: InboundMessage) -> JoinResult | MoveResult | ResignResult:
        """Register the sender, then treat the text as a join command, a resignation, or (by default) a move."""
        logger.info("message by %s %s: %s", message.user_id, message.display_name, message.text)
        try:
            with self.store.transaction() as repo:
                repo.ensure_user(message.user_id)
        except GameError as exc:
            return self._reject(message.user_id, exc)

        command = message.text.lower()
        if command == self.settings.join_command.lower():
            return self.on_join_request(message.user_id)
        if command == self.settings.resign_command.lower():
            return self.on_resign_request(message.user_id)
        return self.on_move_attempt(message.user_id, message.text)

    # -- Operations --
    def on_join_request(self, user_id: UserId) -> JoinResult:
        try:
            result = self.matchmaker.join(user_id)
        except GameError as exc:
            return self._reject(user_id, exc)

        if isinstance(result, WaitingForOpponent):
            self._notify(user_id, "Created a new game. Waiting for an opponent to join.")
            return result

        players = {result.color: user_id, result.color.opponent: result.opponent_id}
        self._notify(players[Color.WHITE], "You are white. Your turn!")
        self._notify(players[Color.BLACK], "You are black. Waiting for opponent's move.")
        return result

    def on_move_attempt(self, user_id: UserId, notation: str) -> MoveResult:
        try:
            result = self.moves.attempt_move(user_id, notation)
        except GameError as exc:
            return self._reject(user_id, exc)

        for participant in result.game.participants():
            self._notify(participant, f"Played {result.san}, FEN is now {result.game.fen}")
            if result.game_over:
                self._notify(participant, f"Game is over: {describe_result(result.game)}")
        return result

    def on_resign_request(self, user_id: UserId) -> ResignResult:
        try:
            result = self.moves.resign(user_id)
        except GameError as exc:
            return self._reject(user_id, exc)

        game = result.game
        if game.winner is None:
            self._notify(user_id, "You left the game before anyone joined.")
            return result
        self._notify(user_id, f"You resigned. Game is over: {describe_result(game)}")
        self._notify(game.player(game.winner), f"Your opponent resigned. Game is over: {describe_result(game)}")
        return result

    # -- Internal helpers --
    def _reject(self, user_id: UserId, error: GameError) -> GameError:
        """Tell the user why nothing happened, log it, and hand the error back as the operation's result."""
        if isinstance(error, InvariantViolationError):
            logger.error("invariant violated while serving user %s: %s", user_id, error, exc_info=error)
        elif isinstance(error, StoreUnavailableError):
            logger.warning("store unavailable while serving user %s: %s", user_id, error)
        else:
            logger.debug("rejected request of user %s: %s", user_id, error)
        self._notify(user_id, self._user_message(error))
        return error

    def _user_message(self, error: GameError) -> str:
        if isinstance(error, AlreadyPlayingError):
            return f"You are already playing. Type `{self.settings.resign_command}` to leave."
        if isinstance(error, NotPlayingError):
            return f"Type `{self.settings.join_command}` to join a game"
        return error.user_message

    def _notify(self, user_id: UserId, text: str) -> None:
        """Delivery failures are logged only: committed game state stays as it is."""
        try:
            self.notifier.notify(user_id, text)
        except Exception as exc:
            logger.warning("could not notify user %s: %s", user_id, exc)


def describe_result(game: GameModel) -> str:
    if game.winner is None:
        return "draw" if game.termination is not Termination.RESIGNATION else "no result"
    return f"{game.winner} wins by {game.termination}"
