"""
Validate, apply and persist moves, and end games (by the board or by resignation).

Order of locking is always: the game's lock in the board cache first, the store transaction second.
Nothing here waits for a game lock while a transaction is open.
"""

import logging

from chessbot.board import oracle
from chessbot.board.cache import BoardCache
from chessbot.board.oracle import Board
from chessbot.core.exceptions import (
    IllegalMoveError,
    InvalidNotationError,
    InvariantViolationError,
    NotPlayingError,
    NotYourTurnError,
)
from chessbot.core.models import GameModel, MoveApplied, MoveModel, Resigned, UserId
from chessbot.core.shared_types import GameState, Termination
from chessbot.db.repository import GameRepository, GameStore

logger = logging.getLogger(__name__)


class MovePipeline:
    def __init__(self, store: GameStore, cache: BoardCache) -> None:
        self.store = store
        self.cache = cache

    def attempt_move(self, user_id: UserId, notation: str) -> MoveApplied:
        """
        Play the user's move in their current game.

        The move is appended at ply = number of moves already stored, and the game row gets the new encoding
        (plus winner/termination when the move ends the game), all in one transaction.
        The cached board is advanced in place while the game's lock is held and is stepped back if the
        transaction does not commit.
        """
        game_id = self._current_game(user_id).id
        with self.cache.lock(game_id):
            advanced: Board | None = None
            try:
                with self.store.transaction() as repo:
                    game = self._locked_game(repo, user_id, game_id)
                    board = self._board(game)

                    color = game.color_of(user_id)
                    if oracle.side_to_move(board) is not color:
                        raise NotYourTurnError(f"User {user_id} ({color}) tried to move out of turn in game {game.id}.")

                    move = oracle.parse(notation, board)
                    if move is None:
                        raise InvalidNotationError(f"Cannot read {notation!r} as a move.")
                    if not oracle.is_legal(board, move):
                        raise IllegalMoveError(f"{move} is not legal in {oracle.encode(board)}.")

                    san = oracle.to_san(board, move)
                    oracle.apply(board, move)
                    advanced = board
                    logger.debug("game %s: %s plays %s", game.id, color, san)

                    record = MoveModel(game_id=game.id, ply=repo.count_moves(game.id), notation=oracle.to_uci(move))
                    repo.append_move(record)

                    game.fen = oracle.encode(board)
                    result = oracle.outcome(board)
                    if result is not None:
                        game.ended = True
                        game.winner = result.winner
                        game.termination = result.termination
                    game = repo.update_game(game)
            except Exception:
                if advanced is not None:
                    oracle.undo(advanced)
                    logger.warning("game %s: move %r not committed, board stepped back", game_id, notation)
                raise

            if game.ended:
                self.cache.evict(game.id)
                logger.info("game %s ended: %s, winner %s", game.id, game.termination, game.winner)
        return MoveApplied(game=game, move=record, san=san)

    def resign(self, user_id: UserId) -> Resigned:
        """
        End the user's current game with termination = resignation and the opponent as winner.

        Resigning from a game nobody has joined yet simply closes it, without a winner.
        """
        game_id = self._current_game(user_id).id
        with self.cache.lock(game_id):
            with self.store.transaction() as repo:
                game = self._locked_game(repo, user_id, game_id)
                color = game.color_of(user_id)
                game.ended = True
                game.termination = Termination.RESIGNATION
                game.winner = color.opponent if game.player(color.opponent) is not None else None
                game = repo.update_game(game)
            self.cache.evict(game.id)
            logger.info("game %s: user %s (%s) resigned", game.id, user_id, color)
        return Resigned(game=game, resigned_by=user_id)

    # -- Internal helpers --
    def _current_game(self, user_id: UserId) -> GameModel:
        with self.store.transaction() as repo:
            game = repo.find_active_game(user_id)
        if game is None:
            raise NotPlayingError(f"User {user_id} has no game in progress.")
        return game

    def _locked_game(self, repo: GameRepository, user_id: UserId, game_id: int) -> GameModel:
        """Re-read the user's game inside the transaction, now that its lock is held."""
        game = repo.find_active_game(user_id, for_update=True)
        if game is None or game.id != game_id:
            # the game ended (or was replaced) between the first lookup and taking the lock
            raise NotPlayingError(f"Game {game_id} of user {user_id} is no longer in progress.")
        return game

    def _board(self, game: GameModel) -> Board:
        if game.state is GameState.PENDING:
            raise NotYourTurnError(
                f"Game {game.id} has no opponent yet.", user_message="Waiting for an opponent to join."
            )
        try:
            return self.cache.get(game.id, game.fen)
        except ValueError as exc:
            raise InvariantViolationError(f"Stored board of game {game.id} cannot be decoded: {game!r}") from exc
