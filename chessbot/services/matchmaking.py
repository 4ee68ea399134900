"""Pair a user with a waiting opponent, or open a new game for them to wait in."""

import logging

from chessbot.board import oracle
from chessbot.core.exceptions import AlreadyPlayingError
from chessbot.core.models import GameModel, Paired, UserId, WaitingForOpponent
from chessbot.core.shared_types import Color
from chessbot.db.repository import GameStore

logger = logging.getLogger(__name__)

# a lost race for an open seat is retried this many times in total, then a fresh game is opened instead
CLAIM_ATTEMPTS = 2


class Matchmaker:
    def __init__(self, store: GameStore) -> None:
        self.store = store

    def join(self, user_id: UserId) -> Paired | WaitingForOpponent:
        """
        Seat the user in the oldest pending game, or create a new pending game with the user as white.

        Looking for the open seat and taking it happen in one transaction, and the seat is only taken by a
        conditional update (seat still empty, game not ended). If another joiner got there first the update
        changes no row and the search is repeated once, after which a new game is opened rather than risking
        a double booking.
        """
        with self.store.transaction() as repo:
            repo.ensure_user(user_id)
            current = repo.find_active_game(user_id)
            if current is not None:
                logger.debug("user %s is already in game %s", user_id, current.id)
                raise AlreadyPlayingError(f"User {user_id} already plays game {current.id}.")

            for attempt in range(1, CLAIM_ATTEMPTS + 1):
                pending = repo.find_pending_game(exclude_user=user_id)
                if pending is None:
                    break
                # raises InvariantViolationError if the row is not actually pending
                seat = pending.open_seat()
                opponent = pending.player(seat.opponent)
                if repo.claim_seat(pending.id, seat, user_id):
                    logger.info("paired user %s (%s) with user %s in game %s", user_id, seat, opponent, pending.id)
                    return Paired(game_id=pending.id, color=seat, opponent_id=opponent)
                logger.warning(
                    "user %s lost the race for game %s (attempt %s of %s)", user_id, pending.id, attempt, CLAIM_ATTEMPTS
                )

            game = repo.create_game(
                GameModel(fen=oracle.encode(oracle.starting_position()), white_id=user_id)
            )
            logger.info("user %s created game %s", user_id, game.id)
            return WaitingForOpponent(game_id=game.id, color=Color.WHITE)
