"""Implementation of GameRepository / GameStore using SQLAlchemy"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from chessbot.core.exceptions import RepositoryError, StoreUnavailableError
from chessbot.core.models import GameId, GameModel, MoveModel, UserId
from chessbot.core.shared_types import Color
from chessbot.db.schema import DBGame, DBMove, DBUser

logger = logging.getLogger(__name__)


def pending_game_query(exclude_user: Optional[UserId] = None) -> Select[tuple[DBGame]]:
    """
    Oldest game with exactly one seat taken, not counting games of exclude_user.

    The row is locked for the claim that follows. Rows another transaction already holds are skipped,
    so concurrent joiners spread over the pending games instead of queueing on the first one.
    SQLite has no row locks and ignores this (its transactions hold the database's write lock anyway).
    """
    query = select(DBGame).where(
        DBGame.ended.is_(False),
        or_(DBGame.white_id.is_(None), DBGame.black_id.is_(None)),
        or_(DBGame.white_id.is_not(None), DBGame.black_id.is_not(None)),
    )
    if exclude_user is not None:
        query = query.where(
            or_(DBGame.white_id.is_(None), DBGame.white_id != exclude_user),
            or_(DBGame.black_id.is_(None), DBGame.black_id != exclude_user),
        )
    return query.order_by(DBGame.created_at, DBGame.id).limit(1).with_for_update(skip_locked=True)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy. Never commits: the owning transaction does."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def ensure_user(self, user_id: UserId) -> None:
        if self.db.get(DBUser, user_id) is None:
            self.db.add(DBUser(id=user_id))
            self.db.flush()
            logger.debug("registered user %s", user_id)

    def get_game(self, game_id: GameId) -> GameModel | None:
        game_db = self.db.get(DBGame, game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def find_active_game(self, user_id: UserId, for_update: bool = False) -> GameModel | None:
        query = select(DBGame).where(
            or_(DBGame.white_id == user_id, DBGame.black_id == user_id),
            DBGame.ended.is_(False),
        )
        if for_update:
            query = query.with_for_update()
        # more than one row would break the one-game-per-user invariant; the caller gets the oldest
        game_db = self.db.scalars(query.order_by(DBGame.id).limit(1)).first()
        if game_db:
            return self._to_model(game_db)
        return None

    def find_pending_game(self, exclude_user: Optional[UserId] = None) -> GameModel | None:
        game_db = self.db.scalars(pending_game_query(exclude_user)).first()
        if game_db:
            return self._to_model(game_db)
        return None

    def claim_seat(self, game_id: GameId, color: Color, user_id: UserId) -> bool:
        seat = DBGame.white_id if color is Color.WHITE else DBGame.black_id
        statement = (
            update(DBGame)
            .where(DBGame.id == game_id, seat.is_(None), DBGame.ended.is_(False))
            .values({seat: user_id})
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(statement)
        # the ORM copy (if any) of this row is stale now
        self.db.expire_all()
        return result.rowcount == 1

    def create_game(self, game: GameModel) -> GameModel:
        game_db = DBGame(
            white_id=game.white_id,
            black_id=game.black_id,
            ended=game.ended,
            winner=game.winner,
            termination=game.termination,
            fen=game.fen,
        )
        self.db.add(game_db)
        self.db.flush()
        return self._to_model(game_db)

    def update_game(self, game: GameModel) -> GameModel:
        game_db = self.db.get(DBGame, game.id) if game.id is not None else None
        if not game_db:
            raise RepositoryError(f"Game with id={game.id} not found.")
        game_db.ended = game.ended
        game_db.winner = game.winner
        game_db.termination = game.termination
        game_db.fen = game.fen
        self.db.flush()
        return self._to_model(game_db)

    def count_moves(self, game_id: GameId) -> int:
        query = select(func.count()).select_from(DBMove).where(DBMove.game_id == game_id)
        return self.db.scalar(query) or 0

    def append_move(self, move: MoveModel) -> None:
        self.db.add(DBMove(game_id=move.game_id, ply=move.ply, notation=move.notation))
        self.db.flush()

    def list_moves(self, game_id: GameId) -> list[MoveModel]:
        query = select(DBMove).where(DBMove.game_id == game_id).order_by(DBMove.ply)
        return [
            MoveModel(game_id=move_db.game_id, ply=move_db.ply, notation=move_db.notation)
            for move_db in self.db.scalars(query)
        ]

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            id=game_db.id,
            white_id=game_db.white_id,
            black_id=game_db.black_id,
            ended=game_db.ended,
            winner=game_db.winner,
            termination=game_db.termination,
            fen=game_db.fen,
        )


class SQLGameStore:
    """Transactions on top of a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[SQLGameRepository]:
        """
        One unit of work. Commits on normal exit, rolls back on any exception.

        Database errors (failing to begin, execute or commit) surface as StoreUnavailableError, anything
        raised by the caller's own code is re-raised unchanged after the rollback.
        """
        session = self.session_factory()
        try:
            try:
                yield SQLGameRepository(session)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.warning("transaction aborted: %s", exc)
                raise StoreUnavailableError(f"Store transaction failed: {exc}") from exc
            except BaseException:
                session.rollback()
                raise
        finally:
            session.close()
