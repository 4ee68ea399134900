"""Protocols for the durable store (implemented with SQLAlchemy in sql_repository.py; tests use fakes)."""

from contextlib import AbstractContextManager
from typing import Optional, Protocol

from chessbot.core.models import GameId, GameModel, MoveModel, UserId
from chessbot.core.shared_types import Color


class GameRepository(Protocol):
    """Reads and writes inside one open transaction. Nothing is visible to others before the transaction commits."""

    def ensure_user(self, user_id: UserId) -> None:
        """Register the user if not known yet."""
        ...

    def get_game(self, game_id: GameId) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def find_active_game(self, user_id: UserId, for_update: bool = False) -> GameModel | None:
        """The game (pending or active) the user takes part in that has not ended, if any."""
        ...

    def find_pending_game(self, exclude_user: Optional[UserId] = None) -> GameModel | None:
        """Oldest game with exactly one open seat that has not ended."""
        ...

    def claim_seat(self, game_id: GameId, color: Color, user_id: UserId) -> bool:
        """Seat the user, but only if that seat is still open and the game has not ended. True if the seat was taken."""
        ...

    def create_game(self, game: GameModel) -> GameModel:
        """Store a new game and return it with its newly assigned ID."""
        ...

    def update_game(self, game: GameModel) -> GameModel:
        """Write board encoding and termination info of an existing game."""
        ...

    def count_moves(self, game_id: GameId) -> int:
        ...

    def append_move(self, move: MoveModel) -> None:
        ...

    def list_moves(self, game_id: GameId) -> list[MoveModel]:
        """All moves of the game, ordered by ply."""
        ...


class GameStore(Protocol):
    """Hands out transactions. Commits when the block exits normally, rolls back otherwise."""

    def transaction(self) -> AbstractContextManager[GameRepository]:
        ...
