"""
Boundary layer data model(s).

These objects are passed between the services and the persistence layer, and returned by the session engine.
(Decouples the SQLAlchemy rows and the live python-chess boards from the information needed to send across boundaries)
"""

from dataclasses import dataclass
from typing import Optional

from chessbot.core.exceptions import InvariantViolationError
from chessbot.core.shared_types import Color, GameState, Termination

# Type aliases to make the models easier to read
UserId = int
GameId = int


@dataclass
class GameModel:
    """Transport-safe representation of one row of the games table."""

    fen: str
    white_id: Optional[UserId] = None
    black_id: Optional[UserId] = None
    ended: bool = False
    winner: Optional[Color] = None
    termination: Optional[Termination] = None
    id: Optional[GameId] = None

    @property
    def state(self) -> GameState:
        if self.ended:
            return GameState.TERMINAL
        if self.white_id is None or self.black_id is None:
            return GameState.PENDING
        return GameState.ACTIVE

    def player(self, color: Color) -> Optional[UserId]:
        return self.white_id if color is Color.WHITE else self.black_id

    def color_of(self, user_id: UserId) -> Color:
        """Which pieces the user holds in this game."""
        if self.white_id == user_id:
            return Color.WHITE
        if self.black_id == user_id:
            return Color.BLACK
        raise InvariantViolationError(f"User {user_id} does not take part in game {self.id}: {self!r}")

    def open_seat(self) -> Color:
        """The single empty seat of a pending game."""
        if self.ended or (self.white_id is None) == (self.black_id is None):
            raise InvariantViolationError(f"Game {self.id} is not pending: {self!r}")
        return Color.WHITE if self.white_id is None else Color.BLACK

    def participants(self) -> list[UserId]:
        return [user for user in (self.white_id, self.black_id) if user is not None]


@dataclass(frozen=True)
class MoveModel:
    game_id: GameId
    ply: int
    notation: str  # UCI


# --- Operation results ---
@dataclass(frozen=True)
class WaitingForOpponent:
    game_id: GameId
    color: Color


@dataclass(frozen=True)
class Paired:
    game_id: GameId
    color: Color
    opponent_id: UserId


@dataclass(frozen=True)
class MoveApplied:
    game: GameModel
    move: MoveModel
    san: str

    @property
    def game_over(self) -> bool:
        return self.game.ended


@dataclass(frozen=True)
class Resigned:
    game: GameModel
    resigned_by: UserId
