"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE


class Termination(StrEnum):
    """Why a game ended. TIMEOUT is reserved: no clock exists that could produce it."""

    TIMEOUT = "timeout"
    RESIGNATION = "resignation"
    CHECKMATE = "checkmate"
    DRAW = "draw"


class GameState(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    TERMINAL = "terminal"
