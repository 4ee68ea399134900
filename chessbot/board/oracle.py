"""
Position Oracle: the rules of chess, answered by python-chess.

Pure functions without I/O. The session services never touch python-chess directly, only through this module.
Boards are mutable `chess.Board` objects: `apply()` pushes onto the board's move stack and `undo()` pops it again.
"""

from dataclasses import dataclass
from typing import Optional

import chess

from chessbot.core.shared_types import Color, Termination

STARTING_FEN = chess.STARTING_FEN

Board = chess.Board
Move = chess.Move


@dataclass(frozen=True)
class Outcome:
    """Decisive (winner set) or drawn (winner None) end of a game."""

    termination: Termination
    winner: Optional[Color]

    @property
    def is_draw(self) -> bool:
        return self.winner is None


def starting_position() -> Board:
    return chess.Board()


def decode(fen: str) -> Board:
    """Build a board from its canonical encoding. Raises ValueError for anything that is not a valid position."""
    board = chess.Board(fen)
    if not board.is_valid():
        raise ValueError(f"FEN {fen!r} does not describe a valid position: {board.status()!r}")
    return board


def encode(board: Board) -> str:
    """Canonical encoding. The en passant square is written after every double pawn push."""
    return board.fen(en_passant="fen")


def side_to_move(board: Board) -> Color:
    return Color.WHITE if board.turn == chess.WHITE else Color.BLACK


def parse(text: str, board: Board) -> Optional[Move]:
    """
    Interpret the text as a move in the given position.

    Standard algebraic notation (e.g. Nf3, exd5, O-O) is tried first, coordinate notation (e.g. g1f3, e7e8q) second.
    SAN only resolves to moves that are playable, coordinate notation resolves any well-formed move
    (use is_legal() to tell the difference).
    """
    text = text.strip()
    if not text:
        return None
    try:
        return board.parse_san(text)
    except ValueError:
        pass
    try:
        return chess.Move.from_uci(text.lower())
    except ValueError:
        return None


def is_legal(board: Board, move: Move) -> bool:
    return bool(move) and board.is_legal(move)


def apply(board: Board, move: Move) -> None:
    board.push(move)


def undo(board: Board) -> Move:
    return board.pop()


def to_san(board: Board, move: Move) -> str:
    """Short algebraic notation of a move that is about to be played on the board."""
    return board.san(move)


def to_uci(move: Move) -> str:
    return move.uci()


def is_game_over(board: Board) -> bool:
    return outcome(board) is not None


def outcome(board: Board) -> Optional[Outcome]:
    """
    Classify a finished game.

    Checkmate is decisive and won by the side that delivered mate.
    Stalemate, insufficient material, the fifty/seventy-five move rules and a position occurring for the third time
    are draws. Repetitions are only seen on boards that carry their move stack.
    """
    result = board.outcome()
    if result is None:
        if board.is_repetition(3) or board.is_fifty_moves():
            return Outcome(termination=Termination.DRAW, winner=None)
        return None
    if result.termination == chess.Termination.CHECKMATE:
        winner = Color.WHITE if result.winner == chess.WHITE else Color.BLACK
        return Outcome(termination=Termination.CHECKMATE, winner=winner)
    return Outcome(termination=Termination.DRAW, winner=None)
