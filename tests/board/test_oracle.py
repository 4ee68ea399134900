"""Unit tests for chessbot/board/oracle.py"""

import chess
import pytest

from chessbot.board import oracle
from chessbot.core.shared_types import Color, Termination

STALEMATE_FEN = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
BARE_KINGS_FEN = "8/8/8/4k3/8/8/8/4K3 w - - 0 1"


def play(board: chess.Board, *moves: str) -> chess.Board:
    for text in moves:
        move = oracle.parse(text, board)
        assert move is not None and oracle.is_legal(board, move), text
        oracle.apply(board, move)
    return board


def test_starting_position() -> None:
    board = oracle.starting_position()
    assert oracle.encode(board) == oracle.STARTING_FEN
    assert oracle.side_to_move(board) is Color.WHITE


@pytest.mark.parametrize("text", ["Nf3", "g1f3", "G1F3", " Nf3 "])
def test_parse_both_notations(text: str) -> None:
    board = oracle.starting_position()
    assert oracle.parse(text, board) == chess.Move.from_uci("g1f3")


def test_parse_promotion_in_coordinate_notation() -> None:
    board = oracle.decode("k7/4P3/8/8/8/8/8/K7 w - - 0 1")
    move = oracle.parse("e7e8q", board)
    assert move == chess.Move.from_uci("e7e8q")
    assert oracle.to_san(board, move) == "e8=Q+"


@pytest.mark.parametrize("text", ["", "hello", "Nz9", "resign please"])
def test_unreadable_text(text: str) -> None:
    board = oracle.starting_position()
    assert oracle.parse(text, board) is None


def test_unplayable_san_does_not_parse() -> None:
    """Short algebraic notation only resolves to moves that can be played in the position."""
    board = oracle.starting_position()
    assert oracle.parse("Ke2", board) is None
    assert oracle.parse("O-O", board) is None
    assert oracle.parse("Qh4#", board) is None


def test_coordinate_move_is_parsed_but_illegal() -> None:
    board = oracle.starting_position()
    move = oracle.parse("e2e5", board)
    assert move == chess.Move.from_uci("e2e5")
    assert not oracle.is_legal(board, move)


def test_null_move_is_not_legal() -> None:
    board = oracle.starting_position()
    assert not oracle.is_legal(board, chess.Move.null())


def test_apply_and_undo() -> None:
    board = oracle.starting_position()
    play(board, "e4")
    assert oracle.side_to_move(board) is Color.BLACK
    oracle.undo(board)
    assert oracle.encode(board) == oracle.STARTING_FEN


def test_encode_always_writes_en_passant_square() -> None:
    board = play(oracle.starting_position(), "e4")
    assert oracle.encode(board) == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"


def test_decode_encode_round_trip() -> None:
    board = play(oracle.starting_position(), "e4", "c5", "Nf3", "d6")
    fen = oracle.encode(board)
    assert oracle.encode(oracle.decode(fen)) == fen


@pytest.mark.parametrize("fen", ["not a fen", "8/8/8/8/8/8/8/8 w - - 0 1"])
def test_decode_rejects_invalid_positions(fen: str) -> None:
    with pytest.raises(ValueError):
        oracle.decode(fen)


def test_game_in_progress_has_no_outcome() -> None:
    board = play(oracle.starting_position(), "e4", "e5")
    assert not oracle.is_game_over(board)
    assert oracle.outcome(board) is None


def test_checkmate_is_won_by_the_mating_side() -> None:
    board = play(oracle.starting_position(), "f3", "e5", "g4", "Qh4#")
    assert oracle.is_game_over(board)
    assert oracle.outcome(board) == oracle.Outcome(termination=Termination.CHECKMATE, winner=Color.BLACK)


@pytest.mark.parametrize("fen", [STALEMATE_FEN, BARE_KINGS_FEN])
def test_draws(fen: str) -> None:
    board = oracle.decode(fen)
    assert oracle.is_game_over(board)
    result = oracle.outcome(board)
    assert result is not None
    assert result.termination is Termination.DRAW
    assert result.is_draw


def test_threefold_repetition_is_a_draw() -> None:
    board = play(oracle.starting_position(), "Nf3", "Nf6", "Ng1", "Ng8", "Nf3", "Nf6", "Ng1")
    assert not oracle.is_game_over(board)
    play(board, "Ng8")
    assert oracle.is_game_over(board)
    assert oracle.outcome(board).termination is Termination.DRAW


def test_repetition_is_not_seen_without_move_stack() -> None:
    board = play(oracle.starting_position(), "Nf3", "Nf6", "Ng1", "Ng8", "Nf3", "Nf6", "Ng1", "Ng8")
    assert not oracle.is_game_over(oracle.decode(oracle.encode(board)))
