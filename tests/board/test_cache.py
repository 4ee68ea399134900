"""Unit tests for chessbot/board/cache.py"""

import threading
import time

from chessbot.board import oracle
from chessbot.board.cache import BoardCache

AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"


def test_miss_builds_board_from_encoding() -> None:
    cache = BoardCache()
    assert 1 not in cache
    board = cache.get(1, oracle.STARTING_FEN)
    assert oracle.encode(board) == oracle.STARTING_FEN
    assert 1 in cache
    assert len(cache) == 1


def test_hit_returns_the_same_live_board() -> None:
    cache = BoardCache()
    board = cache.get(1, oracle.STARTING_FEN)
    oracle.apply(board, oracle.parse("e4", board))
    assert cache.get(1, AFTER_E4) is board
    # the move stack survives, which a board decoded from the encoding would not have
    assert len(board.move_stack) == 1


def test_board_behind_the_store_is_rebuilt() -> None:
    cache = BoardCache()
    stale = cache.get(1, oracle.STARTING_FEN)
    fresh = cache.get(1, AFTER_E4)
    assert fresh is not stale
    assert oracle.encode(fresh) == AFTER_E4
    assert cache.peek(1) is fresh


def test_evict() -> None:
    cache = BoardCache()
    cache.get(1, oracle.STARTING_FEN)
    cache.get(2, oracle.STARTING_FEN)
    cache.evict(1)
    cache.evict(3)  # unknown games are ignored
    assert 1 not in cache
    assert 2 in cache
    cache.clear()
    assert len(cache) == 0


def test_lock_serializes_one_game() -> None:
    cache = BoardCache()
    inside = []
    overlap = []

    def work() -> None:
        with cache.lock(1):
            inside.append(1)
            if len(inside) > 1:
                overlap.append(True)
            time.sleep(0.05)
            inside.pop()

    threads = [threading.Thread(target=work) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert overlap == []


def test_locks_of_different_games_are_independent() -> None:
    cache = BoardCache()
    entered = threading.Event()

    def other_game() -> None:
        with cache.lock(2):
            entered.set()

    with cache.lock(1):
        thread = threading.Thread(target=other_game)
        thread.start()
        assert entered.wait(timeout=5)
    thread.join()


def test_lock_is_released_from_registry() -> None:
    cache = BoardCache()
    with cache.lock(1):
        with cache.lock(2):
            assert cache.lock_count() == 2
        assert cache.lock_count() == 1
    assert cache.lock_count() == 0


def test_lock_survives_while_awaited() -> None:
    """A waiter keeps the game's lock alive after the holder leaves, and still gets mutual exclusion."""
    cache = BoardCache()
    waiting = threading.Event()
    acquired = threading.Event()

    def waiter() -> None:
        waiting.set()
        with cache.lock(1):
            acquired.set()

    with cache.lock(1):
        thread = threading.Thread(target=waiter)
        thread.start()
        assert waiting.wait(timeout=5)
        time.sleep(0.05)
        assert not acquired.is_set()
    thread.join(timeout=5)
    assert acquired.is_set()
    assert cache.lock_count() == 0
