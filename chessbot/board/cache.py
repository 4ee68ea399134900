"""
In-memory cache of live boards, keyed by game ID.

The cache is an accelerator only: the `fen` column of the games table is the truth.
A board is (re)built from the stored encoding on a miss, or when the cached board no longer encodes to the stored value
(e.g. another process advanced the game). Terminal games must not have an entry.

Every game also gets its own lock. Whoever mutates a cached board must hold that game's lock, so two concurrent
move attempts on one game cannot both advance the board before either has committed.
Locks of different games are independent.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from chessbot.board import oracle
from chessbot.board.oracle import Board
from chessbot.core.models import GameId

logger = logging.getLogger(__name__)


class _GameLock:
    """A game's lock and the number of threads holding or waiting for it."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class BoardCache:
    def __init__(self) -> None:
        self._boards: dict[GameId, Board] = {}
        self._locks: dict[GameId, _GameLock] = {}
        # guards the two dicts themselves, never held while a game lock is awaited
        self._registry_lock = threading.Lock()

    def __contains__(self, game_id: GameId) -> bool:
        with self._registry_lock:
            return game_id in self._boards

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._boards)

    @contextmanager
    def lock(self, game_id: GameId) -> Iterator[None]:
        """
        Serialize everything that touches one game's cached board.

        A game's lock only exists while somebody holds or awaits it, so finished games leave nothing behind.
        """
        with self._registry_lock:
            game_lock = self._locks.get(game_id)
            if game_lock is None:
                game_lock = self._locks[game_id] = _GameLock()
            game_lock.users += 1
        try:
            with game_lock.lock:
                yield
        finally:
            with self._registry_lock:
                game_lock.users -= 1
                if game_lock.users == 0:
                    del self._locks[game_id]

    def lock_count(self) -> int:
        """Number of games whose lock is currently held or awaited."""
        with self._registry_lock:
            return len(self._locks)

    def get(self, game_id: GameId, fen: str) -> Board:
        """Return the live board for the game, rebuilding it from the stored encoding if absent or out of date."""
        with self._registry_lock:
            board = self._boards.get(game_id)
        if board is not None and oracle.encode(board) == fen:
            logger.debug("board cache hit for game %s", game_id)
            return board

        if board is None:
            logger.debug("board cache miss for game %s", game_id)
        else:
            logger.info("cached board of game %s is behind the store, rebuilding", game_id)
        board = oracle.decode(fen)
        with self._registry_lock:
            self._boards[game_id] = board
        return board

    def peek(self, game_id: GameId) -> Board | None:
        with self._registry_lock:
            return self._boards.get(game_id)

    def evict(self, game_id: GameId) -> None:
        """Drop the game's board. Called when a game ends (or when a cached board can no longer be trusted)."""
        with self._registry_lock:
            if self._boards.pop(game_id, None) is not None:
                logger.debug("evicted game %s from board cache", game_id)

    def clear(self) -> None:
        with self._registry_lock:
            self._boards.clear()
