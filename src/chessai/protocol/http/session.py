from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from chessai.engine.game import Game


class InMemorySessionStore:
    """Thread-safe in-memory store of games keyed by ``game_id``.

    Nothing is persisted; games live as long as the process. Each game also
    gets its own lock so that moves on one game are serialized while other
    games proceed.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}
        self._game_locks: Dict[str, threading.Lock] = {}

    def create(self, game: Optional[Game] = None) -> str:
        gid = uuid.uuid4().hex
        with self._lock:
            self._games[gid] = game if game is not None else Game.new()
            self._game_locks[gid] = threading.Lock()
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    @contextmanager
    def locked(self, game_id: str) -> Iterator[Optional[Game]]:
        """Hold the game's lock while yielding it (``None`` if unknown)."""
        with self._lock:
            game = self._games.get(game_id)
            lock = self._game_locks.get(game_id)
        if game is None or lock is None:
            yield None
            return
        with lock:
            yield game

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
