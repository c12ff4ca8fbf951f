from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from chessai.engine.board import Board
from chessai.engine.move import Move
from chessai.engine.piece import Color

from .service import DEFAULT_DEPTH, DEFAULT_TIME_LIMIT_MS, SearchResult, SearchService, check_limits


logger = logging.getLogger(__name__)

OnMove = Callable[[Optional[Move]], None]


class SearchWorker:
    """Runs searches on a background thread and hands back one move each.

    The worker searches a snapshot of the board taken at submit time, so the
    caller keeps using its board freely. Submitting again or calling
    ``cancel`` supersedes the running request; a superseded search finishes
    silently and its result is dropped.
    """

    def __init__(self, service: Optional[SearchService] = None) -> None:
        self._service = service or SearchService()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._gen = 0  # generation id to invalidate stale workers
        self._last: Optional[SearchResult] = None

    def submit(
        self,
        board: Board,
        color: Color,
        on_move: OnMove,
        depth: int = DEFAULT_DEPTH,
        time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
    ) -> int:
        """Start a search for ``color``; ``on_move`` is called from the worker thread.

        ``on_move`` runs once unless the request is superseded first. A search
        that fails is logged and delivers ``None``.

        Returns:
            int: Generation id of this request.

        Raises:
            ValueError: If ``depth`` is below 1 or ``time_limit_ms`` is negative.
        """
        check_limits(depth, time_limit_ms)
        snapshot = board.copy()
        with self._lock:
            self._gen += 1
            gen = self._gen
            self._last = None

        def worker() -> None:
            result: Optional[SearchResult] = None
            try:
                result = self._service.search(snapshot, color, depth, time_limit_ms)
            except Exception:
                logger.exception("search failed gen=%d", gen)
            with self._lock:
                current = gen == self._gen
                if current:
                    self._last = result
            if not current:
                logger.debug("dropping stale search result gen=%d", gen)
                return
            on_move(result.best_move if result is not None else None)

        thread = threading.Thread(target=worker, name=f"chessai-search-{gen}", daemon=True)
        self._thread = thread
        thread.start()
        return gen

    def cancel(self) -> None:
        """Drop the result of the running search, if any."""
        with self._lock:
            self._gen += 1

    def wait(self, timeout: Optional[float] = None) -> Optional[SearchResult]:
        """Join the most recent search thread and return its result, if current."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        with self._lock:
            return self._last

    @property
    def busy(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()
