from __future__ import annotations

import threading
from typing import List, Optional

import pytest

from chessai.engine.board import Board, parse_fen
from chessai.engine.move import Move
from chessai.engine.piece import Color
from chessai.search import SearchResult, SearchService, SearchWorker


MATE_IN_ONE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"


class GatedService(SearchService):
    """Blocks every search until the test opens the gate."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.gate = threading.Event()

    def search(self, board, color, depth=2, time_limit_ms=60_000) -> SearchResult:
        self.started.set()
        assert self.gate.wait(10)
        return super().search(board, color, depth, time_limit_ms)


def test_worker_delivers_best_move() -> None:
    b, side, _ = parse_fen(MATE_IN_ONE)
    got: List[Optional[Move]] = []
    done = threading.Event()

    def on_move(mv: Optional[Move]) -> None:
        got.append(mv)
        done.set()

    worker = SearchWorker()
    worker.submit(b, side, on_move, depth=2, time_limit_ms=60_000)
    assert done.wait(60)
    result = worker.wait(10)
    assert result is not None and result.best_move is not None
    assert got[0] is not None and got[0].to_coords() == "a1a8"
    assert result.best_move == got[0]


def test_cancelled_search_is_dropped() -> None:
    b, side, _ = parse_fen(MATE_IN_ONE)
    service = GatedService()
    got: List[Optional[Move]] = []
    worker = SearchWorker(service)
    worker.submit(b, side, got.append, depth=2, time_limit_ms=60_000)
    assert service.started.wait(10)
    assert worker.busy
    worker.cancel()
    service.gate.set()
    assert worker.wait(30) is None
    assert got == []
    assert not worker.busy


def test_newer_submit_supersedes_older_one() -> None:
    b, side, _ = parse_fen(MATE_IN_ONE)
    service = GatedService()
    got: List[Optional[Move]] = []
    lock = threading.Lock()

    def on_move(mv: Optional[Move]) -> None:
        with lock:
            got.append(mv)

    worker = SearchWorker(service)
    first = worker.submit(b, side, on_move, depth=2, time_limit_ms=60_000)
    assert service.started.wait(10)
    first_thread = worker._thread
    second = worker.submit(b, side, on_move, depth=2, time_limit_ms=60_000)
    assert second > first
    service.gate.set()
    assert first_thread is not None
    first_thread.join(30)
    result = worker.wait(30)
    assert result is not None
    assert len(got) == 1
    assert got[0] is not None and got[0].to_coords() == "a1a8"


def test_board_can_change_after_submit() -> None:
    b, side, _ = parse_fen(MATE_IN_ONE)
    service = GatedService()
    got: List[Optional[Move]] = []
    worker = SearchWorker(service)
    worker.submit(b, side, got.append, depth=2, time_limit_ms=60_000)
    assert service.started.wait(10)
    b.clear()
    service.gate.set()
    worker.wait(30)
    assert got and got[0] is not None and got[0].to_coords() == "a1a8"


class FailingService(SearchService):
    def search(self, board, color, depth=2, time_limit_ms=60_000) -> SearchResult:
        raise RuntimeError("search exploded")


def test_failed_search_still_delivers_once() -> None:
    got: List[Optional[Move]] = []
    done = threading.Event()

    def on_move(mv: Optional[Move]) -> None:
        got.append(mv)
        done.set()

    worker = SearchWorker(FailingService())
    worker.submit(Board.standard(), Color.WHITE, on_move, depth=2, time_limit_ms=1000)
    assert done.wait(10)
    assert worker.wait(10) is None
    assert got == [None]
    assert not worker.busy


@pytest.mark.parametrize("depth,ms", [(0, 1000), (2, -1)])
def test_submit_rejects_bad_limits_in_the_caller(depth: int, ms: int) -> None:
    got: List[Optional[Move]] = []
    worker = SearchWorker()
    with pytest.raises(ValueError):
        worker.submit(Board.standard(), Color.WHITE, got.append, depth=depth, time_limit_ms=ms)
    assert not worker.busy
    assert worker.wait(1) is None
    assert got == []
