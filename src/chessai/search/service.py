from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from chessai.engine.apply import apply_copy
from chessai.engine.board import Board
from chessai.engine.move import Move
from chessai.engine.piece import Color
from chessai.engine.rules import generate_captures, generate_legal_moves, is_in_check
from chessai.eval import PIECE_VALUES, evaluate


logger = logging.getLogger(__name__)

INFINITY = 1_000_000
DEFAULT_DEPTH = 4
DEFAULT_TIME_LIMIT_MS = 5000
QUIESCENCE_DEPTH = 3
PROMOTION_BONUS = 800
CASTLING_BONUS = 50


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score: Optional[int]
    depth: int
    nodes: int
    qnodes: int
    time_ms: int
    timed_out: bool


def move_score(move: Move) -> int:
    """Ordering heuristic: MVV-LVA, promotion, castling and centrality."""
    score = 0
    if move.captured is not None:
        score += PIECE_VALUES[move.captured.piece_type] - PIECE_VALUES[move.piece_type] // 10
    if move.is_promotion:
        score += PROMOTION_BONUS
    if move.is_castling:
        score += CASTLING_BONUS
    row, col = move.to_sq
    score += 7 - int(abs(3.5 - row) + abs(3.5 - col))
    return score


def order_moves(moves: List[Move]) -> List[Move]:
    """Sort best-first; the sort is stable so ties keep generation order."""
    return sorted(moves, key=move_score, reverse=True)


def check_limits(depth: int, time_limit_ms: int) -> None:
    """Raise ``ValueError`` unless ``depth >= 1`` and ``time_limit_ms >= 0``."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    if time_limit_ms < 0:
        raise ValueError("time_limit_ms must be >= 0")


class SearchService:
    """Fixed-depth minimax with alpha-beta pruning and a capture quiescence.

    Every call works on its own copy of the board, so searches may run in
    parallel with each other and with play on the caller's board.
    """

    def get_best_move(
        self,
        board: Board,
        color: Color,
        depth: int = DEFAULT_DEPTH,
        time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
    ) -> Optional[Move]:
        """Best move for ``color``, or ``None`` without legal moves or time."""
        return self.search(board, color, depth, time_limit_ms).best_move

    def search(
        self,
        board: Board,
        color: Color,
        depth: int = DEFAULT_DEPTH,
        time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
    ) -> SearchResult:
        """Search ``depth`` plies for ``color`` within ``time_limit_ms``.

        Args:
            board (Board): Position to search; it is never modified.
            color (Color): Side the search plays for (the maximizing side).
            depth (int): Nominal depth in plies, at least 1.
            time_limit_ms (int): Wall-clock budget in milliseconds.

        Returns:
            SearchResult: Chosen move (``None`` when there is no legal move or
                the budget ran out before any root move was scored) with its
                score and node counters.

        Raises:
            ValueError: If ``depth`` is below 1 or ``time_limit_ms`` is negative.

        Notes:
            When the budget expires inside the tree, the remaining nodes return
            their static evaluation and the best root move found so far wins.
        """
        check_limits(depth, time_limit_ms)

        root = board.copy()
        opponent = color.opponent
        nodes = 0
        qnodes = 0

        start = time.perf_counter()
        budget_s = time_limit_ms / 1000.0
        time_up = False

        def out_of_time() -> bool:
            nonlocal time_up
            if not time_up and time.perf_counter() - start > budget_s:
                time_up = True
            return time_up

        def quiescence(node: Board, alpha: int, beta: int, maximizing: bool, qdepth: int) -> int:
            nonlocal qnodes
            qnodes += 1
            stand_pat = evaluate(node, color)
            if qdepth == 0 or out_of_time():
                return stand_pat

            if maximizing:
                if stand_pat >= beta:
                    return beta
                alpha = max(alpha, stand_pat)
                for mv in order_moves(generate_captures(node, color)):
                    score = quiescence(apply_copy(node, mv), alpha, beta, False, qdepth - 1)
                    if score >= beta:
                        return beta
                    alpha = max(alpha, score)
                return alpha

            if stand_pat <= alpha:
                return alpha
            beta = min(beta, stand_pat)
            for mv in order_moves(generate_captures(node, opponent)):
                score = quiescence(apply_copy(node, mv), alpha, beta, True, qdepth - 1)
                if score <= alpha:
                    return alpha
                beta = min(beta, score)
            return beta

        def minimax(node: Board, d: int, alpha: int, beta: int, maximizing: bool) -> int:
            nonlocal nodes
            nodes += 1
            if out_of_time():
                return evaluate(node, color)
            if d == 0:
                return quiescence(node, alpha, beta, maximizing, QUIESCENCE_DEPTH)

            side = color if maximizing else opponent
            moves = generate_legal_moves(node, side)
            if not moves:
                if is_in_check(node, side):
                    # prefer the shortest mate, delay the longest loss
                    plies = depth - d
                    return -INFINITY + plies if maximizing else INFINITY - plies
                return 0

            if maximizing:
                best = -INFINITY
                for mv in order_moves(moves):
                    best = max(best, minimax(apply_copy(node, mv), d - 1, alpha, beta, False))
                    alpha = max(alpha, best)
                    if beta <= alpha:
                        break
                return best

            best = INFINITY
            for mv in order_moves(moves):
                best = min(best, minimax(apply_copy(node, mv), d - 1, alpha, beta, True))
                beta = min(beta, best)
                if beta <= alpha:
                    break
            return best

        best_move: Optional[Move] = None
        best_value = -INFINITY
        alpha, beta = -INFINITY, INFINITY
        for mv in order_moves(generate_legal_moves(root, color)):
            if out_of_time():
                break
            value = minimax(apply_copy(root, mv), depth - 1, alpha, beta, False)
            if best_move is None or value > best_value:
                best_move = mv
                best_value = value
            alpha = max(alpha, value)

        time_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "search color=%s depth=%d best=%s score=%s nodes=%d qnodes=%d time_ms=%d timed_out=%s",
            color.value,
            depth,
            best_move.to_coords() if best_move is not None else None,
            best_value if best_move is not None else None,
            nodes,
            qnodes,
            time_ms,
            time_up,
        )
        return SearchResult(
            best_move=best_move,
            score=best_value if best_move is not None else None,
            depth=depth,
            nodes=nodes,
            qnodes=qnodes,
            time_ms=time_ms,
            timed_out=time_up,
        )
