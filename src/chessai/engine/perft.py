from __future__ import annotations

from typing import Dict

from .apply import make_move, unmake_move
from .board import Board
from .piece import Color
from .rules import generate_legal_moves


def perft(board: Board, color: Color, depth: int) -> int:
    """Count leaf nodes of the legal move tree for ``color`` to move.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    The board is walked with make/unmake and is left as it was found.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    nodes = 0
    for m in generate_legal_moves(board, color):
        if depth == 1:
            nodes += 1
            continue
        make_move(board, m)
        try:
            nodes += perft(board, color.opponent, depth - 1)
        finally:
            unmake_move(board, m)
    return nodes


def divide(board: Board, color: Color, depth: int) -> Dict[str, int]:
    """Per-root-move perft counts keyed by coordinate string, for debugging."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out: Dict[str, int] = {}
    for m in generate_legal_moves(board, color):
        make_move(board, m)
        try:
            out[m.to_coords()] = perft(board, color.opponent, depth - 1)
        finally:
            unmake_move(board, m)
    return out
