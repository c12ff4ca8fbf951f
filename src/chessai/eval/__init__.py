"""Static evaluation of a position from one side's point of view.

Pure, deterministic, and side-effect free.
"""

from __future__ import annotations

from typing import Dict, Final, List

from chessai.engine.board import Board
from chessai.engine.piece import Color, Piece, PieceType
from chessai.engine.rules import generate_legal_moves, is_in_check


# Material values in centipawns
PIECE_VALUES: Final[Dict[PieceType, int]] = {
    PieceType.PAWN: 100,
    PieceType.ROOK: 500,
    PieceType.KNIGHT: 300,
    PieceType.BISHOP: 300,
    PieceType.QUEEN: 900,
    PieceType.KING: 10000,
}

MOBILITY_WEIGHT: Final = 5
CHECK_BONUS: Final = 50
ENDGAME_PIECE_COUNT: Final = 10  # fewer pieces than this on the board
KING_ACTIVITY_WEIGHT: Final = 10
PSQT_SCALE: Final = 10

# Piece-square tables, row 0 being the far rank as seen by the owner.
PSQT_P: Final[List[List[int]]] = [
    [0, 0, 0, 0, 0, 0, 0, 0],
    [50, 50, 50, 50, 50, 50, 50, 50],
    [10, 10, 20, 30, 30, 20, 10, 10],
    [5, 5, 10, 25, 25, 10, 5, 5],
    [0, 0, 0, 20, 20, 0, 0, 0],
    [5, -5, -10, 0, 0, -10, -5, 5],
    [5, 10, 10, -20, -20, 10, 10, 5],
    [0, 0, 0, 0, 0, 0, 0, 0],
]

PSQT_N: Final[List[List[int]]] = [
    [-50, -40, -30, -30, -30, -30, -40, -50],
    [-40, -20, 0, 0, 0, 0, -20, -40],
    [-30, 0, 10, 15, 15, 10, 0, -30],
    [-30, 5, 15, 20, 20, 15, 5, -30],
    [-30, 0, 15, 20, 20, 15, 0, -30],
    [-30, 5, 10, 15, 15, 10, 5, -30],
    [-40, -20, 0, 5, 5, 0, -20, -40],
    [-50, -40, -30, -30, -30, -30, -40, -50],
]

PSQT_B: Final[List[List[int]]] = [
    [-20, -10, -10, -10, -10, -10, -10, -20],
    [-10, 0, 0, 0, 0, 0, 0, -10],
    [-10, 0, 5, 10, 10, 5, 0, -10],
    [-10, 5, 5, 10, 10, 5, 5, -10],
    [-10, 0, 10, 10, 10, 10, 0, -10],
    [-10, 10, 10, 10, 10, 10, 10, -10],
    [-10, 5, 0, 0, 0, 0, 5, -10],
    [-20, -10, -10, -10, -10, -10, -10, -20],
]

PSQT_K: Final[List[List[int]]] = [
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-20, -30, -30, -40, -40, -30, -30, -20],
    [-10, -20, -20, -20, -20, -20, -20, -10],
    [20, 20, 0, 0, 0, 0, 20, 20],
    [20, 30, 10, 0, 0, 10, 30, 20],
]

_TABLES: Final[Dict[PieceType, List[List[int]]]] = {
    PieceType.PAWN: PSQT_P,
    PieceType.KNIGHT: PSQT_N,
    PieceType.BISHOP: PSQT_B,
    PieceType.KING: PSQT_K,
}


def positional_value(piece: Piece) -> int:
    """Table bonus for ``piece`` on its square; rooks and queens have none.

    White reads the tables as laid out (its pawns advance toward row 0); Black
    reads them vertically mirrored.
    """
    table = _TABLES.get(piece.piece_type)
    if table is None:
        return 0
    row = piece.row if piece.color is Color.WHITE else 7 - piece.row
    return table[row][piece.col]


def king_activity(piece: Piece) -> int:
    """Manhattan distance of a square from the board center, truncated."""
    return int(abs(3.5 - piece.row) + abs(3.5 - piece.col))


def evaluate(board: Board, color: Color) -> int:
    """Score ``board`` in centipawns from ``color``'s perspective.

    Components:
    - material balance
    - piece-square balance, scaled down by ``PSQT_SCALE``
    - legal-move mobility difference
    - a bonus for giving check and a penalty for being in check
    - in the endgame, king centralization
    """
    opponent = color.opponent
    material = 0
    positional = 0
    pieces = board.pieces()
    for p in pieces:
        sign = 1 if p.color is color else -1
        material += sign * PIECE_VALUES[p.piece_type]
        positional += sign * positional_value(p)
    # truncate toward zero so the score is antisymmetric between colors
    score = material + int(positional / PSQT_SCALE)

    mobility = len(generate_legal_moves(board, color)) - len(generate_legal_moves(board, opponent))
    score += mobility * MOBILITY_WEIGHT

    if is_in_check(board, opponent):
        score += CHECK_BONUS
    if is_in_check(board, color):
        score -= CHECK_BONUS

    if len(pieces) < ENDGAME_PIECE_COUNT:
        for p in pieces:
            if p.piece_type is not PieceType.KING:
                continue
            activity = king_activity(p) * KING_ACTIVITY_WEIGHT
            score += -activity if p.color is color else activity
    return score
