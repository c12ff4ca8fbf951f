from __future__ import annotations

from typing import Iterator, List, Tuple

from .apply import build_move, make_move, unmake_move
from .board import KING_HOME_COL, KINGSIDE_ROOK_COL, QUEENSIDE_ROOK_COL, Board
from .move import Destination, Move
from .piece import (
    BISHOP_DIRECTIONS,
    KING_OFFSETS,
    KNIGHT_OFFSETS,
    QUEEN_DIRECTIONS,
    ROOK_DIRECTIONS,
    Color,
    Piece,
    PieceType,
    Square,
    can_reach,
    en_passant_allowed,
    in_bounds,
)


_ORTHOGONAL_SLIDERS = (PieceType.ROOK, PieceType.QUEEN)
_DIAGONAL_SLIDERS = (PieceType.BISHOP, PieceType.QUEEN)


def is_square_attacked(board: Board, row: int, col: int, by_color: Color) -> bool:
    """Return True if any ``by_color`` piece attacks ``(row, col)``.

    Scans outward from the square: pawn and knight and king offsets first,
    then slider rays up to the first occupant.
    """
    pawn_row = row - by_color.forward
    for dc in (-1, 1):
        p = board.piece_at(pawn_row, col + dc)
        if p is not None and p.color is by_color and p.piece_type is PieceType.PAWN:
            return True
    for dr, dc in KNIGHT_OFFSETS:
        p = board.piece_at(row + dr, col + dc)
        if p is not None and p.color is by_color and p.piece_type is PieceType.KNIGHT:
            return True
    for dr, dc in KING_OFFSETS:
        p = board.piece_at(row + dr, col + dc)
        if p is not None and p.color is by_color and p.piece_type is PieceType.KING:
            return True
    for directions, sliders in (
        (ROOK_DIRECTIONS, _ORTHOGONAL_SLIDERS),
        (BISHOP_DIRECTIONS, _DIAGONAL_SLIDERS),
    ):
        for dr, dc in directions:
            r, c = row + dr, col + dc
            while in_bounds(r, c):
                p = board.piece_at(r, c)
                if p is not None:
                    if p.color is by_color and p.piece_type in sliders:
                        return True
                    break
                r += dr
                c += dc
    return False


def is_in_check(board: Board, color: Color) -> bool:
    king = board.king(color)
    if king is None:
        return False
    return is_square_attacked(board, king.row, king.col, color.opponent)


def leaves_king_safe(board: Board, move: Move) -> bool:
    """Simulate ``move`` and report whether the mover's king is not attacked."""
    make_move(board, move)
    try:
        return not is_in_check(board, move.color)
    finally:
        unmake_move(board, move)


def can_move_to(board: Board, piece: Piece, row: int, col: int) -> bool:
    """Movement pattern allows the move and it does not leave the king in check."""
    if not can_reach(board, piece, row, col):
        return False
    return leaves_king_safe(board, build_move(board, piece, row, col))


def can_castle(board: Board, king: Piece, target_col: int) -> bool:
    """Whether ``king`` may castle by moving to ``target_col`` on its back rank.

    Args:
        board (Board): Current position.
        king (Piece): The king asked to castle.
        target_col (int): Destination column, two columns from the king.

    Returns:
        bool: ``True`` when the side's castling right is intact, its rook is on
            the corner, the squares between are empty, and the king is not in
            check and does not pass through or land on an attacked square.
    """
    if king.piece_type is not PieceType.KING:
        return False
    row = king.color.back_rank
    if king.square != (row, KING_HOME_COL) or abs(target_col - king.col) != 2:
        return False
    kingside = target_col > king.col
    if not board.rights.allows(king.color, kingside):
        return False
    rook_col = KINGSIDE_ROOK_COL if kingside else QUEENSIDE_ROOK_COL
    rook = board.piece_at(row, rook_col)
    if rook is None or rook.piece_type is not PieceType.ROOK or rook.color is not king.color:
        return False
    lo, hi = sorted((rook_col, king.col))
    if any(board.piece_at(row, c) is not None for c in range(lo + 1, hi)):
        return False
    if is_in_check(board, king.color):
        return False

    step = 1 if kingside else -1
    home_col, moved = king.col, king.moved
    board.remove_piece(row, home_col)
    king.place(row, home_col + step, moved)
    board.add_piece(king)
    try:
        transit_attacked = is_in_check(board, king.color)
    finally:
        board.remove_piece(row, home_col + step)
        king.place(row, home_col, moved)
        board.add_piece(king)
    if transit_attacked:
        return False
    return leaves_king_safe(board, build_move(board, king, row, target_col))


def can_en_passant(board: Board, pawn: Piece, row: int, col: int) -> bool:
    """Pattern check for an en-passant capture onto ``(row, col)``."""
    return en_passant_allowed(board, pawn, row, col)


def can_make_move(board: Board, piece: Piece, row: int, col: int) -> bool:
    """Full legality of moving ``piece`` to ``(row, col)``, special moves included."""
    if piece.piece_type is PieceType.KING and row == piece.row and abs(col - piece.col) == 2:
        return can_castle(board, piece, col)
    return can_move_to(board, piece, row, col)


def _candidate_squares(board: Board, piece: Piece) -> Iterator[Square]:
    """Squares the piece's pattern could possibly reach; filtered later."""
    row, col = piece.row, piece.col
    kind = piece.piece_type
    if kind is PieceType.PAWN:
        step = piece.color.forward
        yield (row + step, col)
        yield (row + 2 * step, col)
        yield (row + step, col - 1)
        yield (row + step, col + 1)
    elif kind is PieceType.KNIGHT:
        for dr, dc in KNIGHT_OFFSETS:
            yield (row + dr, col + dc)
    elif kind is PieceType.KING:
        for dr, dc in KING_OFFSETS:
            yield (row + dr, col + dc)
        yield (row, col + 2)
        yield (row, col - 2)
    else:
        directions = {
            PieceType.ROOK: ROOK_DIRECTIONS,
            PieceType.BISHOP: BISHOP_DIRECTIONS,
            PieceType.QUEEN: QUEEN_DIRECTIONS,
        }[kind]
        for dr, dc in directions:
            r, c = row + dr, col + dc
            while in_bounds(r, c):
                yield (r, c)
                if board.piece_at(r, c) is not None:
                    break
                r += dr
                c += dc


def legal_moves_for(board: Board, piece: Piece) -> List[Move]:
    moves: List[Move] = []
    for row, col in _candidate_squares(board, piece):
        if in_bounds(row, col) and can_make_move(board, piece, row, col):
            moves.append(build_move(board, piece, row, col))
    return moves


def generate_legal_moves(board: Board, color: Color) -> List[Move]:
    """All legal moves for ``color``, in board-scan order (row-major)."""
    moves: List[Move] = []
    for piece in board.pieces(color):
        moves.extend(legal_moves_for(board, piece))
    return moves


def generate_captures(board: Board, color: Color) -> List[Move]:
    """Legal captures for ``color``, en passant included; quiescence uses these."""
    moves: List[Move] = []
    for piece in board.pieces(color):
        for row, col in _candidate_squares(board, piece):
            target = board.piece_at(row, col)
            if target is None or target.color is color:
                if not (
                    piece.piece_type is PieceType.PAWN
                    and target is None
                    and en_passant_allowed(board, piece, row, col)
                ):
                    continue
            if can_move_to(board, piece, row, col):
                moves.append(build_move(board, piece, row, col))
    return moves


def legal_destinations(board: Board, row: int, col: int) -> List[Destination]:
    """Legal target squares for the piece on ``(row, col)``, tagged by kind."""
    piece = board.piece_at(row, col)
    if piece is None:
        return []
    return [Destination(m.to_sq[0], m.to_sq[1], m.kind) for m in legal_moves_for(board, piece)]


def has_legal_move(board: Board, color: Color) -> bool:
    for piece in board.pieces(color):
        for row, col in _candidate_squares(board, piece):
            if in_bounds(row, col) and can_make_move(board, piece, row, col):
                return True
    return False


def is_in_checkmate(board: Board, color: Color) -> bool:
    return is_in_check(board, color) and not has_legal_move(board, color)


def is_in_stalemate(board: Board, color: Color) -> bool:
    return not is_in_check(board, color) and not has_legal_move(board, color)


def terminal_state(board: Board, color: Color) -> Tuple[bool, bool, bool]:
    """``(in_check, checkmate, stalemate)`` for ``color`` with one move scan."""
    in_check = is_in_check(board, color)
    if has_legal_move(board, color):
        return in_check, False, False
    return in_check, in_check, not in_check
