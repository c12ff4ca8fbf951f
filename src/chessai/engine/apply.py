from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .board import KINGSIDE_ROOK_COL, QUEENSIDE_ROOK_COL, Board
from .move import Move
from .piece import Piece, PieceType


def build_move(board: Board, piece: Piece, row: int, col: int) -> Move:
    """Describe moving ``piece`` to ``(row, col)``, deriving the special flags.

    The move is not validated; callers decide legality first (or filter
    afterwards via simulation).
    """
    target = board.piece_at(row, col)
    is_castling = (
        piece.piece_type is PieceType.KING and row == piece.row and abs(col - piece.col) == 2
    )
    is_pawn = piece.piece_type is PieceType.PAWN
    is_en_passant = is_pawn and col != piece.col and target is None
    captured: Optional[Piece] = None
    if target is not None:
        captured = target.copy()
    elif is_en_passant:
        victim = board.piece_at(piece.row, col)
        if victim is not None:
            captured = victim.copy()
    return Move(
        piece_type=piece.piece_type,
        color=piece.color,
        from_sq=piece.square,
        to_sq=(row, col),
        captured=captured,
        is_castling=is_castling,
        is_en_passant=is_en_passant,
        is_promotion=is_pawn and row == piece.color.opponent.back_rank,
    )


def _castle_rook_cols(move: Move) -> tuple[int, int]:
    if move.to_sq[1] > move.from_sq[1]:
        return KINGSIDE_ROOK_COL, move.to_sq[1] - 1
    return QUEENSIDE_ROOK_COL, move.to_sq[1] + 1


def make_move(board: Board, move: Move) -> None:
    """Apply ``move`` to ``board`` in place, pushing an undo record.

    Handles plain moves and captures, castling (king and rook together),
    en passant (the captured pawn stands beside the destination) and promotion
    to a queen. Updates castling rights and the en-passant target.

    Raises:
        ValueError: If the origin square does not hold the described piece.
    """
    fr, fc = move.from_sq
    tr, tc = move.to_sq
    piece = board.piece_at(fr, fc)
    if piece is None or piece.piece_type is not move.piece_type or piece.color is not move.color:
        raise ValueError(f"no {move.color.label.lower()} {move.piece_type.name.lower()} on origin square")

    prev_rights = board.rights
    prev_ep = board.en_passant
    piece_moved = piece.moved
    board.rights = replace(prev_rights)
    board.en_passant = None

    captured: Optional[Piece] = None
    if move.is_en_passant:
        captured = board.piece_at(fr, tc)
        board.remove_piece(fr, tc)
    elif move.captured is not None:
        captured = board.piece_at(tr, tc)

    rook: Optional[Piece] = None
    rook_moved = False
    if move.is_castling:
        rook_from, rook_to = _castle_rook_cols(move)
        rook = board.piece_at(fr, rook_from)
        if rook is None or rook.piece_type is not PieceType.ROOK:
            raise ValueError("castling rook missing")
        rook_moved = rook.moved
        board.remove_piece(fr, rook_from)
        rook.move_to(fr, rook_to)
        board.add_piece(rook)

    board.remove_piece(fr, fc)
    if move.is_promotion:
        board.add_piece(Piece(PieceType.QUEEN, piece.color, tr, tc, moved=True))
    else:
        piece.move_to(tr, tc)
        board.add_piece(piece)

    board.rights.record_move(piece.piece_type, piece.color, fr, fc)
    if captured is not None:
        board.rights.record_capture(captured)
    if piece.piece_type is PieceType.PAWN and abs(tr - fr) == 2:
        board.en_passant = (tr, tc)

    board.undo_stack.append(
        (move, piece, piece_moved, captured, rook, rook_moved, prev_rights, prev_ep)
    )


def unmake_move(board: Board, move: Move) -> None:
    """Undo the last ``make_move`` exactly, restoring pieces, flags and rights.

    Raises:
        ValueError: If nothing was applied, or ``move`` is not the last move.
    """
    if not board.undo_stack:
        raise ValueError("no move to unmake")
    if board.undo_stack[-1][0] != move:
        raise ValueError("move does not match the last applied move")
    (
        _mv,
        piece,
        piece_moved,
        captured,
        rook,
        rook_moved,
        prev_rights,
        prev_ep,
    ) = board.undo_stack.pop()

    fr, fc = move.from_sq
    tr, tc = move.to_sq
    board.remove_piece(tr, tc)
    piece.place(fr, fc, piece_moved)
    board.add_piece(piece)

    if rook is not None:
        rook_from, rook_to = _castle_rook_cols(move)
        board.remove_piece(fr, rook_to)
        rook.place(fr, rook_from, rook_moved)
        board.add_piece(rook)

    if captured is not None:
        board.add_piece(captured)

    board.rights = prev_rights
    board.en_passant = prev_ep


def apply_copy(board: Board, move: Move) -> Board:
    """Return a copy of ``board`` with ``move`` applied; ``board`` is untouched."""
    child = board.copy()
    make_move(child, move)
    child.undo_stack.clear()
    return child
