from __future__ import annotations

import pytest

from chessai.engine.apply import build_move, make_move, unmake_move
from chessai.engine.board import STARTPOS_FEN, Board, CastlingRights
from chessai.engine.piece import Color, Piece, PieceType


BACK_RANK = [
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
]


def _assert_piece(b: Board, row: int, col: int, piece_type: PieceType, color: Color) -> None:
    p = b.piece_at(row, col)
    assert p is not None, (row, col)
    assert p.piece_type is piece_type
    assert p.color is color
    assert p.square == (row, col)
    assert p.moved is False


def test_standard_layout_covers_all_64_squares() -> None:
    b = Board.standard()
    for col in range(8):
        _assert_piece(b, 0, col, BACK_RANK[col], Color.BLACK)
        _assert_piece(b, 1, col, PieceType.PAWN, Color.BLACK)
        _assert_piece(b, 6, col, PieceType.PAWN, Color.WHITE)
        _assert_piece(b, 7, col, BACK_RANK[col], Color.WHITE)
    for row in range(2, 6):
        for col in range(8):
            assert b.piece_at(row, col) is None
    assert b.rights == CastlingRights()
    assert b.en_passant is None


def test_out_of_range_reads_are_empty_and_removes_are_noops() -> None:
    b = Board.standard()
    assert b.piece_at(-1, 0) is None
    assert b.piece_at(8, 0) is None
    assert b.piece_at(0, 8) is None
    before = b.copy()
    b.remove_piece(9, 9)
    b.remove_piece(-1, 3)
    assert b == before


def test_remove_piece_is_idempotent() -> None:
    b = Board.standard()
    b.remove_piece(6, 4)
    b.remove_piece(6, 4)
    assert b.is_empty(6, 4)


def test_add_piece_overwrites_occupant() -> None:
    b = Board.standard()
    b.add_piece(Piece(PieceType.QUEEN, Color.BLACK, 6, 0))
    p = b.piece_at(6, 0)
    assert p is not None and p.piece_type is PieceType.QUEEN and p.color is Color.BLACK
    assert len(b.pieces()) == 32


def test_clear_keeps_rights_and_target() -> None:
    b = Board.standard()
    b.rights.white_kingside = False
    b.en_passant = (4, 4)
    b.clear()
    assert b.pieces() == []
    assert b.rights.white_kingside is False
    assert b.en_passant == (4, 4)
    assert b.king(Color.WHITE) is None


def test_clear_drops_undo_history() -> None:
    b = Board.standard()
    pawn = b.piece_at(6, 4)
    assert pawn is not None
    mv = build_move(b, pawn, 4, 4)
    make_move(b, mv)
    b.clear()
    assert b.undo_stack == []
    with pytest.raises(ValueError):
        unmake_move(b, mv)
    assert b.pieces() == []


def test_initialize_standard_resets_rights_and_target() -> None:
    b = Board.standard()
    b.rights = CastlingRights.none()
    b.en_passant = (4, 4)
    b.remove_piece(7, 4)
    b.initialize_standard()
    assert b == Board.standard()


def test_copy_is_independent() -> None:
    b = Board.standard()
    c = b.copy()
    assert c == b
    piece = c.piece_at(6, 4)
    assert piece is not None
    piece.moved = True
    c.rights.black_queenside = False
    c.en_passant = (4, 4)
    orig = b.piece_at(6, 4)
    assert orig is not None and orig.moved is False
    assert b.rights.black_queenside is True
    assert b.en_passant is None
    assert c != b


def test_king_lookup_follows_add_and_remove() -> None:
    b = Board()
    assert b.king(Color.WHITE) is None
    b.add_piece(Piece(PieceType.KING, Color.WHITE, 7, 4))
    king = b.king(Color.WHITE)
    assert king is not None and king.square == (7, 4)
    b.remove_piece(7, 4)
    assert b.king(Color.WHITE) is None
    b.add_piece(Piece(PieceType.KING, Color.WHITE, 5, 5))
    b.add_piece(Piece(PieceType.ROOK, Color.BLACK, 5, 5))
    assert b.king(Color.WHITE) is None


def test_pieces_filters_by_color() -> None:
    b = Board.standard()
    white = b.pieces(Color.WHITE)
    assert len(white) == 16
    assert all(p.color is Color.WHITE for p in white)


def test_standard_board_serializes_to_start_fen() -> None:
    assert Board.standard().to_fen() == STARTPOS_FEN


def test_str_draws_rank_8_first() -> None:
    lines = str(Board.standard()).splitlines()
    assert lines[0] == "8 r n b q k b n r"
    assert lines[7] == "1 R N B Q K B N R"
    assert lines[8] == "  a b c d e f g h"
