from __future__ import annotations

import pytest

from chessai.engine.apply import apply_copy
from chessai.engine.board import STARTPOS_FEN, Board, parse_fen
from chessai.engine.move import MoveKind
from chessai.engine.piece import Color, square_to_str
from chessai.engine.rules import (
    can_make_move,
    generate_captures,
    generate_legal_moves,
    has_legal_move,
    is_in_check,
    is_in_checkmate,
    is_in_stalemate,
    is_square_attacked,
    legal_destinations,
    legal_moves_for,
    terminal_state,
)


KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"


def moves_set(b: Board, color: Color) -> set[str]:
    return {m.to_coords() for m in generate_legal_moves(b, color)}


def test_start_position_is_quiet_for_both_sides() -> None:
    b = Board.standard()
    for color in Color:
        assert not is_in_check(b, color)
        assert not is_in_checkmate(b, color)
        assert not is_in_stalemate(b, color)
        assert len(generate_legal_moves(b, color)) == 20


def test_square_attacks_in_start_position() -> None:
    b = Board.standard()
    # e3 is covered by the d2 and f2 pawns
    assert is_square_attacked(b, 5, 4, Color.WHITE)
    assert not is_square_attacked(b, 5, 4, Color.BLACK)
    # e4 is out of reach for everything
    assert not is_square_attacked(b, 4, 4, Color.WHITE)


def test_no_king_means_no_check() -> None:
    assert not is_in_check(Board(), Color.WHITE)


def test_pinned_bishop_has_no_moves() -> None:
    b = Board.from_fen("4k3/4r3/8/8/8/8/4B3/4K3 w - - 0 1")
    bishop = b.piece_at(6, 4)
    assert bishop is not None
    assert legal_moves_for(b, bishop) == []
    assert not can_make_move(b, bishop, 5, 3)


def test_pinned_rook_may_slide_along_the_pin() -> None:
    b = Board.from_fen("4k3/4r3/8/8/8/8/4R3/4K3 w - - 0 1")
    rook = b.piece_at(6, 4)
    assert rook is not None
    targets = {square_to_str(m.to_sq) for m in legal_moves_for(b, rook)}
    assert targets == {"e3", "e4", "e5", "e6", "e7"}


def test_king_may_not_step_into_attack() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/3r4/4K3 w - - 0 1")
    assert moves_set(b, Color.WHITE) == {"e1d2", "e1f1"}


def test_check_must_be_answered() -> None:
    # rook a1 checks along the first rank; only king steps off the rank help
    b = Board.from_fen("4k3/8/8/8/8/8/7P/r3K3 w - - 0 1")
    assert is_in_check(b, Color.WHITE)
    assert moves_set(b, Color.WHITE) == {"e1d2", "e1e2", "e1f2"}


@pytest.mark.parametrize(
    "fen",
    [
        STARTPOS_FEN,
        KIWIPETE,
        "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1",
        "8/8/8/KPp4r/8/8/8/4k3 w - c6 0 1",
        "4k3/4r3/8/8/8/8/4B3/4K3 w - - 0 1",
    ],
)
def test_no_legal_move_leaves_own_king_attacked(fen: str) -> None:
    b, side, _ = parse_fen(fen)
    for color in (side, side.opponent):
        for m in generate_legal_moves(b, color):
            child = apply_copy(b, m)
            assert not is_in_check(child, color), m.to_coords()


def test_back_rank_mate() -> None:
    b = Board.from_fen("R5k1/5ppp/8/8/8/8/8/6K1 b - - 0 1")
    assert is_in_check(b, Color.BLACK)
    assert is_in_checkmate(b, Color.BLACK)
    assert not is_in_stalemate(b, Color.BLACK)
    assert terminal_state(b, Color.BLACK) == (True, True, False)


def test_fools_mate() -> None:
    b = Board.from_fen("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
    assert is_in_checkmate(b, Color.WHITE)
    assert not has_legal_move(b, Color.WHITE)


def test_stalemate() -> None:
    b = Board.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert not is_in_check(b, Color.BLACK)
    assert is_in_stalemate(b, Color.BLACK)
    assert not is_in_checkmate(b, Color.BLACK)
    assert terminal_state(b, Color.BLACK) == (False, False, True)


def test_protected_queen_mates() -> None:
    b = Board.from_fen("7k/6Q1/6K1/8/8/8/8/8 b - - 0 1")
    assert is_in_checkmate(b, Color.BLACK)


def test_destinations_are_tagged_by_kind() -> None:
    b = Board.from_fen("4k3/8/8/3Pp3/8/8/8/4K3 w - e6 0 1")
    dests = {(square_to_str(d.square), d.kind) for d in legal_destinations(b, 3, 3)}
    assert dests == {("d6", MoveKind.NORMAL), ("e6", MoveKind.EN_PASSANT)}

    b2 = Board.from_fen("4k3/8/8/2r5/3P4/8/8/4K3 w - - 0 1")
    dests2 = {(square_to_str(d.square), d.kind) for d in legal_destinations(b2, 4, 3)}
    assert dests2 == {("d5", MoveKind.NORMAL), ("c5", MoveKind.CAPTURE)}


def test_destinations_of_empty_square_are_empty() -> None:
    assert legal_destinations(Board.standard(), 4, 4) == []


def test_captures_only_lists_captures_and_en_passant() -> None:
    b = Board.from_fen("4k3/8/8/2rPp3/8/8/8/4K3 w - e6 0 1")
    caps = {m.to_coords() for m in generate_captures(b, Color.WHITE)}
    assert caps == {"d5e6"}
    b2 = Board.from_fen("4k3/8/2r5/3P4/8/8/8/4K3 w - - 0 1")
    assert {m.to_coords() for m in generate_captures(b2, Color.WHITE)} == {"d5c6"}
    assert generate_captures(Board.standard(), Color.WHITE) == []
