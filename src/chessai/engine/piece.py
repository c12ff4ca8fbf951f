from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Tuple

if TYPE_CHECKING:
    from .board import Board


Square = Tuple[int, int]


class Color(Enum):
    """Side to play. White sits on row 7 and advances toward row 0."""

    WHITE = "w"
    BLACK = "b"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row delta of a single pawn advance."""
        return -1 if self is Color.WHITE else 1

    @property
    def back_rank(self) -> int:
        return 7 if self is Color.WHITE else 0

    @property
    def pawn_rank(self) -> int:
        return 6 if self is Color.WHITE else 1

    @property
    def label(self) -> str:
        return "White" if self is Color.WHITE else "Black"


class PieceType(Enum):
    PAWN = "p"
    ROOK = "r"
    KNIGHT = "n"
    BISHOP = "b"
    QUEEN = "q"
    KING = "k"


class UnknownPieceError(KeyError):
    """Raised when a piece kind has no movement rule registered."""


@dataclass(slots=True)
class Piece:
    """A piece standing on the board.

    Identity is positional: two pieces are interchangeable when kind, color,
    square and moved flag agree.
    """

    piece_type: PieceType
    color: Color
    row: int
    col: int
    moved: bool = False

    @property
    def square(self) -> Square:
        return (self.row, self.col)

    def move_to(self, row: int, col: int) -> None:
        self.row = row
        self.col = col
        self.moved = True

    def place(self, row: int, col: int, moved: bool) -> None:
        """Put the piece back on a square with an explicit moved flag."""
        self.row = row
        self.col = col
        self.moved = moved

    def copy(self) -> "Piece":
        return Piece(self.piece_type, self.color, self.row, self.col, self.moved)

    def symbol(self) -> str:
        """FEN letter: uppercase for White, lowercase for Black."""
        ch = self.piece_type.value
        return ch.upper() if self.color is Color.WHITE else ch

    @classmethod
    def from_symbol(cls, ch: str, row: int, col: int, moved: bool = False) -> "Piece":
        try:
            piece_type = PieceType(ch.lower())
        except ValueError as e:
            raise ValueError(f"invalid piece symbol: {ch!r}") from e
        color = Color.WHITE if ch.isupper() else Color.BLACK
        return cls(piece_type, color, row, col, moved)


KNIGHT_OFFSETS: Tuple[Square, ...] = (
    (-2, -1),
    (-2, 1),
    (-1, -2),
    (-1, 2),
    (1, -2),
    (1, 2),
    (2, -1),
    (2, 1),
)
KING_OFFSETS: Tuple[Square, ...] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)
ROOK_DIRECTIONS: Tuple[Square, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
BISHOP_DIRECTIONS: Tuple[Square, ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))
QUEEN_DIRECTIONS: Tuple[Square, ...] = ROOK_DIRECTIONS + BISHOP_DIRECTIONS


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < 8 and 0 <= col < 8


def square_to_str(sq: Square) -> str:
    """Convert a ``(row, col)`` square into algebraic notation.

    Args:
        sq (Square): Square with row 0 on Black's back rank.

    Returns:
        str: Square name such as ``"e2"``.

    Raises:
        ValueError: If ``sq`` lies outside the board.
    """
    row, col = sq
    if not in_bounds(row, col):
        raise ValueError(f"invalid square: {sq!r}")
    return chr(ord("a") + col) + str(8 - row)


def str_to_square(s: str) -> Square:
    """Convert algebraic notation such as ``"e2"`` into ``(row, col)``.

    Raises:
        ValueError: If ``s`` is not a valid square name.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    return (8 - int(s[1]), ord(s[0]) - ord("a"))


def _path_clear(board: "Board", r0: int, c0: int, r1: int, c1: int) -> bool:
    dr = (r1 > r0) - (r1 < r0)
    dc = (c1 > c0) - (c1 < c0)
    r, c = r0 + dr, c0 + dc
    while (r, c) != (r1, c1):
        if board.piece_at(r, c) is not None:
            return False
        r += dr
        c += dc
    return True


def en_passant_allowed(board: "Board", pawn: Piece, row: int, col: int) -> bool:
    """Whether ``pawn`` may capture en passant by stepping onto ``(row, col)``.

    The board's en-passant target is the square of the pawn that just made a
    two-square advance. The capturing pawn must stand beside it on the same
    row and step diagonally forward into its column.
    """
    target = board.en_passant
    if target is None or pawn.piece_type is not PieceType.PAWN:
        return False
    t_row, t_col = target
    victim = board.piece_at(t_row, t_col)
    if victim is None or victim.piece_type is not PieceType.PAWN or victim.color is pawn.color:
        return False
    return (
        pawn.row == t_row
        and col == t_col
        and abs(col - pawn.col) == 1
        and row - pawn.row == pawn.color.forward
        and board.piece_at(row, col) is None
    )


def _pawn_reaches(board: "Board", piece: Piece, row: int, col: int) -> bool:
    step = piece.color.forward
    dr = row - piece.row
    dc = col - piece.col
    target = board.piece_at(row, col)
    if dc == 0:
        if target is not None:
            return False
        if dr == step:
            return True
        return (
            dr == 2 * step
            and not piece.moved
            and board.piece_at(piece.row + step, col) is None
        )
    if abs(dc) == 1 and dr == step:
        if target is not None:
            return target.color is not piece.color
        return en_passant_allowed(board, piece, row, col)
    return False


def _knight_reaches(board: "Board", piece: Piece, row: int, col: int) -> bool:
    dr = abs(row - piece.row)
    dc = abs(col - piece.col)
    return (dr, dc) in ((1, 2), (2, 1))


def _bishop_reaches(board: "Board", piece: Piece, row: int, col: int) -> bool:
    dr = abs(row - piece.row)
    dc = abs(col - piece.col)
    return dr == dc and dr > 0 and _path_clear(board, piece.row, piece.col, row, col)


def _rook_reaches(board: "Board", piece: Piece, row: int, col: int) -> bool:
    if (row == piece.row) == (col == piece.col):
        return False
    return _path_clear(board, piece.row, piece.col, row, col)


def _queen_reaches(board: "Board", piece: Piece, row: int, col: int) -> bool:
    return _rook_reaches(board, piece, row, col) or _bishop_reaches(board, piece, row, col)


def _king_reaches(board: "Board", piece: Piece, row: int, col: int) -> bool:
    return max(abs(row - piece.row), abs(col - piece.col)) == 1


_RULES: Dict[PieceType, Callable[["Board", Piece, int, int], bool]] = {
    PieceType.PAWN: _pawn_reaches,
    PieceType.KNIGHT: _knight_reaches,
    PieceType.BISHOP: _bishop_reaches,
    PieceType.ROOK: _rook_reaches,
    PieceType.QUEEN: _queen_reaches,
    PieceType.KING: _king_reaches,
}


def rule_for(piece_type: PieceType) -> Callable[["Board", Piece, int, int], bool]:
    try:
        return _RULES[piece_type]
    except KeyError as e:
        raise UnknownPieceError(piece_type) from e


def can_reach(board: "Board", piece: Piece, row: int, col: int) -> bool:
    """Geometric and occupancy legality of moving ``piece`` to ``(row, col)``.

    This ignores king safety and castling; both are arbitrated by the rules
    module.

    Args:
        board (Board): Position the piece stands in.
        piece (Piece): Piece to move.
        row (int): Destination row.
        col (int): Destination column.

    Returns:
        bool: ``True`` if the piece's movement pattern reaches the square.

    Raises:
        UnknownPieceError: If the piece kind has no movement rule.
    """
    rule = rule_for(piece.piece_type)
    if not in_bounds(row, col) or (row, col) == piece.square:
        return False
    target = board.piece_at(row, col)
    if target is not None and target.color is piece.color:
        return False
    return rule(board, piece, row, col)


def attacks(board: "Board", piece: Piece, row: int, col: int) -> bool:
    """Whether ``piece`` attacks ``(row, col)`` regardless of its occupant.

    Pawns attack diagonally forward only; every other kind attacks the squares
    it could move to.
    """
    if not in_bounds(row, col) or (row, col) == piece.square:
        return False
    if piece.piece_type is PieceType.PAWN:
        return row - piece.row == piece.color.forward and abs(col - piece.col) == 1
    return rule_for(piece.piece_type)(board, piece, row, col)
