from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .piece import Color, Piece, PieceType, Square, square_to_str, str_to_square


class MoveKind(Enum):
    NORMAL = "normal"
    CAPTURE = "capture"
    EN_PASSANT = "en_passant"


@dataclass(frozen=True)
class Destination:
    """A legal target square for a selected piece."""

    row: int
    col: int
    kind: MoveKind = MoveKind.NORMAL

    @property
    def square(self) -> Square:
        return (self.row, self.col)


@dataclass(frozen=True)
class Move:
    """Immutable description of one move; applying it is Move Application's job.

    Attributes:
        piece_type (PieceType): Kind of the moving piece.
        color (Color): Color of the moving piece.
        from_sq (Square): Origin square.
        to_sq (Square): Destination square.
        captured (Optional[Piece]): Snapshot of the captured piece, standing on
            its own square (for en passant that is beside the destination).
        is_castling (bool): King move of two columns with the rook hop.
        is_en_passant (bool): Pawn capture of a pawn that just moved two squares.
        is_promotion (bool): Pawn reaching the last rank, always to a queen.
    """

    piece_type: PieceType
    color: Color
    from_sq: Square
    to_sq: Square
    captured: Optional[Piece] = field(default=None, hash=False)
    is_castling: bool = False
    is_en_passant: bool = False
    is_promotion: bool = False

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def kind(self) -> MoveKind:
        if self.is_en_passant:
            return MoveKind.EN_PASSANT
        if self.captured is not None:
            return MoveKind.CAPTURE
        return MoveKind.NORMAL

    def to_coords(self) -> str:
        """Origin and destination squares, e.g. ``"e2e4"`` or ``"e7e8q"``."""
        out = square_to_str(self.from_sq) + square_to_str(self.to_sq)
        return out + "q" if self.is_promotion else out


def parse_coords(text: str) -> Tuple[Square, Square]:
    """Parse ``"e2e4"`` (an optional trailing ``q`` is accepted) into squares.

    Raises:
        ValueError: If the string is not two valid squares, or names an
            under-promotion.
    """
    if len(text) not in (4, 5):
        raise ValueError(f"invalid move string: {text!r}")
    if len(text) == 5 and text[4].lower() != "q":
        raise ValueError("only promotion to a queen is supported")
    return str_to_square(text[0:2]), str_to_square(text[2:4])
