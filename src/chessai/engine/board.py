from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .piece import Color, Piece, PieceType, Square, in_bounds, square_to_str, str_to_square


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

BACK_RANK_ORDER = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)
KING_HOME_COL = 4
KINGSIDE_ROOK_COL = 7
QUEENSIDE_ROOK_COL = 0


@dataclass
class CastlingRights:
    """Castling side flags plus the per-color king-moved flags.

    Rights only ever go from allowed to lost while a game is in progress.
    """

    white_kingside: bool = True
    white_queenside: bool = True
    black_kingside: bool = True
    black_queenside: bool = True
    white_king_moved: bool = False
    black_king_moved: bool = False

    @classmethod
    def none(cls) -> "CastlingRights":
        return cls(False, False, False, False)

    def king_moved(self, color: Color) -> bool:
        return self.white_king_moved if color is Color.WHITE else self.black_king_moved

    def allows(self, color: Color, kingside: bool) -> bool:
        if self.king_moved(color):
            return False
        if color is Color.WHITE:
            return self.white_kingside if kingside else self.white_queenside
        return self.black_kingside if kingside else self.black_queenside

    def _drop(self, color: Color, kingside: bool) -> None:
        name = f"{'white' if color is Color.WHITE else 'black'}_{'kingside' if kingside else 'queenside'}"
        setattr(self, name, False)

    def _drop_corner(self, color: Color, row: int, col: int) -> None:
        if row != color.back_rank:
            return
        if col == KINGSIDE_ROOK_COL:
            self._drop(color, True)
        elif col == QUEENSIDE_ROOK_COL:
            self._drop(color, False)

    def record_move(self, piece_type: PieceType, color: Color, from_row: int, from_col: int) -> None:
        """Invalidate rights after a king move or a rook leaving its corner."""
        if piece_type is PieceType.KING:
            if color is Color.WHITE:
                self.white_king_moved = True
            else:
                self.black_king_moved = True
        elif piece_type is PieceType.ROOK:
            self._drop_corner(color, from_row, from_col)

    def record_capture(self, captured: Piece) -> None:
        """A rook taken on its original corner takes that side's right with it."""
        if captured.piece_type is PieceType.ROOK:
            self._drop_corner(captured.color, captured.row, captured.col)

    def to_fen(self) -> str:
        out = ""
        if self.allows(Color.WHITE, True):
            out += "K"
        if self.allows(Color.WHITE, False):
            out += "Q"
        if self.allows(Color.BLACK, True):
            out += "k"
        if self.allows(Color.BLACK, False):
            out += "q"
        return out or "-"

    @classmethod
    def from_fen(cls, field_: str) -> "CastlingRights":
        if field_ == "-":
            return cls.none()
        if not field_ or any(ch not in "KQkq" for ch in field_):
            raise ValueError("invalid castling rights")
        return cls(
            white_kingside="K" in field_,
            white_queenside="Q" in field_,
            black_kingside="k" in field_,
            black_queenside="q" in field_,
        )


@dataclass
class Board:
    """8x8 grid of pieces together with castling rights and en-passant target.

    Notes:
    - Squares are ``(row, col)``; row 0 is Black's back rank, row 7 White's.
    - ``grid`` is indexed ``row * 8 + col``; mutate it through ``add_piece``
      and ``remove_piece`` so the cached king squares stay in step.
    - ``en_passant`` holds the square of the pawn that just advanced two
      squares, not the square behind it.
    """

    grid: List[Optional[Piece]] = field(default_factory=lambda: [None] * 64)
    rights: CastlingRights = field(default_factory=CastlingRights)
    en_passant: Optional[Square] = None
    # undo records pushed by make_move, popped by unmake_move
    undo_stack: List[Tuple] = field(default_factory=list, repr=False, compare=False)
    _kings: Dict[Color, Square] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.grid) != 64:
            raise ValueError("board grid must have 64 squares")
        self._kings = {}
        for piece in self.grid:
            if piece is not None and piece.piece_type is PieceType.KING:
                self._kings[piece.color] = piece.square

    @classmethod
    def standard(cls) -> "Board":
        """Create a board holding the standard starting position."""
        board = cls()
        board.initialize_standard()
        return board

    def initialize_standard(self) -> None:
        self.clear()
        for col, piece_type in enumerate(BACK_RANK_ORDER):
            self.add_piece(Piece(piece_type, Color.BLACK, 0, col))
            self.add_piece(Piece(PieceType.PAWN, Color.BLACK, 1, col))
            self.add_piece(Piece(PieceType.PAWN, Color.WHITE, 6, col))
            self.add_piece(Piece(piece_type, Color.WHITE, 7, col))
        self.rights = CastlingRights()
        self.en_passant = None

    def piece_at(self, row: int, col: int) -> Optional[Piece]:
        if not in_bounds(row, col):
            return None
        return self.grid[row * 8 + col]

    def is_empty(self, row: int, col: int) -> bool:
        return self.piece_at(row, col) is None

    def add_piece(self, piece: Piece) -> None:
        """Place ``piece`` on its own square, replacing any occupant."""
        if not in_bounds(piece.row, piece.col):
            raise ValueError(f"piece off the board: {piece!r}")
        self._forget_king(piece.row, piece.col)
        self.grid[piece.row * 8 + piece.col] = piece
        if piece.piece_type is PieceType.KING:
            self._kings[piece.color] = piece.square

    def remove_piece(self, row: int, col: int) -> None:
        if not in_bounds(row, col):
            return
        self._forget_king(row, col)
        self.grid[row * 8 + col] = None

    def _forget_king(self, row: int, col: int) -> None:
        occupant = self.grid[row * 8 + col]
        if occupant is not None and occupant.piece_type is PieceType.KING:
            if self._kings.get(occupant.color) == (row, col):
                del self._kings[occupant.color]

    def clear(self) -> None:
        """Empty every square; rights and en-passant target are kept."""
        self.grid = [None] * 64
        self._kings = {}
        # undo records refer to pieces that are gone now
        self.undo_stack.clear()

    def copy(self) -> "Board":
        """Independent deep copy: pieces, rights and en-passant target.

        The undo history is not carried over.
        """
        return Board(
            grid=[p.copy() if p is not None else None for p in self.grid],
            rights=replace(self.rights),
            en_passant=self.en_passant,
        )

    def pieces(self, color: Optional[Color] = None) -> List[Piece]:
        """Snapshot list of pieces on the board, optionally of one color."""
        return [p for p in self.grid if p is not None and (color is None or p.color is color)]

    def king(self, color: Color) -> Optional[Piece]:
        sq = self._kings.get(color)
        if sq is None:
            return None
        return self.piece_at(*sq)

    def __str__(self) -> str:
        lines = []
        for row in range(8):
            cells = []
            for col in range(8):
                p = self.grid[row * 8 + col]
                cells.append(p.symbol() if p is not None else ".")
            lines.append(f"{8 - row} " + " ".join(cells))
        lines.append("  a b c d e f g h")
        return "\n".join(lines)

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from a FEN string, ignoring side to move and counters.

        See ``parse_fen`` for the full parse.
        """
        board, _, _ = parse_fen(fen)
        return board

    def to_fen(self, side_to_move: Color = Color.WHITE, fullmove_number: int = 1) -> str:
        """Serialize the position into FEN.

        Args:
            side_to_move (Color): Side written into the second field.
            fullmove_number (int): Move counter written into the last field.

        Returns:
            str: FEN string. The halfmove clock is not tracked and is always 0.
        """
        ranks: List[str] = []
        for row in range(8):
            run = 0
            out = []
            for col in range(8):
                p = self.grid[row * 8 + col]
                if p is None:
                    run += 1
                    continue
                if run:
                    out.append(str(run))
                    run = 0
                out.append(p.symbol())
            if run:
                out.append(str(run))
            ranks.append("".join(out))
        ep = "-"
        if self.en_passant is not None:
            # FEN names the square the pawn skipped over
            row, col = self.en_passant
            victim = self.piece_at(row, col)
            if victim is not None:
                ep = square_to_str((row - victim.color.forward, col))
        return (
            f"{'/'.join(ranks)} {side_to_move.value} {self.rights.to_fen()} {ep} 0 "
            f"{fullmove_number}"
        )


def _derive_moved(piece: Piece, rights: CastlingRights) -> bool:
    color = piece.color
    home = color.back_rank
    if piece.piece_type is PieceType.PAWN:
        return piece.row != color.pawn_rank
    if piece.piece_type is PieceType.KING:
        if piece.square != (home, KING_HOME_COL):
            return True
        return not (rights.allows(color, True) or rights.allows(color, False))
    if piece.piece_type is PieceType.ROOK:
        if piece.square == (home, KINGSIDE_ROOK_COL):
            return not rights.allows(color, True)
        if piece.square == (home, QUEENSIDE_ROOK_COL):
            return not rights.allows(color, False)
        return True
    return False


def parse_fen(fen: str) -> Tuple[Board, Color, int]:
    """Parse a FEN string into a board, the side to move and the move number.

    Args:
        fen (str): FEN string. The halfmove clock field is accepted and ignored.

    Returns:
        Tuple[Board, Color, int]: Board, side to move and fullmove number.

    Raises:
        ValueError: If the string is malformed, a side lacks exactly one king,
            or castling rights and en-passant square contradict the placement.

    Notes:
        Moved flags are derived from the placement: pawns off their start rank,
        and kings or rooks away from home or without a matching right, count as
        moved.
    """
    if not fen or not isinstance(fen, str):
        raise ValueError("FEN must be a non-empty string")
    parts = fen.strip().split()
    if len(parts) != 6:
        raise ValueError("FEN must have 6 fields")
    placement, stm, castling, ep, halfmove, fullmove = parts

    ranks = placement.split("/")
    if len(ranks) != 8:
        raise ValueError("FEN board must have 8 ranks")
    pieces: List[Piece] = []
    for row, rank in enumerate(ranks):
        col = 0
        for ch in rank:
            if ch.isdigit():
                n = int(ch)
                if n < 1 or n > 8:
                    raise ValueError("invalid empty count in FEN rank")
                col += n
                continue
            if col >= 8:
                raise ValueError("too many squares in FEN rank")
            pieces.append(Piece.from_symbol(ch, row, col))
            col += 1
        if col != 8:
            raise ValueError("rank does not sum to 8 squares in FEN")

    if stm not in ("w", "b"):
        raise ValueError("side to move must be 'w' or 'b'")
    side = Color(stm)
    rights = CastlingRights.from_fen(castling)

    for color in Color:
        kings = [p for p in pieces if p.piece_type is PieceType.KING and p.color is color]
        if len(kings) != 1:
            raise ValueError(f"FEN must contain exactly one {color.label.lower()} king")
    # rights without king and rook on their home squares are dropped
    by_square = {p.square: p for p in pieces}
    for color in Color:
        home = color.back_rank
        king = by_square.get((home, KING_HOME_COL))
        king_home = king is not None and king.piece_type is PieceType.KING and king.color is color
        for kingside, rook_col in ((True, KINGSIDE_ROOK_COL), (False, QUEENSIDE_ROOK_COL)):
            rook = by_square.get((home, rook_col))
            rook_home = rook is not None and rook.piece_type is PieceType.ROOK and rook.color is color
            if not (king_home and rook_home):
                rights._drop(color, kingside)
    for p in pieces:
        p.moved = _derive_moved(p, rights)

    en_passant: Optional[Square] = None
    if ep != "-":
        try:
            skipped_row, ep_col = str_to_square(ep)
        except ValueError as e:
            raise ValueError("invalid en passant square") from e
        # the pawn that moved two squares belongs to the side not on move
        mover = side.opponent
        if skipped_row != mover.pawn_rank + mover.forward:
            raise ValueError("invalid en passant square rank")
        en_passant = (skipped_row + mover.forward, ep_col)
        victim = by_square.get(en_passant)
        if victim is None or victim.piece_type is not PieceType.PAWN or victim.color is not mover:
            raise ValueError("en passant square has no pawn behind it")

    try:
        halfmove_clock = int(halfmove)
        fullmove_number = int(fullmove)
    except ValueError as e:
        raise ValueError("invalid move counters in FEN") from e
    if halfmove_clock < 0 or fullmove_number <= 0:
        raise ValueError("invalid move counters in FEN")

    board = Board(rights=rights, en_passant=en_passant)
    for p in pieces:
        board.add_piece(p)
    return board, side, fullmove_number
