from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from chessai.search.service import DEFAULT_DEPTH, DEFAULT_TIME_LIMIT_MS, SearchService

from .apply import build_move, make_move
from .board import Board, parse_fen
from .move import Destination, Move
from .piece import Color, Piece, Square
from .rules import can_make_move, legal_destinations, terminal_state


logger = logging.getLogger(__name__)


class IllegalMoveError(ValueError):
    """The requested move is not legal in the current position."""


class GameOverError(ValueError):
    """A move was requested after checkmate or stalemate."""


@dataclass(frozen=True)
class MoveOutcome:
    move: Move
    next_to_move: Color
    in_check: bool
    checkmate: bool
    stalemate: bool

    @property
    def game_over(self) -> bool:
        return self.checkmate or self.stalemate


@dataclass
class Game:
    """Game wrapper around a board: turn order, move number and game end.

    Responsibility: validate and apply moves for the side to move, report the
    resulting check/checkmate/stalemate state, and ask the search for moves.
    """

    board: Board
    side_to_move: Color = Color.WHITE
    move_number: int = 1
    history: List[Move] = field(default_factory=list)
    # status of the side to move, refreshed after every position change
    in_check: bool = field(default=False, init=False)
    checkmate: bool = field(default=False, init=False)
    stalemate: bool = field(default=False, init=False)

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.standard())

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        board, side, move_number = parse_fen(fen)
        return cls(board=board, side_to_move=side, move_number=move_number)

    def __post_init__(self) -> None:
        self._refresh_state()

    def to_fen(self) -> str:
        return self.board.to_fen(self.side_to_move, self.move_number)

    @property
    def game_over(self) -> bool:
        return self.checkmate or self.stalemate

    @property
    def winner(self) -> Optional[Color]:
        return self.side_to_move.opponent if self.checkmate else None

    def _refresh_state(self) -> None:
        self.in_check, self.checkmate, self.stalemate = terminal_state(
            self.board, self.side_to_move
        )

    def reset(self) -> None:
        """Back to the starting position with White to move."""
        self.board.initialize_standard()
        self.side_to_move = Color.WHITE
        self.move_number = 1
        self.history.clear()
        self._refresh_state()

    def load_fen(self, fen: str) -> None:
        board, side, move_number = parse_fen(fen)
        self.board = board
        self.side_to_move = side
        self.move_number = move_number
        self.history.clear()
        self._refresh_state()

    def piece_at(self, sq: Square) -> Optional[Piece]:
        return self.board.piece_at(*sq)

    def snapshot(self) -> List[List[Optional[str]]]:
        """8x8 rows of FEN piece letters (``None`` for empty), row 0 first."""
        rows: List[List[Optional[str]]] = []
        for row in range(8):
            cells = [self.board.piece_at(row, col) for col in range(8)]
            rows.append([p.symbol() if p is not None else None for p in cells])
        return rows

    def legal_destinations(self, sq: Square) -> List[Destination]:
        """Where the piece on ``sq`` may go now; empty unless it is its side's turn."""
        piece = self.piece_at(sq)
        if piece is None or piece.color is not self.side_to_move or self.game_over:
            return []
        return legal_destinations(self.board, *sq)

    def selectable(self, sq: Square) -> bool:
        """A piece of the side to move that has at least one legal move.

        While in check this is exactly the set of pieces that can help.
        """
        return bool(self.legal_destinations(sq))

    def play(self, from_sq: Square, to_sq: Square) -> MoveOutcome:
        """Move the piece on ``from_sq`` to ``to_sq`` for the side to move.

        Raises:
            GameOverError: If the game has already ended.
            IllegalMoveError: If there is no own piece on ``from_sq`` or the
                move is not legal.
        """
        if self.game_over:
            raise GameOverError("game is over")
        piece = self.piece_at(from_sq)
        if piece is None:
            raise IllegalMoveError("no piece on origin square")
        if piece.color is not self.side_to_move:
            raise IllegalMoveError(f"{self.side_to_move.label} to move")
        if not can_make_move(self.board, piece, *to_sq):
            raise IllegalMoveError("illegal move")
        return self._commit(build_move(self.board, piece, *to_sq))

    def apply_move(self, move: Move) -> MoveOutcome:
        """Apply a move built elsewhere (e.g. by the search) after re-validating it."""
        if self.game_over:
            raise GameOverError("game is over")
        piece = self.piece_at(move.from_sq)
        if (
            piece is None
            or piece.color is not self.side_to_move
            or move.color is not self.side_to_move
            or not can_make_move(self.board, piece, *move.to_sq)
            or build_move(self.board, piece, *move.to_sq) != move
        ):
            raise IllegalMoveError("illegal move")
        return self._commit(move)

    def _commit(self, move: Move) -> MoveOutcome:
        make_move(self.board, move)
        # interactive moves are permanent; no undo record is kept
        self.board.undo_stack.clear()
        self.history.append(move)
        if self.side_to_move is Color.BLACK:
            self.move_number += 1
        self.side_to_move = self.side_to_move.opponent
        self._refresh_state()
        logger.debug("played %s status=%r", move.to_coords(), self.status_text())
        return MoveOutcome(
            move=move,
            next_to_move=self.side_to_move,
            in_check=self.in_check,
            checkmate=self.checkmate,
            stalemate=self.stalemate,
        )

    def best_move(
        self,
        color: Optional[Color] = None,
        depth: int = DEFAULT_DEPTH,
        time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
        service: Optional[SearchService] = None,
    ) -> Optional[Move]:
        service = service or SearchService()
        return service.get_best_move(self.board, color or self.side_to_move, depth, time_limit_ms)

    def play_ai_move(
        self,
        depth: int = DEFAULT_DEPTH,
        time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
        service: Optional[SearchService] = None,
    ) -> Optional[MoveOutcome]:
        """Let the search choose and play a move for the side to move.

        Returns ``None`` when the search found nothing to play.
        """
        if self.game_over:
            raise GameOverError("game is over")
        move = self.best_move(self.side_to_move, depth, time_limit_ms, service)
        if move is None:
            return None
        return self.apply_move(move)

    def status_text(self) -> str:
        if self.checkmate:
            return f"Checkmate! {self.side_to_move.opponent.label} wins!"
        if self.stalemate:
            return "Stalemate! Game is a draw."
        text = f"{self.side_to_move.label} to move"
        if self.in_check:
            text += " (in check)"
        return text

    def move_history(self) -> List[str]:
        return [m.to_coords() for m in self.history]
