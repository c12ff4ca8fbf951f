from __future__ import annotations

import logging
from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from chessai import __version__
from chessai.config import Settings, configure_logging
from chessai.engine.board import STARTPOS_FEN, parse_fen
from chessai.engine.game import Game, GameOverError, IllegalMoveError
from chessai.engine.move import parse_coords
from chessai.engine.perft import perft as perft_nodes
from chessai.engine.piece import Color, square_to_str, str_to_square
from chessai.search.service import SearchService

from .error import (
    exception_handler,
    game_over_handler,
    http_exception_handler,
    illegal_move_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)

MAX_SEARCH_DEPTH = 6
MAX_PERFT_DEPTH = 4


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Origin and destination squares, e.g. e2e4")


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_SEARCH_DEPTH)
    movetime_ms: Optional[int] = Field(default=None, ge=1, le=600_000)
    color: Optional[Literal["white", "black"]] = Field(
        default=None, description="Side to search for; defaults to the side to move"
    )


class AIMoveRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_SEARCH_DEPTH)
    movetime_ms: Optional[int] = Field(default=None, ge=1, le=600_000)


class PerftRequest(BaseModel):
    fen: str = STARTPOS_FEN
    depth: int = Field(default=1, ge=0, le=MAX_PERFT_DEPTH)


class DestinationModel(BaseModel):
    square: str
    kind: str


class DestinationsResponse(BaseModel):
    square: str
    selectable: bool
    destinations: List[DestinationModel]


class SearchResponse(BaseModel):
    best_move: Optional[str]
    score: Optional[int]
    depth: int
    nodes: int
    qnodes: int
    time_ms: int
    timed_out: bool


class GameState(BaseModel):
    game_id: str
    fen: str
    side_to_move: str
    move_number: int
    board: List[List[Optional[str]]]
    in_check: bool
    checkmate: bool
    stalemate: bool
    game_over: bool
    winner: Optional[str]
    status: str
    last_move: Optional[str]
    move_history: List[str]


def _color_name(color: Color) -> str:
    return color.label.lower()


def _state(game_id: str, game: Game) -> GameState:
    history = game.move_history()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        side_to_move=_color_name(game.side_to_move),
        move_number=game.move_number,
        board=game.snapshot(),
        in_check=game.in_check,
        checkmate=game.checkmate,
        stalemate=game.stalemate,
        game_over=game.game_over,
        winner=_color_name(game.winner) if game.winner is not None else None,
        status=game.status_text(),
        last_move=history[-1] if history else None,
        move_history=history,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="chessai", version=__version__)

    configure_logging(settings.log_level)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(IllegalMoveError, illegal_move_handler)
    app.add_exception_handler(GameOverError, game_over_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore()
    service = SearchService()
    app.state.store = store
    app.state.settings = settings

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game() -> CreateGameResponse:
        game = Game.new()
        game_id = store.create(game)
        logger.info("created game %s", game_id)
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    # CPU-bound handlers are plain ``def`` so FastAPI runs them in its threadpool
    @app.get("/api/games/{game_id}/state", response_model=GameState)
    def get_state(game_id: str) -> GameState:
        with store.locked(game_id) as game:
            return _state(game_id, _require_game(game))

    @app.get("/api/games/{game_id}/destinations/{square}", response_model=DestinationsResponse)
    def get_destinations(game_id: str, square: str) -> DestinationsResponse:
        sq = _parse_square(square)
        with store.locked(game_id) as game:
            game = _require_game(game)
            return DestinationsResponse(
                square=square,
                selectable=game.selectable(sq),
                destinations=[
                    DestinationModel(square=square_to_str(d.square), kind=d.kind.value)
                    for d in game.legal_destinations(sq)
                ],
            )

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    def make_move(game_id: str, req: MoveRequest) -> GameState:
        try:
            from_sq, to_sq = parse_coords(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        with store.locked(game_id) as game:
            game = _require_game(game)
            game.play(from_sq, to_sq)
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/search", response_model=SearchResponse)
    def search(game_id: str, req: SearchRequest) -> SearchResponse:
        with store.locked(game_id) as game:
            game = _require_game(game)
            color = game.side_to_move
            if req.color is not None:
                color = Color.WHITE if req.color == "white" else Color.BLACK
            # search a snapshot so the game stays usable while we think
            snapshot = game.board.copy()
        res = service.search(
            snapshot,
            color,
            depth=req.depth or settings.search_depth,
            time_limit_ms=req.movetime_ms or settings.search_time_ms,
        )
        return SearchResponse(
            best_move=res.best_move.to_coords() if res.best_move is not None else None,
            score=res.score,
            depth=res.depth,
            nodes=res.nodes,
            qnodes=res.qnodes,
            time_ms=res.time_ms,
            timed_out=res.timed_out,
        )

    @app.post("/api/games/{game_id}/ai-move", response_model=GameState)
    def ai_move(game_id: str, req: Optional[AIMoveRequest] = None) -> GameState:
        req = req or AIMoveRequest()
        with store.locked(game_id) as game:
            game = _require_game(game)
            outcome = game.play_ai_move(
                depth=req.depth or settings.search_depth,
                time_limit_ms=req.movetime_ms or settings.search_time_ms,
                service=service,
            )
            if outcome is None:
                raise HTTPException(status_code=409, detail="no move found within the time budget")
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/reset", response_model=GameState)
    def reset(game_id: str) -> GameState:
        with store.locked(game_id) as game:
            game = _require_game(game)
            game.reset()
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        with store.locked(game_id) as game:
            game = _require_game(game)
            try:
                game.load_fen(req.fen)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"invalid FEN: {e}")
            return _state(game_id, game)

    @app.post("/api/perft")
    def perft(req: PerftRequest) -> Dict[str, int]:
        try:
            board, side, _ = parse_fen(req.fen)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"invalid FEN: {e}")
        return {"depth": req.depth, "nodes": perft_nodes(board, side, req.depth)}

    return app


def _require_game(game: Optional[Game]) -> Game:
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _parse_square(square: str) -> tuple[int, int]:
    try:
        return str_to_square(square)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
