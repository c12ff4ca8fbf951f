from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

import uvicorn

from chessai.config import Settings, configure_logging
from chessai.engine.board import STARTPOS_FEN, parse_fen
from chessai.engine.perft import divide, perft
from chessai.search.service import SearchService


logger = logging.getLogger(__name__)


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    uvicorn.run(
        "chessai.protocol.http.app:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _cmd_perft(args: argparse.Namespace, settings: Settings) -> int:
    board, side, _ = parse_fen(args.fen)
    start = time.perf_counter()
    if args.divide:
        counts = divide(board, side, args.depth)
        for move, n in sorted(counts.items()):
            print(f"{move}: {n}")
        nodes = sum(counts.values())
    else:
        nodes = perft(board, side, args.depth)
    dt = time.perf_counter() - start
    print(f"nodes={nodes} depth={args.depth} time_ms={int(dt * 1000)} nps={int(nodes / max(dt, 1e-9))}")
    return 0


def _cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    board, side, _ = parse_fen(args.fen)
    res = SearchService().search(
        board,
        side,
        depth=args.depth if args.depth is not None else settings.search_depth,
        time_limit_ms=args.movetime if args.movetime is not None else settings.search_time_ms,
    )
    best = res.best_move.to_coords() if res.best_move is not None else "(none)"
    print(
        f"bestmove {best} score={res.score} depth={res.depth} nodes={res.nodes} "
        f"qnodes={res.qnodes} time_ms={res.time_ms} timed_out={res.timed_out}"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chessai", description="Chess engine with a minimax opponent")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help="Bind address (default: CHESSAI_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: CHESSAI_PORT)")
    serve.set_defaults(func=_cmd_serve)

    p = sub.add_parser("perft", help="Count move-tree leaves of a position")
    p.add_argument("--fen", type=str, default=STARTPOS_FEN, help="FEN string (default: startpos)")
    p.add_argument("--depth", type=int, default=3, help="Perft depth (default: 3)")
    p.add_argument("--divide", action="store_true", help="Print counts per root move")
    p.set_defaults(func=_cmd_perft)

    s = sub.add_parser("search", help="Search a position and print the best move")
    s.add_argument("--fen", type=str, default=STARTPOS_FEN, help="FEN string (default: startpos)")
    s.add_argument("--depth", type=int, default=None, help="Depth in plies (default: CHESSAI_SEARCH_DEPTH)")
    s.add_argument(
        "--movetime", type=int, default=None, help="Budget in ms (default: CHESSAI_SEARCH_TIME_MS)"
    )
    s.set_defaults(func=_cmd_search)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"chessai: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level)
    try:
        return args.func(args, settings)
    except ValueError as e:
        logger.debug("command failed", exc_info=True)
        print(f"chessai: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
