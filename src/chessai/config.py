from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from chessai.search.service import DEFAULT_DEPTH, DEFAULT_TIME_LIMIT_MS


ENV_PREFIX = "CHESSAI_"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from ``CHESSAI_*`` environment variables.

    Attributes:
        host (str): Interface the HTTP server binds to.
        port (int): HTTP port.
        log_level (str): Root logging level name.
        search_depth (int): Default search depth in plies.
        search_time_ms (int): Default search budget in milliseconds.
    """

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    search_depth: int = DEFAULT_DEPTH
    search_time_ms: int = DEFAULT_TIME_LIMIT_MS

    def __post_init__(self) -> None:
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"invalid log level: {self.log_level!r}")
        if not 0 < self.port < 65536:
            raise ValueError(f"invalid port: {self.port}")
        if self.search_depth < 1:
            raise ValueError("search depth must be >= 1")
        if self.search_time_ms < 1:
            raise ValueError("search time must be >= 1 ms")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ValueError: If a variable is set to an invalid value.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _int(name: str, default: int) -> int:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return int(raw)
            except ValueError as e:
                raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e

        return cls(
            host=env.get(ENV_PREFIX + "HOST") or defaults.host,
            port=_int("PORT", defaults.port),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or defaults.log_level).upper(),
            search_depth=_int("SEARCH_DEPTH", defaults.search_depth),
            search_time_ms=_int("SEARCH_TIME_MS", defaults.search_time_ms),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
