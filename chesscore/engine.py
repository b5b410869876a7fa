"""External search engine collaborator for the expert tier.

Wraps a UCI engine (Stockfish) through python-chess. Provides:
- Lazy launch of one long-lived engine process per collaborator
- At most one outstanding search per collaborator
- A hard deadline per request; an expired search kills the process
- Crash recovery by relaunching on the next request

Every failure surfaces as CollaboratorError so the opponent selector can
fall back to its own heuristics.
"""

from __future__ import annotations

import logging
import shutil
import threading
import time
from pathlib import Path

import chess
import chess.engine

from chesscore.config import Settings, load_settings
from chesscore.errors import CollaboratorError

logger = logging.getLogger(__name__)

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/bin/stockfish",
    "/usr/games/stockfish",
]

# Share of the remaining budget handed to the engine as search time; the
# rest covers the round trip of the bestmove answer.
_SEARCH_SHARE = 0.8
_MIN_SEARCH_SECONDS = 0.01


def find_stockfish(explicit: str | None = None) -> str:
    """Locate a Stockfish binary.

    Checks the explicit path, known install paths, then PATH lookup.

    Returns:
        Path to the Stockfish binary.

    Raises:
        FileNotFoundError: If Stockfish is not found anywhere.
    """
    if explicit:
        if Path(explicit).is_file():
            return explicit
        resolved = shutil.which(explicit)
        if resolved is not None:
            return resolved
        raise FileNotFoundError(f"Stockfish not found at {explicit!r}")

    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise FileNotFoundError(
        "Stockfish not found. Install it or set STOCKFISH_PATH."
    )


class EngineCollaborator:
    """UCI engine client with a per-request deadline.

    One instance belongs to one game session; separate sessions use
    separate instances and therefore separate processes.
    """

    def __init__(
        self,
        engine_path: str | None = None,
        depth: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._engine_path = engine_path or self._settings.stockfish_path
        self._depth = depth if depth is not None else self._settings.expert_depth
        self._engine: chess.engine.SimpleEngine | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._engine is not None

    def _open_engine(self, timeout: float) -> chess.engine.SimpleEngine:
        """Launch a fresh engine process.

        Raises:
            CollaboratorError: If the binary is missing or fails the handshake.
        """
        try:
            path = find_stockfish(self._engine_path)
        except FileNotFoundError as exc:
            raise CollaboratorError(str(exc)) from exc

        logger.debug("Launching search engine %s", path)
        try:
            return chess.engine.SimpleEngine.popen_uci(path, timeout=timeout)
        except TimeoutError as exc:
            raise CollaboratorError(f"Engine at {path} did not start in time") from exc
        except (OSError, chess.engine.EngineError) as exc:
            raise CollaboratorError(f"Failed launching engine at {path}: {exc}") from exc

    def _discard_engine(self) -> None:
        """Kill the current engine process, if any, and forget it."""
        engine, self._engine = self._engine, None
        if engine is None:
            return
        try:
            engine.close()
        except chess.engine.EngineTerminatedError:
            pass

    def best_move(self, fen: str, time_budget_ms: int | None = None) -> str:
        """Search a position and return the chosen move as text.

        Args:
            fen: Position in the interchange format.
            time_budget_ms: Wall-clock budget for the whole request.
                Defaults to the configured expert budget.

        Returns:
            Move text such as ``e2e4`` or ``e7e8q``.

        Raises:
            CollaboratorError: On timeout, process failure, or when the
                engine reports no move.
        """
        budget_ms = time_budget_ms or self._settings.expert_time_ms
        deadline = time.monotonic() + budget_ms / 1000.0

        if not self._lock.acquire(timeout=budget_ms / 1000.0):
            raise CollaboratorError("A search is already running for this session")
        try:
            return self._search(fen, deadline)
        finally:
            self._lock.release()

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= _MIN_SEARCH_SECONDS:
            self._discard_engine()
            raise CollaboratorError("Search deadline expired")
        return remaining

    def _search(self, fen: str, deadline: float) -> str:
        try:
            board = chess.Board(fen)
        except ValueError as exc:
            raise CollaboratorError(f"Engine cannot load position: {exc}") from exc

        if self._engine is None:
            self._engine = self._open_engine(self._remaining(deadline))

        remaining = self._remaining(deadline)
        search_time = max(_MIN_SEARCH_SECONDS, remaining * _SEARCH_SHARE)
        engine = self._engine
        # SimpleEngine waits timeout + limit.time for the answer.
        engine.timeout = max(0.0, remaining - search_time)
        limit = chess.engine.Limit(time=search_time, depth=self._depth)

        try:
            result = engine.play(board, limit)
        except TimeoutError as exc:
            logger.warning("Search engine missed its deadline; terminating it")
            self._discard_engine()
            raise CollaboratorError("Search timed out") from exc
        except chess.engine.EngineTerminatedError as exc:
            logger.warning("Search engine process terminated: %s", exc)
            self._discard_engine()
            raise CollaboratorError(f"Engine terminated: {exc}") from exc
        except chess.engine.EngineError as exc:
            self._discard_engine()
            raise CollaboratorError(f"Engine error: {exc}") from exc

        if result.move is None:
            raise CollaboratorError("Engine reported no move")
        return result.move.uci()

    def close(self) -> None:
        """Clean up the engine process."""
        engine, self._engine = self._engine, None
        if engine is None:
            return
        try:
            engine.quit()
        except (chess.engine.EngineTerminatedError, TimeoutError):
            engine.close()

    def __enter__(self) -> EngineCollaborator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
