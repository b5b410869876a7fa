"""Pytest tests for the EngineCollaborator class.

Tests mock Stockfish so they don't require the actual binary.
Covers: binary discovery, lazy launch, move answers, deadline
handling, crash recovery and cleanup.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import chess
import chess.engine
import pytest

from chesscore.config import Settings
from chesscore.engine import EngineCollaborator, find_stockfish
from chesscore.errors import CollaboratorError
from chesscore.fen import STARTING_FEN, parse
from chesscore.movegen import generate

SETTINGS = Settings(stockfish_path=None, expert_time_ms=2000, expert_depth=10)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_mock_engine() -> MagicMock:
    """Create a mock SimpleEngine that passes basic checks."""
    eng = MagicMock(spec=chess.engine.SimpleEngine)
    eng.quit = MagicMock()
    eng.close = MagicMock()
    result = MagicMock()
    result.move = chess.Move.from_uci("e2e4")
    eng.play.return_value = result
    return eng


@pytest.fixture
def mock_popen():
    """Patch popen_uci and binary lookup so EngineCollaborator can launch."""
    eng = _make_mock_engine()
    with patch("chess.engine.SimpleEngine.popen_uci", return_value=eng) as popen, \
         patch("chesscore.engine.find_stockfish", return_value="/usr/bin/stockfish"):
        yield popen, eng


# ---------------------------------------------------------------------------
# Binary discovery
# ---------------------------------------------------------------------------


class TestFindStockfish:

    def test_stockfish_not_found(self):
        with patch("chesscore.engine.Path.is_file", return_value=False), \
             patch("chesscore.engine.shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError, match="Stockfish not found"):
                find_stockfish()

    def test_stockfish_found_via_which(self):
        with patch("chesscore.engine.Path.is_file", return_value=False), \
             patch("chesscore.engine.shutil.which", return_value="/usr/local/bin/stockfish"):
            assert find_stockfish() == "/usr/local/bin/stockfish"

    def test_stockfish_found_via_path(self):
        with patch("chesscore.engine.Path.is_file", return_value=True), \
             patch("chesscore.engine.shutil.which", return_value=None):
            assert find_stockfish() == "/opt/homebrew/bin/stockfish"

    def test_explicit_path(self):
        with patch("chesscore.engine.Path.is_file", return_value=True):
            assert find_stockfish("/srv/engines/sf") == "/srv/engines/sf"

    def test_explicit_path_missing(self):
        with patch("chesscore.engine.Path.is_file", return_value=False), \
             patch("chesscore.engine.shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError, match="/srv/engines/sf"):
                find_stockfish("/srv/engines/sf")


# ---------------------------------------------------------------------------
# Launch
# ---------------------------------------------------------------------------


class TestLaunch:

    def test_lazy_launch(self, mock_popen):
        popen, _ = mock_popen
        collaborator = EngineCollaborator(settings=SETTINGS)
        popen.assert_not_called()
        assert not collaborator.running
        collaborator.best_move(STARTING_FEN)
        popen.assert_called_once()
        assert collaborator.running

    def test_reuses_process(self, mock_popen):
        popen, _ = mock_popen
        collaborator = EngineCollaborator(settings=SETTINGS)
        collaborator.best_move(STARTING_FEN)
        collaborator.best_move(STARTING_FEN)
        popen.assert_called_once()

    def test_missing_binary(self):
        with patch("chesscore.engine.find_stockfish", side_effect=FileNotFoundError("Stockfish not found")):
            collaborator = EngineCollaborator(settings=SETTINGS)
            with pytest.raises(CollaboratorError, match="Stockfish not found"):
                collaborator.best_move(STARTING_FEN)

    def test_launch_failure(self):
        with patch("chesscore.engine.find_stockfish", return_value="/usr/bin/stockfish"), \
             patch("chess.engine.SimpleEngine.popen_uci", side_effect=OSError("exec format error")):
            collaborator = EngineCollaborator(settings=SETTINGS)
            with pytest.raises(CollaboratorError, match="Failed launching engine"):
                collaborator.best_move(STARTING_FEN)


# ---------------------------------------------------------------------------
# Searching
# ---------------------------------------------------------------------------


class TestBestMove:

    def test_returns_move_text(self, mock_popen):
        collaborator = EngineCollaborator(settings=SETTINGS)
        text = collaborator.best_move(STARTING_FEN)
        assert text == "e2e4"
        assert text in {m.uci() for m in generate(parse(STARTING_FEN))}

    def test_search_fits_in_budget(self, mock_popen):
        _, eng = mock_popen
        collaborator = EngineCollaborator(settings=SETTINGS)
        collaborator.best_move(STARTING_FEN, 1000)
        board, limit = eng.play.call_args.args
        assert board.fen() == STARTING_FEN
        assert limit.depth == 10
        assert 0 < limit.time <= 1.0
        assert limit.time + eng.timeout <= 1.0

    def test_configured_budget_when_none_given(self, mock_popen):
        _, eng = mock_popen
        collaborator = EngineCollaborator(settings=Settings(expert_time_ms=400, expert_depth=10))
        collaborator.best_move(STARTING_FEN, None)
        limit = eng.play.call_args.args[1]
        assert 0 < limit.time <= 0.4
        assert limit.time + eng.timeout <= 0.4

    def test_depth_override(self, mock_popen):
        _, eng = mock_popen
        collaborator = EngineCollaborator(depth=4, settings=SETTINGS)
        collaborator.best_move(STARTING_FEN)
        assert eng.play.call_args.args[1].depth == 4

    def test_timeout_kills_engine(self, mock_popen):
        _, eng = mock_popen
        eng.play.side_effect = TimeoutError()
        collaborator = EngineCollaborator(settings=SETTINGS)
        with pytest.raises(CollaboratorError, match="timed out"):
            collaborator.best_move(STARTING_FEN)
        eng.close.assert_called_once()
        assert not collaborator.running

    def test_relaunch_after_timeout(self, mock_popen):
        popen, eng = mock_popen
        eng.play.side_effect = [TimeoutError(), eng.play.return_value]
        collaborator = EngineCollaborator(settings=SETTINGS)
        with pytest.raises(CollaboratorError):
            collaborator.best_move(STARTING_FEN)
        assert collaborator.best_move(STARTING_FEN) == "e2e4"
        assert popen.call_count == 2

    def test_engine_crash(self, mock_popen):
        _, eng = mock_popen
        eng.play.side_effect = chess.engine.EngineTerminatedError("engine process died")
        collaborator = EngineCollaborator(settings=SETTINGS)
        with pytest.raises(CollaboratorError, match="terminated"):
            collaborator.best_move(STARTING_FEN)
        assert not collaborator.running

    def test_no_move_answer(self, mock_popen):
        _, eng = mock_popen
        eng.play.return_value.move = None
        collaborator = EngineCollaborator(settings=SETTINGS)
        with pytest.raises(CollaboratorError, match="no move"):
            collaborator.best_move("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")

    def test_bad_position(self, mock_popen):
        popen, _ = mock_popen
        collaborator = EngineCollaborator(settings=SETTINGS)
        with pytest.raises(CollaboratorError, match="cannot load position"):
            collaborator.best_move("not a position")
        popen.assert_not_called()

    def test_one_search_at_a_time(self, mock_popen):
        _, eng = mock_popen
        collaborator = EngineCollaborator(settings=SETTINGS)
        collaborator._lock.acquire()
        try:
            with pytest.raises(CollaboratorError, match="already running"):
                collaborator.best_move(STARTING_FEN, 50)
        finally:
            collaborator._lock.release()
        eng.play.assert_not_called()


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


class TestClose:

    def test_close_quits(self, mock_popen):
        _, eng = mock_popen
        collaborator = EngineCollaborator(settings=SETTINGS)
        collaborator.best_move(STARTING_FEN)
        collaborator.close()
        eng.quit.assert_called_once()
        assert not collaborator.running

    def test_close_without_process(self):
        EngineCollaborator(settings=SETTINGS).close()

    def test_close_after_crash(self, mock_popen):
        _, eng = mock_popen
        eng.quit.side_effect = chess.engine.EngineTerminatedError("gone")
        collaborator = EngineCollaborator(settings=SETTINGS)
        collaborator.best_move(STARTING_FEN)
        collaborator.close()
        eng.close.assert_called_once()

    def test_context_manager(self, mock_popen):
        _, eng = mock_popen
        with EngineCollaborator(settings=SETTINGS) as collaborator:
            collaborator.best_move(STARTING_FEN)
        eng.quit.assert_called_once()


# ---------------------------------------------------------------------------
# Real engine
# ---------------------------------------------------------------------------


@pytest.mark.e2e
class TestRealStockfish:

    def test_legal_answer(self):
        with EngineCollaborator(settings=Settings(expert_time_ms=1000, expert_depth=6)) as collaborator:
            text = collaborator.best_move(STARTING_FEN)
        assert text in {m.uci() for m in generate(parse(STARTING_FEN))}
