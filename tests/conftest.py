"""Shared test fixtures and opt-in test modes.

Usage:
    pytest tests/                  # Fast suite, mocked search engine
    pytest tests/ --slow           # Also run exhaustive depth-4 checks
    pytest tests/ --e2e            # Also run tests against real Stockfish

Fixtures:
    start            - The standard starting Position.
    rng              - A seeded random.Random.
    failing_engine   - Collaborator mock whose searches always time out.
    scripted_engine  - Factory for a collaborator mock answering fixed text.
"""

from __future__ import annotations

import random
from unittest.mock import MagicMock

import pytest

from chesscore.engine import EngineCollaborator
from chesscore.errors import CollaboratorError
from chesscore.fen import STARTING_FEN, parse


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --slow and --e2e CLI flags."""
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run exhaustive move generation checks (depth 4).",
    )
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run with a real Stockfish engine (no mocks).",
    )


def pytest_configure(config):
    """Register the slow and e2e markers."""
    config.addinivalue_line(
        "markers", "slow: exhaustive move generation check (enable with --slow)"
    )
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real Stockfish)"
    )


def pytest_collection_modifyitems(config, items):
    for flag, marker in (("--slow", "slow"), ("--e2e", "e2e")):
        if config.getoption(flag):
            continue
        skip = pytest.mark.skip(reason=f"use {flag} to enable {marker} tests")
        for item in items:
            if marker in item.keywords:
                item.add_marker(skip)


# ---------------------------------------------------------------------------
# Positions and randomness
# ---------------------------------------------------------------------------


@pytest.fixture()
def start():
    return parse(STARTING_FEN)


@pytest.fixture()
def rng():
    return random.Random(1234)


# ---------------------------------------------------------------------------
# Search engine collaborator mocks
# ---------------------------------------------------------------------------


@pytest.fixture()
def failing_engine():
    """Collaborator whose every search times out."""
    mock = MagicMock(spec=EngineCollaborator)
    mock.best_move.side_effect = CollaboratorError("Search timed out")
    return mock


@pytest.fixture()
def scripted_engine():
    """Build a collaborator that always answers with the given move text."""

    def _make(answer: str):
        mock = MagicMock(spec=EngineCollaborator)
        mock.best_move.return_value = answer
        return mock

    return _make
