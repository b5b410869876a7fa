"""Exception types raised by the chess position engine."""

from __future__ import annotations


class ChessCoreError(Exception):
    """Base class for all engine errors."""


class FormatError(ChessCoreError, ValueError):
    """Malformed position or move text. Always surfaced to the caller."""


class IllegalMoveError(ChessCoreError, ValueError):
    """A move that is not in the legal move list of the current position."""


class CollaboratorError(ChessCoreError, RuntimeError):
    """The external search engine timed out, crashed or answered badly.

    Recovered inside ``select_move``; never a hard failure of a game.
    """
