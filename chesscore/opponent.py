"""Opponent move selection by difficulty tier.

- novice: uniform random legal move
- intermediate: uniform random capture if any, else uniform random move
- expert: external search engine under a time budget, falling back to
  the intermediate policy on any engine failure

Randomness always comes from the caller's ``random.Random`` so a fixed
seed reproduces the same choice.
"""

from __future__ import annotations

import logging
import random
from typing import Protocol

from chesscore.errors import CollaboratorError, FormatError
from chesscore.fen import parse_move_text, serialize
from chesscore.models import Move, Position, Tier
from chesscore.movegen import generate

logger = logging.getLogger(__name__)


class SearchCollaborator(Protocol):
    """Anything that can name a move for a position within a budget.

    ``best_move`` returns move text such as ``e2e4``. A ``time_budget_ms``
    of None means the collaborator's own configured budget. It may raise
    any ``Exception`` (``CollaboratorError``, ``TimeoutError``, ``OSError``
    and so on); the expert tier treats every one of them as a failed search.
    """

    def best_move(self, fen: str, time_budget_ms: int | None = None) -> str:
        ...


def _candidates(position: Position) -> list[Move]:
    return sorted(generate(position), key=Move.sort_key)


def _novice(moves: list[Move], rng: random.Random) -> Move:
    return rng.choice(moves)


def _intermediate(moves: list[Move], rng: random.Random) -> Move:
    captures = [move for move in moves if move.is_capture]
    return rng.choice(captures or moves)


def _expert(
    position: Position,
    moves: list[Move],
    collaborator: SearchCollaborator,
    time_budget_ms: int | None,
) -> Move:
    """Ask the collaborator for a move and check it against the legal list.

    Raises:
        CollaboratorError: If the collaborator fails in any way or names an
            illegal move.
    """
    try:
        text = collaborator.best_move(serialize(position), time_budget_ms)
    except CollaboratorError:
        raise
    except Exception as exc:
        raise CollaboratorError(f"Search engine failed: {exc!r}") from exc
    if not isinstance(text, str):
        raise CollaboratorError(f"Search engine returned {text!r} instead of move text")
    try:
        origin, destination, promotion = parse_move_text(text)
    except FormatError as exc:
        raise CollaboratorError(f"Unreadable engine move: {text!r}") from exc

    for move in moves:
        if (
            move.from_square == origin
            and move.to_square == destination
            and move.promotion is promotion
        ):
            return move
    raise CollaboratorError(f"Engine proposed an illegal move: {text}")


def select_move(
    position: Position,
    tier: Tier | str,
    rng: random.Random | None = None,
    collaborator: SearchCollaborator | None = None,
    time_budget_ms: int | None = None,
) -> Move | None:
    """Choose the opponent's move for ``position``.

    Args:
        position: Position with the opponent to move.
        tier: Difficulty tier (or its name).
        rng: Source of randomness; a fresh unseeded one if omitted.
        collaborator: External search engine used by the expert tier.
        time_budget_ms: Expert search budget. None leaves it to the
            collaborator's configured default (2000 ms unless overridden).

    Returns:
        A legal move, or None only when the position has no legal move.
    """
    if isinstance(tier, str):
        tier = Tier.from_name(tier)
    if rng is None:
        rng = random.Random()

    moves = _candidates(position)
    if not moves:
        return None

    if tier is Tier.NOVICE:
        return _novice(moves, rng)

    if tier is Tier.EXPERT:
        if collaborator is None:
            logger.debug("No search engine configured; using intermediate policy")
        else:
            try:
                move = _expert(position, moves, collaborator, time_budget_ms)
            except CollaboratorError as exc:
                logger.warning("Search engine failed, falling back: %s", exc)
            else:
                logger.debug("Search engine chose %s", move)
                return move

    return _intermediate(moves, rng)
