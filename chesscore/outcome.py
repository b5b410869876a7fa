"""Terminal-state classification.

Rules are checked in a fixed priority: checkmate, stalemate, fifty-move
rule, threefold repetition, insufficient material, then check.
"""

from __future__ import annotations

from collections.abc import Iterable

from chesscore.fen import parse
from chesscore.models import (
    CastlingRights,
    Color,
    GameOutcome,
    Piece,
    PieceType,
    Position,
    square_file,
    square_rank,
)
from chesscore.movegen import has_legal_move, is_in_check

FIFTY_MOVE_HALFMOVES = 100
REPETITION_LIMIT = 3

RepetitionKey = tuple[tuple[Piece | None, ...], Color, CastlingRights, int | None]


def repetition_key(position: Position) -> RepetitionKey:
    """Return the part of a position that decides repetition identity."""
    return position.board, position.turn, position.castling, position.ep_square


def _occurrences(position: Position, history: Iterable[Position | str]) -> int:
    key = repetition_key(position)
    count = 1
    for earlier in history:
        if isinstance(earlier, str):
            earlier = parse(earlier)
        if repetition_key(earlier) == key:
            count += 1
    return count


def has_insufficient_material(position: Position) -> bool:
    """Return True if neither side can possibly deliver checkmate.

    Covers king vs king, king and one minor piece vs king, and any number
    of bishops that all stand on squares of the same color.
    """
    minors: list[tuple[int, Piece]] = []
    for square, piece in position.pieces():
        if piece.kind is PieceType.KING:
            continue
        if piece.kind in (PieceType.PAWN, PieceType.ROOK, PieceType.QUEEN):
            return False
        minors.append((square, piece))

    if len(minors) <= 1:
        return True
    if all(piece.kind is PieceType.BISHOP for _, piece in minors):
        shades = {(square_file(sq) + square_rank(sq)) % 2 for sq, _ in minors}
        return len(shades) == 1
    return False


def classify(
    position: Position,
    history: Iterable[Position | str] = (),
) -> GameOutcome:
    """Classify a position.

    Args:
        position: The current position.
        history: Positions (or FEN strings) that occurred earlier in the
            game, not including ``position`` itself.

    Returns:
        The GameOutcome for the side to move.
    """
    in_check = is_in_check(position)
    if not has_legal_move(position):
        return GameOutcome.CHECKMATE if in_check else GameOutcome.STALEMATE
    if position.halfmove_clock >= FIFTY_MOVE_HALFMOVES:
        return GameOutcome.DRAW_BY_FIFTY_MOVE
    if _occurrences(position, history) >= REPETITION_LIMIT:
        return GameOutcome.DRAW_BY_REPETITION
    if has_insufficient_material(position):
        return GameOutcome.DRAW_BY_INSUFFICIENT_MATERIAL
    return GameOutcome.CHECK if in_check else GameOutcome.ONGOING


def winner(position: Position, outcome: GameOutcome) -> Color | None:
    """Return the winning color for a checkmate, else None."""
    if outcome is GameOutcome.CHECKMATE:
        return position.turn.other
    return None
