"""Applying moves to positions.

``apply`` trusts that the move came from ``generate`` for the same
position. ``apply_text`` is the validating entry point for moves that
arrive as text from a player or an external engine.
"""

from __future__ import annotations

from dataclasses import replace

from chesscore.errors import IllegalMoveError
from chesscore.fen import parse_move_text
from chesscore.models import (
    CastlingRights,
    Color,
    Move,
    MoveKind,
    PieceType,
    Position,
    square_name,
    square_rank,
)
from chesscore.movegen import board_after, generate

# Rook home squares and the right lost when anything moves from or to them.
_ROOK_CORNERS = {
    0: "white_queenside",
    7: "white_kingside",
    56: "black_queenside",
    63: "black_kingside",
}

_KING_RIGHTS = {
    Color.WHITE: {"white_kingside": False, "white_queenside": False},
    Color.BLACK: {"black_kingside": False, "black_queenside": False},
}


def _rights_after(rights: CastlingRights, mover_kind: PieceType, mover: Color, move: Move) -> CastlingRights:
    if not rights.any():
        return rights
    changes: dict[str, bool] = {}
    if mover_kind is PieceType.KING:
        changes.update(_KING_RIGHTS[mover])
    for square in (move.from_square, move.to_square):
        name = _ROOK_CORNERS.get(square)
        if name is not None:
            changes[name] = False
    return replace(rights, **changes) if changes else rights


def apply(position: Position, move: Move) -> Position:
    """Return the position reached by playing ``move``.

    Precondition: ``move`` is in ``generate(position)``.
    """
    piece = position.board[move.from_square]
    if piece is None:
        raise IllegalMoveError(f"No piece on {square_name(move.from_square)}")

    ep_square = None
    if move.kind is MoveKind.DOUBLE_PAWN_PUSH:
        ep_square = (move.from_square + move.to_square) // 2

    if piece.kind is PieceType.PAWN or move.is_capture:
        halfmove_clock = 0
    else:
        halfmove_clock = position.halfmove_clock + 1

    fullmove_number = position.fullmove_number
    if position.turn is Color.BLACK:
        fullmove_number += 1

    return Position(
        board=board_after(position.board, move),
        turn=position.turn.other,
        castling=_rights_after(position.castling, piece.kind, piece.color, move),
        ep_square=ep_square,
        halfmove_clock=halfmove_clock,
        fullmove_number=fullmove_number,
    )


def find_move(
    position: Position,
    text: str,
    default_promotion: PieceType | None = None,
) -> Move:
    """Resolve move text to the matching legal move.

    A four-character pawn move onto the last rank is completed with
    ``default_promotion`` when one is given.

    Raises:
        FormatError: If the text is malformed.
        IllegalMoveError: If no legal move matches.
    """
    origin, destination, promotion = parse_move_text(text)
    if promotion is None and default_promotion is not None:
        piece = position.board[origin]
        if (
            piece is not None
            and piece.kind is PieceType.PAWN
            and square_rank(destination) in (0, 7)
        ):
            promotion = default_promotion

    for move in generate(position):
        if (
            move.from_square == origin
            and move.to_square == destination
            and move.promotion is promotion
        ):
            return move
    raise IllegalMoveError(f"Illegal move: {text.strip()}")


def apply_text(
    position: Position,
    text: str,
    default_promotion: PieceType | None = None,
) -> tuple[Move, Position]:
    """Validate move text against the legal moves and apply it.

    Returns:
        Tuple of (the legal move, the resulting position).
    """
    move = find_move(position, text, default_promotion)
    return move, apply(position, move)


def perft(position: Position, depth: int) -> int:
    """Count the leaf positions reachable in exactly ``depth`` plies."""
    if depth <= 0:
        return 1
    moves = generate(position)
    if depth == 1:
        return len(moves)
    return sum(perft(apply(position, move), depth - 1) for move in moves)


def perft_divide(position: Position, depth: int) -> dict[str, int]:
    """Return perft counts split by root move, keyed by move text."""
    if depth <= 0:
        return {}
    return {
        move.uci(): perft(apply(position, move), depth - 1)
        for move in sorted(generate(position), key=Move.sort_key)
    }
