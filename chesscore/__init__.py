"""Chess position engine and opponent move selector."""

from chesscore.errors import ChessCoreError, CollaboratorError, FormatError, IllegalMoveError
from chesscore.fen import STARTING_FEN, parse, serialize
from chesscore.models import Color, GameOutcome, Move, MoveKind, Piece, PieceType, Position, Tier
from chesscore.movegen import generate, is_in_check, is_square_attacked
from chesscore.opponent import select_move
from chesscore.outcome import classify
from chesscore.position import apply, apply_text

__all__ = [
    "STARTING_FEN",
    "ChessCoreError",
    "CollaboratorError",
    "Color",
    "FormatError",
    "GameOutcome",
    "IllegalMoveError",
    "Move",
    "MoveKind",
    "Piece",
    "PieceType",
    "Position",
    "Tier",
    "apply",
    "apply_text",
    "classify",
    "generate",
    "is_in_check",
    "is_square_attacked",
    "parse",
    "select_move",
    "serialize",
]
