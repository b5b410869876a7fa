"""Shared data models for the chess position engine.

Position and Move are the contract between the engine modules and any
session adapter that drives them. All values are immutable; applying a
move always produces a new Position.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

FILE_NAMES = "abcdefgh"
RANK_NAMES = "12345678"


def square_index(file: int, rank: int) -> int:
    """Return the 0..63 index for a file/rank pair (a1=0, h8=63)."""
    return rank * 8 + file


def square_file(square: int) -> int:
    return square & 7


def square_rank(square: int) -> int:
    return square >> 3


def square_name(square: int) -> str:
    """Return the algebraic name of a square, e.g. 12 -> 'e2'."""
    return FILE_NAMES[square_file(square)] + RANK_NAMES[square_rank(square)]


def parse_square(name: str) -> int:
    """Return the index of an algebraic square name.

    Raises:
        ValueError: If the name is not a square between a1 and h8.
    """
    if len(name) != 2 or name[0] not in FILE_NAMES or name[1] not in RANK_NAMES:
        raise ValueError(f"Invalid square: {name!r}")
    return square_index(FILE_NAMES.index(name[0]), RANK_NAMES.index(name[1]))


class Color(Enum):
    WHITE = "w"
    BLACK = "b"

    @property
    def other(self) -> Color:
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def label(self) -> str:
        return self.name.lower()


class PieceType(Enum):
    PAWN = "p"
    KNIGHT = "n"
    BISHOP = "b"
    ROOK = "r"
    QUEEN = "q"
    KING = "k"


PROMOTION_TYPES = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT)


@dataclass(frozen=True)
class Piece:
    """A piece of a given type and color."""

    kind: PieceType
    color: Color

    def symbol(self) -> str:
        """Return the FEN letter, uppercase for white."""
        letter = self.kind.value
        return letter.upper() if self.color is Color.WHITE else letter

    @classmethod
    def from_symbol(cls, symbol: str) -> Piece:
        """Build a piece from its FEN letter.

        Raises:
            ValueError: If the letter is not one of PNBRQK/pnbrqk.
        """
        kind = PieceType(symbol.lower())
        color = Color.WHITE if symbol.isupper() else Color.BLACK
        return cls(kind, color)


@dataclass(frozen=True)
class CastlingRights:
    """The four independent castling rights."""

    white_kingside: bool = True
    white_queenside: bool = True
    black_kingside: bool = True
    black_queenside: bool = True

    def kingside(self, color: Color) -> bool:
        return self.white_kingside if color is Color.WHITE else self.black_kingside

    def queenside(self, color: Color) -> bool:
        return self.white_queenside if color is Color.WHITE else self.black_queenside

    def any(self) -> bool:
        return (
            self.white_kingside or self.white_queenside
            or self.black_kingside or self.black_queenside
        )


NO_CASTLING = CastlingRights(False, False, False, False)


@dataclass(frozen=True)
class Position:
    """A complete chess position.

    ``board`` holds 64 entries indexed a1=0 .. h8=63, each a Piece or None.
    """

    board: tuple[Piece | None, ...]
    turn: Color = Color.WHITE
    castling: CastlingRights = CastlingRights()
    ep_square: int | None = None
    halfmove_clock: int = 0
    fullmove_number: int = 1

    def piece_at(self, square: int) -> Piece | None:
        return self.board[square]

    def pieces(self, color: Color | None = None):
        """Yield (square, piece) pairs, optionally restricted to one color."""
        for square, piece in enumerate(self.board):
            if piece is not None and (color is None or piece.color is color):
                yield square, piece


class MoveKind(Enum):
    """Classification of a move relative to the position it came from."""

    QUIET = "quiet"
    CAPTURE = "capture"
    EN_PASSANT = "en_passant"
    CASTLE_KINGSIDE = "castle_kingside"
    CASTLE_QUEENSIDE = "castle_queenside"
    DOUBLE_PAWN_PUSH = "double_pawn_push"


@dataclass(frozen=True)
class Move:
    """A move, meaningful only for the position it was generated from."""

    from_square: int
    to_square: int
    promotion: PieceType | None = None
    kind: MoveKind = MoveKind.QUIET

    @property
    def is_capture(self) -> bool:
        return self.kind in (MoveKind.CAPTURE, MoveKind.EN_PASSANT)

    @property
    def is_castle(self) -> bool:
        return self.kind in (MoveKind.CASTLE_KINGSIDE, MoveKind.CASTLE_QUEENSIDE)

    def sort_key(self) -> tuple[str, str, str]:
        """Lexicographic (origin, destination, promotion) key."""
        promo = self.promotion.value if self.promotion is not None else ""
        return square_name(self.from_square), square_name(self.to_square), promo

    def uci(self) -> str:
        text = square_name(self.from_square) + square_name(self.to_square)
        if self.promotion is not None:
            text += self.promotion.value
        return text

    def __str__(self) -> str:
        return self.uci()


class GameOutcome(Enum):
    ONGOING = "ongoing"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW_BY_REPETITION = "draw_by_repetition"
    DRAW_BY_FIFTY_MOVE = "draw_by_fifty_move"
    DRAW_BY_INSUFFICIENT_MATERIAL = "draw_by_insufficient_material"

    @property
    def is_terminal(self) -> bool:
        return self not in (GameOutcome.ONGOING, GameOutcome.CHECK)

    @property
    def is_draw(self) -> bool:
        return self.is_terminal and self is not GameOutcome.CHECKMATE


class Tier(Enum):
    """Opponent strength setting."""

    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"

    @classmethod
    def from_name(cls, name: str) -> Tier:
        """Resolve a tier name, accepting the easy/medium/hard aliases.

        Raises:
            ValueError: If the name is unknown.
        """
        key = name.strip().lower()
        key = _TIER_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown difficulty tier: {name!r}") from None


_TIER_ALIASES = {
    "easy": "novice",
    "medium": "intermediate",
    "hard": "expert",
}
