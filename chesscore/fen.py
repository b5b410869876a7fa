"""Position interchange format (FEN) and move text encoding.

``parse`` and ``serialize`` are exact inverses for every position the
engine produces. Move text is the four or five character form used by
UCI engines: origin, destination and an optional promotion letter.
"""

from __future__ import annotations

from chesscore.errors import FormatError
from chesscore.models import (
    FILE_NAMES,
    RANK_NAMES,
    CastlingRights,
    Color,
    Piece,
    PieceType,
    Position,
    parse_square,
    square_index,
    square_name,
    square_rank,
)
from chesscore.movegen import is_square_attacked, king_square

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

_CASTLING_ORDER = (
    ("K", "white_kingside"),
    ("Q", "white_queenside"),
    ("k", "black_kingside"),
    ("q", "black_queenside"),
)

_PROMOTION_LETTERS = {"q": PieceType.QUEEN, "r": PieceType.ROOK, "b": PieceType.BISHOP, "n": PieceType.KNIGHT}


def _parse_placement(placement: str) -> tuple[Piece | None, ...]:
    rows = placement.split("/")
    if len(rows) != 8:
        raise FormatError(f"Piece placement must have 8 ranks, got {len(rows)}")

    board: list[Piece | None] = [None] * 64
    for row_index, row in enumerate(rows):
        rank = 7 - row_index
        file = 0
        previous_digit = False
        for char in row:
            if char.isdigit():
                if previous_digit or not "1" <= char <= "8":
                    raise FormatError(f"Invalid empty-square count in rank {rank + 1}: {row!r}")
                file += int(char)
                previous_digit = True
                continue
            previous_digit = False
            try:
                piece = Piece.from_symbol(char)
            except ValueError:
                raise FormatError(f"Illegal piece character: {char!r}") from None
            if file >= 8:
                raise FormatError(f"Rank {rank + 1} has more than 8 squares: {row!r}")
            board[square_index(file, rank)] = piece
            file += 1
        if file != 8:
            raise FormatError(f"Rank {rank + 1} does not cover 8 squares: {row!r}")
    return tuple(board)


def _parse_castling(field: str) -> CastlingRights:
    if field == "-":
        return CastlingRights(False, False, False, False)
    letters = [letter for letter, _ in _CASTLING_ORDER]
    if any(char not in letters for char in field) or len(set(field)) != len(field):
        raise FormatError(f"Invalid castling rights: {field!r}")
    return CastlingRights(**{name: letter in field for letter, name in _CASTLING_ORDER})


def _parse_counter(field: str, name: str, minimum: int) -> int:
    if not (field.isascii() and field.isdigit()):
        raise FormatError(f"Invalid {name}: {field!r}")
    value = int(field)
    if value < minimum:
        raise FormatError(f"Invalid {name}: {field!r}")
    return value


def parse(text: str) -> Position:
    """Parse a six-field FEN string into a Position.

    Raises:
        FormatError: On a wrong field count, an illegal piece character,
            malformed castling/en-passant/counter fields, pawns on a back
            rank, a king count other than one per side, or a position in
            which the side not to move is in check.
    """
    if not isinstance(text, str):
        raise FormatError("Position text must be a string")
    fields = text.split()
    if len(fields) != 6:
        raise FormatError(f"Position text must have 6 fields, got {len(fields)}")
    placement, side, castling_field, ep_field, halfmove_field, fullmove_field = fields

    board = _parse_placement(placement)

    if side not in ("w", "b"):
        raise FormatError(f"Side to move must be 'w' or 'b', got {side!r}")
    turn = Color(side)

    castling = _parse_castling(castling_field)

    ep_square: int | None = None
    if ep_field != "-":
        try:
            ep_square = parse_square(ep_field)
        except ValueError:
            raise FormatError(f"Invalid en-passant square: {ep_field!r}") from None
        # The pawn that just double-pushed belongs to the side not to move.
        expected_rank = 5 if turn is Color.WHITE else 2
        if square_rank(ep_square) != expected_rank:
            raise FormatError(f"En-passant square {ep_field} does not match side to move")
        pawn_square = ep_square - 8 if turn is Color.WHITE else ep_square + 8
        if board[ep_square] is not None or board[pawn_square] != Piece(PieceType.PAWN, turn.other):
            raise FormatError(f"En-passant square {ep_field} has no pawn to capture")

    halfmove_clock = _parse_counter(halfmove_field, "half-move clock", 0)
    fullmove_number = _parse_counter(fullmove_field, "full-move number", 1)

    for color in Color:
        kings = sum(
            1 for piece in board
            if piece is not None and piece.kind is PieceType.KING and piece.color is color
        )
        if kings != 1:
            raise FormatError(f"Expected exactly one {color.label} king, found {kings}")

    for square in (*range(0, 8), *range(56, 64)):
        piece = board[square]
        if piece is not None and piece.kind is PieceType.PAWN:
            raise FormatError(f"Pawn on back rank at {square_name(square)}")

    position = Position(
        board=board,
        turn=turn,
        castling=castling,
        ep_square=ep_square,
        halfmove_clock=halfmove_clock,
        fullmove_number=fullmove_number,
    )

    opponent_king = king_square(position, turn.other)
    if opponent_king is not None and is_square_attacked(position, opponent_king, turn):
        raise FormatError("Side not to move is in check")

    return position


def _serialize_placement(board: tuple[Piece | None, ...]) -> str:
    rows: list[str] = []
    for rank in range(7, -1, -1):
        row = []
        empty = 0
        for file in range(8):
            piece = board[square_index(file, rank)]
            if piece is None:
                empty += 1
                continue
            if empty:
                row.append(str(empty))
                empty = 0
            row.append(piece.symbol())
        if empty:
            row.append(str(empty))
        rows.append("".join(row))
    return "/".join(rows)


def serialize(position: Position) -> str:
    """Return the canonical FEN string of a position."""
    castling = "".join(
        letter for letter, name in _CASTLING_ORDER if getattr(position.castling, name)
    ) or "-"
    ep = square_name(position.ep_square) if position.ep_square is not None else "-"
    return " ".join((
        _serialize_placement(position.board),
        position.turn.value,
        castling,
        ep,
        str(position.halfmove_clock),
        str(position.fullmove_number),
    ))


def starting_position() -> Position:
    return parse(STARTING_FEN)


def parse_move_text(text: str) -> tuple[int, int, PieceType | None]:
    """Split move text like ``e2e4`` or ``e7e8q`` into its parts.

    Returns:
        Tuple of (origin square, destination square, promotion or None).

    Raises:
        FormatError: If the text is not 4 or 5 characters of valid squares
            and promotion letter.
    """
    text = text.strip()
    if len(text) not in (4, 5):
        raise FormatError(f"Move text must be 4 or 5 characters: {text!r}")
    origin, destination = text[:2].lower(), text[2:4].lower()
    if (
        origin[0] not in FILE_NAMES or origin[1] not in RANK_NAMES
        or destination[0] not in FILE_NAMES or destination[1] not in RANK_NAMES
    ):
        raise FormatError(f"Invalid square in move text: {text!r}")
    promotion = None
    if len(text) == 5:
        promotion = _PROMOTION_LETTERS.get(text[4].lower())
        if promotion is None:
            raise FormatError(f"Invalid promotion letter in move text: {text!r}")
    return parse_square(origin), parse_square(destination), promotion
