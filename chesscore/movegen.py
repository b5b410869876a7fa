"""Legal move generation and attack detection.

Moves are produced in two stages: pseudo-legal moves from the standard
movement patterns, then a filter that plays each one on a scratch copy
of the board and drops it if the mover's king is left attacked.

Squares are 0..63 (a1=0 .. h8=63). Jump and ray tables are built once at
import time so the hot loops only index tuples.
"""

from __future__ import annotations

from collections.abc import Iterator

from chesscore.models import (
    PROMOTION_TYPES,
    Color,
    Move,
    MoveKind,
    Piece,
    PieceType,
    Position,
    square_file,
    square_index,
    square_rank,
)

_KNIGHT_DELTAS = ((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2))
_KING_DELTAS = ((1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1))
_ROOK_DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1))
_BISHOP_DIRECTIONS = ((1, 1), (1, -1), (-1, 1), (-1, -1))

_ROOK_LIKE = (PieceType.ROOK, PieceType.QUEEN)
_BISHOP_LIKE = (PieceType.BISHOP, PieceType.QUEEN)

# Home squares used by castling.
_KING_HOME = {Color.WHITE: 4, Color.BLACK: 60}


def _offset(square: int, df: int, dr: int) -> int | None:
    file = square_file(square) + df
    rank = square_rank(square) + dr
    if 0 <= file < 8 and 0 <= rank < 8:
        return square_index(file, rank)
    return None


def _jump_table(deltas) -> tuple[tuple[int, ...], ...]:
    table = []
    for square in range(64):
        targets = (_offset(square, df, dr) for df, dr in deltas)
        table.append(tuple(t for t in targets if t is not None))
    return tuple(table)


def _ray_table(directions) -> tuple[tuple[tuple[int, ...], ...], ...]:
    table = []
    for square in range(64):
        rays = []
        for df, dr in directions:
            ray = []
            current = _offset(square, df, dr)
            while current is not None:
                ray.append(current)
                current = _offset(current, df, dr)
            rays.append(tuple(ray))
        table.append(tuple(rays))
    return tuple(table)


_KNIGHT_TARGETS = _jump_table(_KNIGHT_DELTAS)
_KING_TARGETS = _jump_table(_KING_DELTAS)
_ROOK_RAYS = _ray_table(_ROOK_DIRECTIONS)
_BISHOP_RAYS = _ray_table(_BISHOP_DIRECTIONS)
_PAWN_ATTACKS = {
    Color.WHITE: _jump_table(((-1, 1), (1, 1))),
    Color.BLACK: _jump_table(((-1, -1), (1, -1))),
}


# ---------------------------------------------------------------------------
# Attack detection
# ---------------------------------------------------------------------------


def _attacked(board: tuple[Piece | None, ...], square: int, by_color: Color) -> bool:
    # A pawn of by_color attacks `square` from the squares a pawn of the
    # other color would attack from `square`.
    for source in _PAWN_ATTACKS[by_color.other][square]:
        piece = board[source]
        if piece is not None and piece.color is by_color and piece.kind is PieceType.PAWN:
            return True

    for source in _KNIGHT_TARGETS[square]:
        piece = board[source]
        if piece is not None and piece.color is by_color and piece.kind is PieceType.KNIGHT:
            return True

    for source in _KING_TARGETS[square]:
        piece = board[source]
        if piece is not None and piece.color is by_color and piece.kind is PieceType.KING:
            return True

    for rays, sliders in ((_ROOK_RAYS, _ROOK_LIKE), (_BISHOP_RAYS, _BISHOP_LIKE)):
        for ray in rays[square]:
            for source in ray:
                piece = board[source]
                if piece is None:
                    continue
                if piece.color is by_color and piece.kind in sliders:
                    return True
                break

    return False


def is_square_attacked(position: Position, square: int, by_color: Color) -> bool:
    """Return True if any piece of ``by_color`` attacks ``square``.

    Covers every attack pattern, including the color-dependent pawn
    diagonals and king adjacency. Occupancy of ``square`` itself is ignored.
    """
    return _attacked(position.board, square, by_color)


def _find_king(board: tuple[Piece | None, ...], color: Color) -> int | None:
    for square, piece in enumerate(board):
        if piece is not None and piece.kind is PieceType.KING and piece.color is color:
            return square
    return None


def king_square(position: Position, color: Color) -> int | None:
    """Return the square of ``color``'s king, or None if it has none."""
    return _find_king(position.board, color)


def is_in_check(position: Position) -> bool:
    """Return True if the side to move has its king under attack."""
    king = _find_king(position.board, position.turn)
    if king is None:
        return False
    return _attacked(position.board, king, position.turn.other)


# ---------------------------------------------------------------------------
# Board mechanics
# ---------------------------------------------------------------------------


def board_after(
    board: tuple[Piece | None, ...], move: Move
) -> tuple[Piece | None, ...]:
    """Return the piece placement after ``move``.

    Only placement changes here; rights, clocks and side to move are the
    caller's business.
    """
    squares = list(board)
    piece = squares[move.from_square]
    squares[move.from_square] = None

    if move.kind is MoveKind.EN_PASSANT:
        captured = square_index(square_file(move.to_square), square_rank(move.from_square))
        squares[captured] = None
    elif move.kind is MoveKind.CASTLE_KINGSIDE:
        rook_from, rook_to = move.to_square + 1, move.to_square - 1
        squares[rook_to] = squares[rook_from]
        squares[rook_from] = None
    elif move.kind is MoveKind.CASTLE_QUEENSIDE:
        rook_from, rook_to = move.to_square - 2, move.to_square + 1
        squares[rook_to] = squares[rook_from]
        squares[rook_from] = None

    if move.promotion is not None and piece is not None:
        piece = Piece(move.promotion, piece.color)
    squares[move.to_square] = piece
    return tuple(squares)


# ---------------------------------------------------------------------------
# Pseudo-legal generation
# ---------------------------------------------------------------------------


def _pawn_moves(position: Position, square: int) -> Iterator[Move]:
    board = position.board
    us = position.turn
    step = 8 if us is Color.WHITE else -8
    start_rank = 1 if us is Color.WHITE else 6
    last_rank = 7 if us is Color.WHITE else 0

    def _with_promotions(target: int, kind: MoveKind) -> Iterator[Move]:
        if square_rank(target) == last_rank:
            for promotion in PROMOTION_TYPES:
                yield Move(square, target, promotion, kind)
        else:
            yield Move(square, target, None, kind)

    one = square + step
    if board[one] is None:
        yield from _with_promotions(one, MoveKind.QUIET)
        two = one + step
        if square_rank(square) == start_rank and board[two] is None:
            yield Move(square, two, None, MoveKind.DOUBLE_PAWN_PUSH)

    for target in _PAWN_ATTACKS[us][square]:
        occupant = board[target]
        if occupant is not None:
            if occupant.color is not us:
                yield from _with_promotions(target, MoveKind.CAPTURE)
        elif target == position.ep_square:
            yield Move(square, target, None, MoveKind.EN_PASSANT)


def _jump_moves(
    board: tuple[Piece | None, ...], square: int, us: Color, targets
) -> Iterator[Move]:
    for target in targets[square]:
        occupant = board[target]
        if occupant is None:
            yield Move(square, target)
        elif occupant.color is not us:
            yield Move(square, target, None, MoveKind.CAPTURE)


def _slide_moves(
    board: tuple[Piece | None, ...], square: int, us: Color, rays
) -> Iterator[Move]:
    for ray in rays[square]:
        for target in ray:
            occupant = board[target]
            if occupant is None:
                yield Move(square, target)
                continue
            if occupant.color is not us:
                yield Move(square, target, None, MoveKind.CAPTURE)
            break


def _castling_moves(position: Position, square: int) -> Iterator[Move]:
    us = position.turn
    them = us.other
    board = position.board
    if square != _KING_HOME[us]:
        return
    if _attacked(board, square, them):
        return

    rook = Piece(PieceType.ROOK, us)

    if position.castling.kingside(us) and board[square + 3] == rook:
        path = (square + 1, square + 2)
        if all(board[sq] is None for sq in path) and not any(
            _attacked(board, sq, them) for sq in path
        ):
            yield Move(square, square + 2, None, MoveKind.CASTLE_KINGSIDE)

    if position.castling.queenside(us) and board[square - 4] == rook:
        between = (square - 1, square - 2, square - 3)
        crossed = (square - 1, square - 2)
        if all(board[sq] is None for sq in between) and not any(
            _attacked(board, sq, them) for sq in crossed
        ):
            yield Move(square, square - 2, None, MoveKind.CASTLE_QUEENSIDE)


def pseudo_legal_moves(position: Position) -> Iterator[Move]:
    """Yield moves that follow the movement rules, ignoring self-check."""
    board = position.board
    us = position.turn
    for square, piece in position.pieces(us):
        kind = piece.kind
        if kind is PieceType.PAWN:
            yield from _pawn_moves(position, square)
        elif kind is PieceType.KNIGHT:
            yield from _jump_moves(board, square, us, _KNIGHT_TARGETS)
        elif kind is PieceType.BISHOP:
            yield from _slide_moves(board, square, us, _BISHOP_RAYS)
        elif kind is PieceType.ROOK:
            yield from _slide_moves(board, square, us, _ROOK_RAYS)
        elif kind is PieceType.QUEEN:
            yield from _slide_moves(board, square, us, _ROOK_RAYS)
            yield from _slide_moves(board, square, us, _BISHOP_RAYS)
        else:
            yield from _jump_moves(board, square, us, _KING_TARGETS)
            yield from _castling_moves(position, square)


# ---------------------------------------------------------------------------
# Legal generation
# ---------------------------------------------------------------------------


def generate(position: Position) -> list[Move]:
    """Return every legal move for the side to move.

    No returned move leaves the mover's own king attacked. The list holds
    distinct moves in generation order; callers needing a canonical order
    sort by ``Move.sort_key``.
    """
    us = position.turn
    them = us.other
    king = _find_king(position.board, us)
    legal: list[Move] = []
    for move in pseudo_legal_moves(position):
        after = board_after(position.board, move)
        target = move.to_square if move.from_square == king else king
        if target is None or not _attacked(after, target, them):
            legal.append(move)
    return legal


def has_legal_move(position: Position) -> bool:
    us = position.turn
    them = us.other
    king = _find_king(position.board, us)
    for move in pseudo_legal_moves(position):
        after = board_after(position.board, move)
        target = move.to_square if move.from_square == king else king
        if target is None or not _attacked(after, target, them):
            return True
    return False


def moves_from(position: Position, square: int) -> list[Move]:
    """Return the legal moves whose origin is ``square``."""
    return [move for move in generate(position) if move.from_square == square]
