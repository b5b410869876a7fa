"""Game sessions: the human-vs-computer turn workflow.

A GameSession is an immutable value. Every operation takes a session and
returns a new one, so a rejected move can never leave a half-updated
game behind. Storing sessions between requests is up to the caller.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace

from chesscore.errors import FormatError, IllegalMoveError
from chesscore.fen import STARTING_FEN, parse, serialize
from chesscore.models import Color, GameOutcome, Move, PieceType, Position, Tier, parse_square, square_name
from chesscore.movegen import moves_from
from chesscore.opponent import SearchCollaborator, select_move
from chesscore.outcome import classify, winner
from chesscore.position import apply, apply_text

logger = logging.getLogger(__name__)

# Status line names for each tier, as shown to the player.
_DIFFICULTY_LABELS = {
    Tier.NOVICE: "EASY",
    Tier.INTERMEDIATE: "MEDIUM",
    Tier.EXPERT: "HARD",
}


@dataclass(frozen=True)
class GameSession:
    """Represents the full state of one game against the computer."""

    fen: str = STARTING_FEN
    history: tuple[str, ...] = ()
    moves: tuple[str, ...] = ()
    tier: Tier = Tier.NOVICE
    player_color: Color = Color.WHITE
    outcome: GameOutcome = GameOutcome.ONGOING
    message: str = ""

    @property
    def position(self) -> Position:
        return parse(self.fen)

    @property
    def game_over(self) -> bool:
        return self.outcome.is_terminal

    @property
    def players_turn(self) -> bool:
        return self.position.turn is self.player_color


@dataclass(frozen=True)
class TurnResult:
    """What one request changed: the new session and the moves played."""

    session: GameSession
    player_move: str | None = None
    reply_move: str | None = None

    @property
    def outcome(self) -> GameOutcome:
        return self.session.outcome

    @property
    def message(self) -> str:
        return self.session.message

    @property
    def game_over(self) -> bool:
        return self.session.game_over


def _message(session: GameSession, position: Position, outcome: GameOutcome) -> str:
    if outcome is GameOutcome.CHECKMATE:
        if winner(position, outcome) is session.player_color:
            return "Checkmate! You Win!"
        return "Checkmate! AI Wins"
    if outcome.is_draw:
        return "Draw!"
    if outcome is GameOutcome.CHECK:
        return "Check!"
    return f"VS AI ({_DIFFICULTY_LABELS[session.tier]})"


def _advance(session: GameSession, move: Move, after: Position) -> GameSession:
    history = session.history + (session.fen,)
    outcome = classify(after, history)
    advanced = replace(
        session,
        fen=serialize(after),
        history=history,
        moves=session.moves + (move.uci(),),
        outcome=outcome,
    )
    return replace(advanced, message=_message(advanced, after, outcome))


def new_session(
    tier: Tier | str = Tier.NOVICE,
    player_color: Color = Color.WHITE,
    fen: str = STARTING_FEN,
) -> GameSession:
    """Start a game from ``fen`` with the given difficulty.

    Raises:
        FormatError: If ``fen`` is not a valid position.
        ValueError: If ``tier`` is not a known tier name.
    """
    if isinstance(tier, str):
        tier = Tier.from_name(tier)
    position = parse(fen)
    session = GameSession(fen=serialize(position), tier=tier, player_color=player_color)
    outcome = classify(position)
    return replace(session, outcome=outcome, message=_message(session, position, outcome))


def possible_moves(session: GameSession, square: str) -> list[dict]:
    """List destinations for the piece on ``square``.

    Returns:
        List of dicts with keys ``to`` (square name) and ``is_capture``.

    Raises:
        FormatError: If ``square`` is not a square name.
    """
    try:
        origin = parse_square(square.strip().lower())
    except ValueError as exc:
        raise FormatError(str(exc)) from exc
    return [
        {"to": square_name(move.to_square), "is_capture": move.is_capture}
        for move in sorted(moves_from(session.position, origin), key=Move.sort_key)
    ]


def opponent_turn(
    session: GameSession,
    rng: random.Random | None = None,
    collaborator: SearchCollaborator | None = None,
    time_budget_ms: int | None = None,
) -> TurnResult:
    """Let the computer play when it is its turn.

    Raises:
        IllegalMoveError: If the game is over or the player is to move.
    """
    if session.game_over:
        raise IllegalMoveError("Game is already over")
    position = session.position
    if position.turn is session.player_color:
        raise IllegalMoveError("It is the player's turn")

    reply = select_move(position, session.tier, rng, collaborator, time_budget_ms)
    if reply is None:
        # Only reachable if the stored outcome is stale.
        outcome = classify(position, session.history)
        session = replace(session, outcome=outcome, message=_message(session, position, outcome))
        return TurnResult(session)
    return TurnResult(_advance(session, reply, apply(position, reply)), reply_move=reply.uci())


def play_turn(
    session: GameSession,
    move_text: str,
    rng: random.Random | None = None,
    collaborator: SearchCollaborator | None = None,
    time_budget_ms: int | None = None,
) -> TurnResult:
    """Play the player's move and, if the game goes on, the computer's reply.

    Pawn moves to the last rank without a promotion letter promote to a
    queen.

    Raises:
        IllegalMoveError: With message "Invalid move" for malformed or
            illegal input, or if the game is over or it is not the
            player's turn. ``session`` itself is never modified.
    """
    if session.game_over:
        raise IllegalMoveError("Game is already over")
    position = session.position
    if position.turn is not session.player_color:
        raise IllegalMoveError("It is not the player's turn")

    try:
        move, after = apply_text(position, move_text, default_promotion=PieceType.QUEEN)
    except (FormatError, IllegalMoveError) as exc:
        logger.debug("Rejected player move %r: %s", move_text, exc)
        raise IllegalMoveError("Invalid move") from exc

    session = _advance(session, move, after)
    if session.game_over:
        return TurnResult(session, player_move=move.uci())

    reply = opponent_turn(session, rng, collaborator, time_budget_ms)
    return TurnResult(reply.session, player_move=move.uci(), reply_move=reply.reply_move)
