"""Command line interface: play against the computer, run perft, inspect positions.

Renders boards with Rich. Subcommands:
- play: interactive game against a chosen tier
- perft: count leaf positions to a depth (optionally per root move)
- moves: list legal moves of a position
- status: classify a position
"""

from __future__ import annotations

import argparse
import logging
import random
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from chesscore.config import load_settings
from chesscore.engine import EngineCollaborator
from chesscore.errors import FormatError, IllegalMoveError
from chesscore.fen import STARTING_FEN, parse, parse_move_text
from chesscore.models import (
    FILE_NAMES,
    RANK_NAMES,
    Color,
    Move,
    Piece,
    Position,
    Tier,
    parse_square,
    square_file,
    square_index,
    square_rank,
)
from chesscore.movegen import generate
from chesscore.outcome import classify
from chesscore.position import perft, perft_divide
from chesscore.session import GameSession, new_session, opponent_turn, play_turn

# Unicode piece symbols
_PIECE_SYMBOLS = {
    "K": "♔", "Q": "♕", "R": "♖", "B": "♗",
    "N": "♘", "P": "♙",
    "k": "♚", "q": "♛", "r": "♜", "b": "♝",
    "n": "♞", "p": "♟",
}

_LIGHT_SQ = "grey85"
_DARK_SQ = "grey50"
_HIGHLIGHT = "yellow"


def _highlighted(last_move: str | None) -> frozenset[int]:
    if not last_move:
        return frozenset()
    try:
        origin, destination, _ = parse_move_text(last_move)
    except FormatError:
        return frozenset()
    return frozenset((origin, destination))


def _square_cell(piece: Piece | None, square: int, highlighted: frozenset[int]) -> Text:
    if square in highlighted:
        background = _HIGHLIGHT
    elif (square_file(square) + square_rank(square)) % 2:
        background = _LIGHT_SQ
    else:
        background = _DARK_SQ
    glyph = _PIECE_SYMBOLS[piece.symbol()] if piece is not None else " "
    return Text(f" {glyph} ", style=f"on {background}")


def render_board(
    position: Position,
    last_move: str | None = None,
    flipped: bool = False,
    title: str = "chesscore",
) -> Panel:
    """Render a position as a Rich Panel.

    Args:
        position: Position to draw.
        last_move: Move text whose squares are highlighted.
        flipped: Draw from black's side.
        title: Panel title.

    Returns:
        Panel containing the board.
    """
    highlighted = _highlighted(last_move)
    ranks = range(8) if flipped else range(7, -1, -1)
    files = ranks[::-1]

    table = Table(show_header=False, show_edge=False, pad_edge=False,
                  box=None, padding=(0, 1))
    table.add_column(width=2, justify="right")
    for _ in files:
        table.add_column(width=3, justify="center")

    for rank in ranks:
        squares = [square_index(file, rank) for file in files]
        table.add_row(
            Text(RANK_NAMES[rank], style="bold"),
            *(_square_cell(position.piece_at(sq), sq, highlighted) for sq in squares),
        )
    table.add_row(Text(""), *(Text(f" {FILE_NAMES[file]} ", style="bold") for file in files))

    return Panel(table, title=title, border_style="blue")


def _print_session(console: Console, session: GameSession, last_move: str | None) -> None:
    console.print(render_board(
        session.position,
        last_move=last_move,
        flipped=session.player_color is Color.BLACK,
        title=session.message,
    ))


def _cli_play(
    console: Console,
    tier: Tier,
    color: Color,
    seed: int | None,
    engine_path: str | None,
) -> None:
    """Interactive game loop against the computer."""
    settings = load_settings()
    rng = random.Random(seed)
    collaborator = None
    if tier is Tier.EXPERT:
        collaborator = EngineCollaborator(engine_path=engine_path, settings=settings)

    try:
        session = new_session(tier, player_color=color)
        last_move = None
        if not session.players_turn:
            result = opponent_turn(session, rng, collaborator, settings.expert_time_ms)
            session, last_move = result.session, result.reply_move
            console.print(f"AI plays: {last_move}")
        _print_session(console, session, last_move)

        while not session.game_over:
            user_input = console.input("Your move (e.g. e2e4, 'q' to quit): ").strip()
            if user_input.lower() == "q":
                console.print("Game ended by user.")
                return
            try:
                result = play_turn(session, user_input, rng, collaborator, settings.expert_time_ms)
            except IllegalMoveError as exc:
                console.print(f"[red]{exc}[/red]")
                continue

            session = result.session
            last_move = result.reply_move or result.player_move
            if result.reply_move:
                console.print(f"AI plays: {result.reply_move}")
            _print_session(console, session, last_move)

        console.print(f"Game over: {session.message}")
    finally:
        if collaborator is not None:
            collaborator.close()


def _cli_perft(console: Console, fen: str, depth: int, divide: bool) -> None:
    position = parse(fen)
    if divide:
        counts = perft_divide(position, depth)
        for move_text, count in counts.items():
            console.print(f"{move_text}: {count}")
        console.print(f"\nNodes searched: {sum(counts.values())}")
    else:
        console.print(f"perft({depth}) = {perft(position, depth)}")


def _cli_moves(console: Console, fen: str, square: str | None) -> None:
    position = parse(fen)
    moves = sorted(generate(position), key=Move.sort_key)
    if square is not None:
        origin = parse_square(square.lower())
        moves = [m for m in moves if m.from_square == origin]
    console.print(render_board(position))
    console.print(" ".join(m.uci() for m in moves) or "(no legal moves)")
    console.print(f"{len(moves)} legal moves")


def _cli_status(console: Console, fen: str) -> None:
    position = parse(fen)
    outcome = classify(position)
    console.print(render_board(position, title=outcome.value))
    console.print(f"Side to move: {position.turn.label}")
    console.print(f"Outcome: {outcome.value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chesscore",
        description="Chess position engine - play the computer or inspect positions",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    play_parser = subparsers.add_parser("play", help="Play against the computer")
    play_parser.add_argument(
        "--tier", default="novice",
        help="novice, intermediate or expert (easy/medium/hard also accepted)",
    )
    play_parser.add_argument("--color", choices=["white", "black"], default="white")
    play_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    play_parser.add_argument("--engine", default=None, help="Path to a UCI engine binary")

    perft_parser = subparsers.add_parser("perft", help="Count leaf positions")
    perft_parser.add_argument("depth", type=int, help="Search depth in plies")
    perft_parser.add_argument("--fen", default=STARTING_FEN, help="Start position")
    perft_parser.add_argument("--divide", action="store_true", help="Show counts per root move")

    moves_parser = subparsers.add_parser("moves", help="List legal moves")
    moves_parser.add_argument("fen", type=str, help="FEN string")
    moves_parser.add_argument("--square", default=None, help="Only moves from this square")

    status_parser = subparsers.add_parser("status", help="Classify a position")
    status_parser.add_argument("fen", type=str, help="FEN string")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    console = Console()

    try:
        if args.command == "play":
            color = Color.WHITE if args.color == "white" else Color.BLACK
            _cli_play(console, Tier.from_name(args.tier), color, args.seed, args.engine)
        elif args.command == "perft":
            _cli_perft(console, args.fen, args.depth, args.divide)
        elif args.command == "moves":
            _cli_moves(console, args.fen, args.square)
        elif args.command == "status":
            _cli_status(console, args.fen)
        else:
            parser.print_help()
            sys.exit(1)
    except (FormatError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)


if __name__ == "__main__":
    main()
