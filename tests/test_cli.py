"""Tests for the command line interface."""

from __future__ import annotations

import pytest
from rich.panel import Panel

from chesscore.cli import build_parser, main, render_board
from chesscore.fen import parse

FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


class TestParser:

    def test_perft_defaults(self):
        args = build_parser().parse_args(["perft", "3"])
        assert args.command == "perft"
        assert args.depth == 3
        assert not args.divide

    def test_play_options(self):
        args = build_parser().parse_args(["play", "--tier", "hard", "--color", "black", "--seed", "7"])
        assert args.tier == "hard"
        assert args.color == "black"
        assert args.seed == 7


class TestCommands:

    def test_perft(self, capsys):
        main(["perft", "2"])
        assert "perft(2) = 400" in capsys.readouterr().out

    def test_perft_divide(self, capsys):
        main(["perft", "1", "--divide"])
        out = capsys.readouterr().out
        assert "e2e4: 1" in out
        assert "Nodes searched: 20" in out

    def test_status_checkmate(self, capsys):
        main(["status", FOOLS_MATE])
        out = capsys.readouterr().out
        assert "Outcome: checkmate" in out
        assert "Side to move: white" in out

    def test_moves_from_square(self, capsys):
        main(["moves", "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", "--square", "e2"])
        out = capsys.readouterr().out
        assert "e2e3 e2e4" in out
        assert "2 legal moves" in out

    def test_bad_fen_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["status", "8/8/8 w - - 0 1"])
        assert exc_info.value.code == 2
        assert "Error" in capsys.readouterr().out

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1


class TestRenderBoard:

    def test_returns_panel(self, start):
        panel = render_board(start, last_move="e2e4", title="VS AI (EASY)")
        assert isinstance(panel, Panel)
        assert panel.title == "VS AI (EASY)"

    def test_white_side_up(self, start):
        table = render_board(start).renderable
        rank_labels = [cell.plain for cell in table.columns[0].cells]
        assert rank_labels[:8] == ["8", "7", "6", "5", "4", "3", "2", "1"]
        assert list(table.columns[1].cells)[0].plain == " \N{BLACK CHESS ROOK} "
        assert list(table.columns[1].cells)[8].plain.strip() == "a"

    def test_flipped(self):
        table = render_board(parse(FOOLS_MATE), flipped=True).renderable
        assert [cell.plain for cell in table.columns[0].cells][:8] == list("12345678")
        assert list(table.columns[1].cells)[8].plain.strip() == "h"

    def test_last_move_highlight(self, start):
        table = render_board(start, last_move="e2e4").renderable
        # Column 5 is the e-file; row 6 is rank 2, row 4 is rank 4.
        e_file = list(table.columns[5].cells)
        assert "yellow" in str(e_file[6].style)
        assert "yellow" in str(e_file[4].style)
        assert "yellow" not in str(e_file[5].style)

    def test_unreadable_last_move_ignored(self, start):
        table = render_board(start, last_move="zz99").renderable
        assert not any("yellow" in str(cell.style) for column in table.columns for cell in column.cells)
