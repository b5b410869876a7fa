"""Tests for settings loading."""

from __future__ import annotations

import pytest

from chesscore.config import DEFAULT_EXPERT_DEPTH, DEFAULT_EXPERT_TIME_MS, Settings, load_settings


class TestDefaults:

    def test_empty_environment(self):
        settings = load_settings(environ={})
        assert settings == Settings()
        assert settings.expert_time_ms == DEFAULT_EXPERT_TIME_MS == 2000
        assert settings.expert_depth == DEFAULT_EXPERT_DEPTH == 10
        assert settings.stockfish_path is None
        assert settings.log_level == "WARNING"


class TestEnvironment:

    def test_overrides(self):
        settings = load_settings(environ={
            "STOCKFISH_PATH": "/opt/sf/stockfish",
            "CHESSCORE_EXPERT_TIME_MS": "750",
            "CHESSCORE_EXPERT_DEPTH": "14",
            "CHESSCORE_LOG_LEVEL": "debug",
        })
        assert settings.stockfish_path == "/opt/sf/stockfish"
        assert settings.expert_time_ms == 750
        assert settings.expert_depth == 14
        assert settings.log_level == "DEBUG"

    def test_empty_depth_disables_limit(self):
        assert load_settings(environ={"CHESSCORE_EXPERT_DEPTH": ""}).expert_depth is None

    @pytest.mark.parametrize("value", ["0", "-5", "fast"])
    def test_invalid_time(self, value):
        with pytest.raises(ValueError):
            load_settings(environ={"CHESSCORE_EXPERT_TIME_MS": value})


class TestConfigFile:

    def test_opponent_table(self, tmp_path):
        path = tmp_path / "chesscore.toml"
        path.write_text('[opponent]\nexpert_time_ms = 1500\nstockfish_path = "/srv/sf"\nunknown = 1\n')
        settings = load_settings(path, environ={})
        assert settings.expert_time_ms == 1500
        assert settings.stockfish_path == "/srv/sf"
        assert settings.expert_depth == DEFAULT_EXPERT_DEPTH

    def test_environment_beats_file(self, tmp_path):
        path = tmp_path / "chesscore.toml"
        path.write_text("[opponent]\nexpert_time_ms = 1500\n")
        settings = load_settings(path, environ={"CHESSCORE_EXPERT_TIME_MS": "300"})
        assert settings.expert_time_ms == 300

    def test_path_from_environment(self, tmp_path):
        path = tmp_path / "chesscore.toml"
        path.write_text("[opponent]\nexpert_depth = 6\n")
        settings = load_settings(environ={"CHESSCORE_CONFIG": str(path)})
        assert settings.expert_depth == 6

    def test_missing_file_ignored(self, tmp_path):
        assert load_settings(tmp_path / "absent.toml", environ={}) == Settings()
