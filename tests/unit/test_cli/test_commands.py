"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest

from sessionlens.cli import main, parse_args
from sessionlens.storage.sqlite import SqliteScreenshotSource


@pytest.fixture
def config_file(tmp_path, monkeypatch: pytest.MonkeyPatch):
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    db_path = tmp_path / "sessionlens.db"
    config = tmp_path / "sessionlens.yaml"
    config.write_text(f"storage:\n  database_path: {db_path}\nlogging:\n  level: WARNING\n")
    return config, db_path


class TestParseArgs:
    def test_process_arguments(self) -> None:
        args = parse_args(["process", "--session", "s1", "--user", "u1", "--batch-size", "10"])
        assert args.command == "process"
        assert args.batch_size == 10
        assert args.analysis_type == "standard"

    def test_session_is_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["summary", "--user", "u1"])


class TestMain:
    def test_process_then_status(self, config_file, work_session, screenshots, capsys) -> None:
        config, db_path = config_file
        source = SqliteScreenshotSource(db_path)
        source.add_session(work_session)
        source.add_screenshots(screenshots)

        code = main(["-c", str(config), "process", "--session", "session-1", "--user", "user-1",
                     "--batch-size", "20"])
        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["analysis_source"] == "heuristic_fallback"
        assert result["screenshot_count"] == 20

        code = main(["-c", str(config), "status", "--session", "session-1", "--user", "user-1"])
        assert code == 0
        status = json.loads(capsys.readouterr().out)
        assert status["pending_screenshots"] == 10

    def test_unknown_session_summary(self, config_file, capsys) -> None:
        config, _ = config_file
        code = main(["-c", str(config), "summary", "--session", "missing", "--user", "user-1"])
        assert code == 1
        assert "not found" in capsys.readouterr().out
