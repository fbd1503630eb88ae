from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from media_router import __version__
from media_router.cli import app

runner = CliRunner()


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_parse_direct_play_search() -> None:
    result = runner.invoke(app, ["parse", "tocar bohemian rhapsody"])

    assert result.exit_code == 0
    assert json.loads(result.output) == {
        "intent": "play",
        "argument": "bohemian rhapsody",
        "target": {"kind": "search", "value": "bohemian rhapsody"},
    }


def test_parse_group_requires_mention() -> None:
    ignored = runner.invoke(app, ["parse", "@bot fila", "--group"])
    addressed = runner.invoke(app, ["parse", "@bot fila", "--group", "--mentioned"])

    assert json.loads(ignored.output)["intent"] == "none"
    assert json.loads(addressed.output) == {"intent": "queue", "argument": ""}


def test_check_prints_redacted_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-v1-abcdefghijkl")
    (tmp_path / "media-router.yml").write_text(
        "handlers:\n  plugins:\n    - my_handlers:echo\n", encoding="utf-8"
    )

    result = runner.invoke(app, ["check", "--path", str(tmp_path)])

    assert result.exit_code == 0
    assert "sk-or-v1-abcdefghijkl" not in result.output
    assert "sk-or-v1-a..." in result.output
    assert "handlers: assistant, my_handlers:echo" in result.output


def test_check_reports_invalid_config(tmp_path: Path) -> None:
    (tmp_path / "media-router.yml").write_text("server:\n  port: 0\n", encoding="utf-8")

    result = runner.invoke(app, ["check", "--path", str(tmp_path)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
