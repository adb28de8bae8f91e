"""Tests for the command-line front end (offline commands only)"""

from __future__ import annotations

import json

import pytest

from grammarguard.cli import build_parser, main


@pytest.fixture(autouse=True)
def _skip_dotenv(monkeypatch):
    monkeypatch.setattr("grammarguard.cli.ensure_env_loaded", lambda: None)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "state.db")


def test_stats_on_fresh_database(db_path, capsys):
    assert main(["--db", db_path, "stats"]) == 0

    out = capsys.readouterr().out
    assert "Total checks:  0" in out
    assert "Accuracy:      0%" in out


def test_import_then_history_and_export(db_path, tmp_path, capsys):
    backup = tmp_path / "backup.json"
    backup.write_text(
        json.dumps(
            {
                "history": [
                    {"id": "a", "timestamp": 1000, "textSnippet": "first", "isPerfect": True},
                    {"id": "b", "timestamp": 2000, "textSnippet": "second", "type": "rewrite", "rewriteStyle": "Casual"},
                ],
                "theme": "dark",
                "colorScheme": "green",
            }
        ),
        encoding="utf-8",
    )

    assert main(["--db", db_path, "import", str(backup)]) == 0
    assert "Imported 2 new entries." in capsys.readouterr().out

    assert main(["--db", db_path, "history"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert "second (Casual)" in lines[0]
    assert "first" in lines[1]

    exported = tmp_path / "out.json"
    assert main(["--db", db_path, "export", str(exported)]) == 0
    bundle = json.loads(exported.read_text(encoding="utf-8"))
    assert [entry["id"] for entry in bundle["history"]] == ["b", "a"]
    assert bundle["theme"] == "dark"
    assert bundle["colorScheme"] == "green"


def test_import_rejects_malformed_file(db_path, tmp_path, capsys):
    backup = tmp_path / "broken.json"
    backup.write_text("{oops", encoding="utf-8")

    assert main(["--db", db_path, "import", str(backup)]) == 1
    assert "Import failed" in capsys.readouterr().out


def test_key_set_show_clear(db_path, capsys):
    assert main(["--db", db_path, "key", "set", "AIzaSyTESTKEY1234"]) == 0
    assert main(["--db", db_path, "key", "show"]) == 0
    shown = capsys.readouterr().out
    assert "AIza...1234" in shown
    assert "AIzaSyTESTKEY1234" not in shown

    assert main(["--db", db_path, "key", "clear"]) == 0
    main(["--db", db_path, "key", "show"])
    assert "No API key stored." in capsys.readouterr().out


def test_check_without_key_reports_credential_hint(db_path, capsys):
    assert main(["--db", db_path, "check", "Their going home"]) == 1

    out = capsys.readouterr().out
    assert "No API key configured" in out
    assert "grammarguard key set" in out


def test_rewrite_style_choices():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["rewrite", "text", "--style", "Shouty"])


def test_short_key_is_fully_masked(db_path, capsys):
    main(["--db", db_path, "key", "set", "abc12345"])

    assert main(["--db", db_path, "key", "show"]) == 0

    shown = capsys.readouterr().out
    assert "********" in shown
    assert "abc1" not in shown
    assert "2345" not in shown


def test_export_to_unwritable_path_reports_error(db_path, tmp_path, capsys):
    target = tmp_path / "missing-dir" / "out.json"

    assert main(["--db", db_path, "export", str(target)]) == 1
    assert "Could not write" in capsys.readouterr().out
