from __future__ import annotations

import json
from pathlib import Path

import pytest

import recall_cli

FOX = "The quick brown fox jumps over the lazy dog. " * 10


def _run(tmp_path: Path, *argv: str) -> int:
    return recall_cli.main(["--db", str(tmp_path / "cli.sqlite3"), "--no-llm", *argv])


def _ingest(tmp_path: Path, url: str, title: str) -> None:
    page = tmp_path / "page.txt"
    page.write_text(FOX, encoding="utf-8")
    assert _run(tmp_path, "ingest", url, "--title", title, "--file", str(page)) == 0


def test_ingest_then_list(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _ingest(tmp_path, "https://fox.dev", "Fox Facts")
    capsys.readouterr()

    assert _run(tmp_path, "--json", "list") == 0
    records = json.loads(capsys.readouterr().out)
    assert [record["title"] for record in records] == ["Fox Facts"]
    assert records[0]["tags"] == ["Quick", "Brown", "Jumps", "Over", "Lazy"]


def test_search_finds_typo(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _ingest(tmp_path, "https://fox.dev", "Fox Facts")
    capsys.readouterr()

    assert _run(tmp_path, "search", "Fxo", "Facts") == 0
    assert "Fox Facts" in capsys.readouterr().out


def test_related_and_stats(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _ingest(tmp_path, "https://fox.dev", "Fox Facts")
    capsys.readouterr()

    assert _run(tmp_path, "--json", "related", "quick", "zebra") == 0
    related = json.loads(capsys.readouterr().out)
    assert related[0]["commonTags"] == ["quick"]

    assert _run(tmp_path, "--json", "stats") == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["totalPages"] == 1
    assert stats["totalTags"] == 5


def test_ingest_short_text_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    page = tmp_path / "page.txt"
    page.write_text("tiny", encoding="utf-8")

    assert _run(tmp_path, "ingest", "https://tiny.dev", "--file", str(page)) == 1
    assert json.loads(capsys.readouterr().out)["error"] == "content too short"


def test_delete_and_clear(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _ingest(tmp_path, "https://fox.dev", "Fox Facts")
    _ingest(tmp_path, "https://dog.dev", "Dog Facts")
    capsys.readouterr()

    assert _run(tmp_path, "delete", "1") == 0
    assert "Deleted page 1." in capsys.readouterr().out
    assert _run(tmp_path, "delete", "1") == 0
    assert "No page with id 1." in capsys.readouterr().out

    assert _run(tmp_path, "clear", "--yes") == 0
    assert "Removed 1 pages." in capsys.readouterr().out
    assert _run(tmp_path, "list") == 0
    assert "No pages found." in capsys.readouterr().out


def test_clear_aborts_without_confirmation(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _ingest(tmp_path, "https://fox.dev", "Fox Facts")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    assert _run(tmp_path, "clear") == 1
    assert "Aborted." in capsys.readouterr().out
