from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from talos.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, db_path: Path, *args: str):
    return runner.invoke(cli, ["--db-path", str(db_path), *args])


def test_new_list_show_rename_delete(runner: CliRunner, db_path: Path, store) -> None:
    result = _invoke(runner, db_path, "new", "llama3", "--title", "Ideas")
    assert result.exit_code == 0, result.output
    conv_id = result.output.strip()

    store.add_message(conv_id, "user", "what now?")

    listed = _invoke(runner, db_path, "list")
    assert conv_id in listed.output
    assert "[llama3]  Ideas" in listed.output

    shown = _invoke(runner, db_path, "show", conv_id)
    assert "what now?" in shown.output

    assert _invoke(runner, db_path, "rename", conv_id, "Plans").exit_code == 0
    assert "Plans" in _invoke(runner, db_path, "list").output

    assert _invoke(runner, db_path, "delete", conv_id).exit_code == 0
    assert "No conversations yet" in _invoke(runner, db_path, "list").output


def test_truncate_reports_deleted_count(runner: CliRunner, db_path: Path, store) -> None:
    conv_id = store.create_conversation("T", "m")
    first = store.add_message(conv_id, "user", "a")
    store.add_message(conv_id, "assistant", "b")
    store.add_message(conv_id, "user", "c")

    result = _invoke(runner, db_path, "truncate", conv_id, first.id)

    assert result.exit_code == 0, result.output
    assert "Deleted 2 messages." in result.output
    assert [m.content for m in store.get_messages(conv_id)] == ["a"]


def test_truncate_with_malformed_id_is_a_clean_error(runner: CliRunner, db_path: Path) -> None:
    result = _invoke(runner, db_path, "truncate", "abc", "def")

    assert result.exit_code == 1
    assert "Error (invalid-identifier)" in result.output


def test_status_when_ollama_is_down(runner: CliRunner, db_path: Path) -> None:
    result = runner.invoke(
        cli, ["--db-path", str(db_path), "--ollama-url", "http://127.0.0.1:9", "status"]
    )

    assert result.exit_code == 1
    assert "disconnected" in result.output


def test_send_when_ollama_is_down_keeps_prompt(runner: CliRunner, db_path: Path, store) -> None:
    conv_id = store.create_conversation("T", "m")

    result = runner.invoke(
        cli,
        ["--db-path", str(db_path), "--ollama-url", "http://127.0.0.1:9", "send", conv_id, "hi"],
    )

    assert result.exit_code == 1
    assert "Error (service-unavailable)" in result.output
    assert [m.content for m in store.get_messages(conv_id)] == ["hi"]


def test_new_defaults_to_configured_model(runner: CliRunner, db_path: Path, store) -> None:
    result = _invoke(runner, db_path, "new")

    assert result.exit_code == 0, result.output
    conv = store.get_conversation(result.output.strip())
    assert conv.model == "llama3"
    assert conv.title == "New Chat"


def test_reset_deletes_the_selected_database_only(
    runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    default_dir = tmp_path / "default"
    default_dir.mkdir()
    (default_dir / "talos.db").write_bytes(b"keep me")
    monkeypatch.setattr("talos.config.DATA_DIR", default_dir)

    other_db = tmp_path / "other" / "talos.db"
    assert _invoke(runner, other_db, "new", "m").exit_code == 0
    assert other_db.exists()

    result = _invoke(runner, other_db, "reset", "--yes")

    assert result.exit_code == 0, result.output
    assert f"Deleted {other_db}" in result.output
    for suffix in ("", "-wal", "-shm"):
        assert not other_db.with_name(other_db.name + suffix).exists()
    assert (default_dir / "talos.db").read_bytes() == b"keep me"


def test_reset_without_data(runner: CliRunner, tmp_path: Path) -> None:
    result = _invoke(runner, tmp_path / "missing.db", "reset", "--yes")

    assert result.exit_code == 0
    assert "No data to delete." in result.output
