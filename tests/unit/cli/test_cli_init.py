"""Tests for vela init and the top-level app."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from vela.cli.main import app
from vela.db.connection import Database
from vela.db.schema import CURRENT_VERSION, schema_version

runner = CliRunner()


def _init(tmp_path: Path, db: Path) -> object:
    return runner.invoke(
        app, ["init", "--db", str(db), "--global-config", str(tmp_path / "global" / "config.yaml")]
    )


def test_init_creates_database(tmp_path: Path) -> None:
    db = tmp_path / ".vela.db"
    result = _init(tmp_path, db)

    assert result.exit_code == 0, result.output
    assert db.exists()
    with Database(db) as conn:
        assert schema_version(conn) == CURRENT_VERSION


def test_init_creates_global_config(tmp_path: Path) -> None:
    _init(tmp_path, tmp_path / ".vela.db")
    assert (tmp_path / "global" / "config.yaml").exists()


def test_init_creates_parent_directories(tmp_path: Path) -> None:
    db = tmp_path / "data" / "nested" / "kb.db"
    result = _init(tmp_path, db)
    assert result.exit_code == 0, result.output
    assert db.exists()


def test_init_is_idempotent(tmp_path: Path) -> None:
    db = tmp_path / ".vela.db"
    _init(tmp_path, db)
    result = _init(tmp_path, db)

    assert result.exit_code == 0, result.output
    assert "already initialized" in result.output


def test_init_prints_next_steps(tmp_path: Path) -> None:
    result = _init(tmp_path, tmp_path / ".vela.db")
    assert "vela agents add" in result.output


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("vela ")


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "vela" in result.output
