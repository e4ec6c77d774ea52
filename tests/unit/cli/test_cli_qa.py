"""Tests for vela qa add / list / show / update / remove."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from vela.cli.main import app
from vela.db.connection import Database
from vela.db.models import Agent, User
from vela.db.repository import Repository
from vela.db.schema import initialize

runner = CliRunner()

_EMBED = "vela.ingest.embeddings.litellm.embedding"


def _fake_embedding(model: str, input: list[str], num_retries: int) -> MagicMock:  # noqa: A002
    response = MagicMock()
    response.data = [
        {"index": i, "embedding": [float(len(text)), 1.0, 0.5, 0.0]} for i, text in enumerate(input)
    ]
    return response


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("vela.config._GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml")
    monkeypatch.setenv("OPENAI_API_KEY", "fake-key")
    monkeypatch.setenv("VELA_TENANT", "u1")
    monkeypatch.delenv("VELA_DB", raising=False)
    monkeypatch.delenv("VELA_EMBEDDING_MODEL", raising=False)
    (tmp_path / "vela.yaml").write_text(
        yaml.dump({"embedding": {"model": "openai/text-embedding-3-small", "dimensions": 4}}),
        encoding="utf-8",
    )


@pytest.fixture
def db(tmp_path: Path) -> Path:
    path = tmp_path / ".vela.db"
    with Database(path) as conn:
        initialize(conn)
        repo = Repository(conn)
        for tenant, agent in (("u1", "agent-1"), ("u2", "agent-2")):
            repo.add_user(User(id=tenant, email=f"{tenant}@example.com"))
            repo.add_agent(Agent(id=agent, user_id=tenant, name=f"Bot {tenant}", slug="bot"))
    return path


def _count(db: Path, table: str) -> int:
    with Database(db) as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def _add(db: Path, *questions: str, answer: str = "<b>9-5</b> M-F") -> object:
    args = ["qa", "add", "--agent", "agent-1", "--answer", answer, "--db", str(db)]
    for q in questions:
        args += ["-q", q]
    with patch(_EMBED, side_effect=_fake_embedding):
        return runner.invoke(app, args)


def _source_id(output: str) -> str:
    for line in output.splitlines():
        if line.strip().startswith("id:"):
            return line.split("id:", 1)[1].strip()
    raise AssertionError(f"no id in output:\n{output}")


# ---------------------------------------------------------------------------
# qa add
# ---------------------------------------------------------------------------


def test_qa_add_no_db_exits_1(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["qa", "add", "--agent", "agent-1", "-q", "Hours?", "--answer", "9-5",
              "--db", str(tmp_path / "missing.db")]
    )
    assert result.exit_code == 1
    assert "vela init" in result.output


def test_qa_add_creates_source_and_chunks(db: Path) -> None:
    result = _add(db, "What are your hours?", "When are you open?")

    assert result.exit_code == 0, result.output
    assert "2 chunks" in result.output
    assert _count(db, "qa_sources") == 1
    assert _count(db, "qa_source_chunks") == 2


def test_qa_add_sends_one_batch(db: Path) -> None:
    with patch(_EMBED, side_effect=_fake_embedding) as mock:
        result = runner.invoke(
            app,
            ["qa", "add", "--agent", "agent-1", "-q", "A?", "-q", "B?", "--answer", "<i>Yes</i>",
             "--db", str(db)],
        )
    assert result.exit_code == 0, result.output
    mock.assert_called_once()
    assert mock.call_args.kwargs["input"] == ["Q: A?\nA: Yes", "Q: B?\nA: Yes"]


def test_qa_add_answer_file(db: Path, tmp_path: Path) -> None:
    answer_file = tmp_path / "answer.html"
    answer_file.write_text("<p>We ship worldwide.</p>", encoding="utf-8")
    with patch(_EMBED, side_effect=_fake_embedding):
        result = runner.invoke(
            app,
            ["qa", "add", "--agent", "agent-1", "-q", "Shipping?", "--answer-file", str(answer_file),
             "--db", str(db)],
        )
    assert result.exit_code == 0, result.output
    with Database(db) as conn:
        assert conn.execute("SELECT answer FROM qa_sources").fetchone()[0] == "<p>We ship worldwide.</p>"


def test_qa_add_without_questions_exits_2(db: Path) -> None:
    result = _add(db)
    assert result.exit_code == 2
    assert "At least one question required" in result.output
    assert _count(db, "qa_sources") == 0


def test_qa_add_foreign_agent_exits_4(db: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VELA_TENANT", "u2")
    result = _add(db, "Hours?")
    assert result.exit_code == 4
    assert "agent not found" in result.output


def test_qa_add_without_tenant_exits_3(db: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VELA_TENANT")
    result = _add(db, "Hours?")
    assert result.exit_code == 3


def test_qa_add_provider_failure_exits_6_and_writes_nothing(db: Path) -> None:
    with patch(_EMBED, side_effect=RuntimeError("rate limited")):
        result = runner.invoke(
            app, ["qa", "add", "--agent", "agent-1", "-q", "Hours?", "--answer", "9-5", "--db", str(db)]
        )
    assert result.exit_code == 6
    assert "No changes were saved" in result.output
    assert _count(db, "qa_sources") == 0
    assert _count(db, "qa_source_chunks") == 0


def test_qa_add_missing_api_key_exits_6(db: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY")
    result = _add(db, "Hours?")
    assert result.exit_code == 6
    assert "OPENAI_API_KEY" in result.output


# ---------------------------------------------------------------------------
# qa list / show
# ---------------------------------------------------------------------------


def test_qa_list_shows_sources(db: Path) -> None:
    _add(db, "Hours?")
    result = runner.invoke(app, ["qa", "list", "--agent", "agent-1", "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert "Hours?" in result.output


def test_qa_list_empty(db: Path) -> None:
    result = runner.invoke(app, ["qa", "list", "--agent", "agent-1", "--db", str(db)])
    assert result.exit_code == 0
    assert "No Q&A sources" in result.output


def test_qa_show_prints_answer_and_chunks(db: Path) -> None:
    source_id = _source_id(_add(db, "Hours?", "Open when?").output)
    result = runner.invoke(app, ["qa", "show", source_id, "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert "<b>9-5</b> M-F" in result.output
    assert "Open when?" in result.output


def test_qa_show_other_tenant_exits_4(db: Path) -> None:
    source_id = _source_id(_add(db, "Hours?").output)
    foreign = runner.invoke(app, ["qa", "show", source_id, "--tenant", "u2", "--db", str(db)])
    missing = runner.invoke(app, ["qa", "show", "no-such-id", "--tenant", "u2", "--db", str(db)])
    assert foreign.exit_code == missing.exit_code == 4
    assert foreign.output == missing.output


# ---------------------------------------------------------------------------
# qa update
# ---------------------------------------------------------------------------


def test_qa_update_questions_keeps_answer(db: Path) -> None:
    source_id = _source_id(_add(db, "What are your hours?").output)
    with patch(_EMBED, side_effect=_fake_embedding) as mock:
        result = runner.invoke(
            app, ["qa", "update", source_id, "-q", "When are you open?", "--db", str(db)]
        )
    assert result.exit_code == 0, result.output
    assert mock.call_args.kwargs["input"] == ["Q: When are you open?\nA: 9-5 M-F"]
    with Database(db) as conn:
        row = conn.execute("SELECT question, content FROM qa_source_chunks").fetchall()
    assert [tuple(r) for r in row] == [("When are you open?", "Q: When are you open?\nA: 9-5 M-F")]


def test_qa_update_nothing_to_change_exits_2(db: Path) -> None:
    source_id = _source_id(_add(db, "Hours?").output)
    result = runner.invoke(app, ["qa", "update", source_id, "--db", str(db)])
    assert result.exit_code == 2
    assert "questions or answer required" in result.output


def test_qa_update_provider_failure_keeps_chunks(db: Path) -> None:
    source_id = _source_id(_add(db, "A?", "B?").output)
    with patch(_EMBED, side_effect=RuntimeError("timeout")):
        result = runner.invoke(app, ["qa", "update", source_id, "--answer", "New", "--db", str(db)])
    assert result.exit_code == 6
    assert _count(db, "qa_source_chunks") == 2
    with Database(db) as conn:
        assert conn.execute("SELECT answer FROM qa_sources").fetchone()[0] == "<b>9-5</b> M-F"


# ---------------------------------------------------------------------------
# qa remove
# ---------------------------------------------------------------------------


def test_qa_remove_with_yes(db: Path) -> None:
    source_id = _source_id(_add(db, "A?", "B?").output)
    result = runner.invoke(app, ["qa", "remove", source_id, "--yes", "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert "2 chunks deleted" in result.output
    assert _count(db, "qa_sources") == 0
    assert _count(db, "qa_source_chunks") == 0


def test_qa_remove_declined(db: Path) -> None:
    source_id = _source_id(_add(db, "A?").output)
    result = runner.invoke(app, ["qa", "remove", source_id, "--db", str(db)], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert _count(db, "qa_sources") == 1


def test_qa_remove_other_tenant_exits_4(db: Path) -> None:
    source_id = _source_id(_add(db, "A?").output)
    result = runner.invoke(app, ["qa", "remove", source_id, "--yes", "--tenant", "u2", "--db", str(db)])
    assert result.exit_code == 4
    assert _count(db, "qa_sources") == 1
