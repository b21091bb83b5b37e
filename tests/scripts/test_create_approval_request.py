"""Tests for scripts/create_approval_request.py."""

import importlib.util
from pathlib import Path

import pytest
from sqlalchemy import select

from grade_kernel.db.engine import get_session_factory, reset_engine
from grade_kernel.models.approval import ApprovalRecipientModel, ApprovalRequestModel

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "create_approval_request.py"


@pytest.fixture
def cli(monkeypatch, tmp_path):
    spec = importlib.util.spec_from_file_location("create_approval_request", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    monkeypatch.delenv("GRADE_CONFIG_PATH", raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    yield module
    reset_engine()


def stored_requests():
    with get_session_factory()() as session:
        requests = session.execute(select(ApprovalRequestModel)).scalars().all()
        return [
            (r.title, r.requested_by, r.action_key, r.action_payload, [x.user_id for x in r.recipients])
            for r in requests
        ]


def test_creates_request(cli, capsys):
    exit_code = cli.main([
        "Ingreso al grupo 4", "12",
        "--action-key", "project_group.add_member",
        "--payload", '{"group_id": 4, "user_id": 12}',
        "--recipient", "7", "--recipient", "9", "--recipient", "7",
        "--create-tables",
    ])

    assert exit_code == 0
    assert stored_requests() == [
        ("Ingreso al grupo 4", 12, "project_group.add_member",
         {"group_id": 4, "user_id": 12}, [7, 9]),
    ]
    out = capsys.readouterr().out
    assert "Created approval request #1" in out
    assert "Recipients: 7, 9" in out


def test_requester_is_default_recipient(cli):
    assert cli.main(["Solo yo", "5", "--create-tables"]) == 0

    assert stored_requests() == [("Solo yo", 5, "noop", None, [5])]


def test_prompts_for_missing_arguments(cli, monkeypatch):
    answers = iter(["", "Título preguntado", "8"])
    monkeypatch.setattr("builtins.input", lambda prompt: next(answers))

    assert cli.main(["--create-tables"]) == 0

    assert stored_requests()[0][:2] == ("Título preguntado", 8)


def test_payload_must_be_an_object(cli, capsys):
    assert cli.main(["Mala carga", "5", "--payload", "[1, 2]", "--create-tables"]) == 2
    assert "--payload must be a JSON object" in capsys.readouterr().err


def test_bad_recipient(cli):
    assert cli.main(["Mala", "5", "--recipient", "siete", "--create-tables"]) == 2
