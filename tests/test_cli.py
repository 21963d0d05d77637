import json

import pytest
from conftest import FakeSession

import main as cli
from services.api_client import ApiClient


@pytest.fixture
def run(db_path, tmp_path, capsys):
    base = ["--db", str(db_path), "--session", str(tmp_path / "session.json"), "--api", "http://api.test"]

    def _run(*args):
        code = cli.main(base + list(args))
        out = capsys.readouterr()
        return code, out.out, out.err

    return _run


def test_enqueue_list_and_discard(run):
    code, out, _ = run("enqueue", "post", "/api/partes-trabajo/1/notas", "--body", '{"texto": "hola"}')
    assert code == 0
    op_id = out.strip()

    _, out, _ = run("list")
    entries = json.loads(out)
    assert [entry["id"] for entry in entries] == [op_id]
    assert entries[0]["method"] == "POST"
    assert entries[0]["body"] == {"texto": "hola"}

    assert run("discard", op_id)[0] == 0
    assert run("discard", op_id)[0] == 1
    assert json.loads(run("list")[1]) == []


def test_invalid_body_is_reported(run):
    code, _, err = run("enqueue", "POST", "/api/x", "--body", "{oops")
    assert code == 1
    assert "not valid JSON" in err


def test_flush_requires_token(run):
    run("enqueue", "POST", "/api/x")
    code, _, err = run("flush")
    assert code == 1
    assert "login" in err


def test_login_then_flush(monkeypatch, run):
    session = FakeSession([204])
    monkeypatch.setattr(cli, "ApiClient", lambda base_url: ApiClient(base_url=base_url, session=session))
    run("enqueue", "PUT", "/api/x", "--body", "[1, 2]")
    run("login", "tok-1")

    code, out, _ = run("flush")

    assert code == 0
    assert json.loads(out)["ok"] == 1
    assert session.calls[0]["headers"]["Authorization"] == "Bearer tok-1"

    assert session.closed

    status = json.loads(run("status")[1])
    assert status["queue"]["total"] == 0
    assert status["lastFlush"]["ok"] == 1
    assert status["lastFlushAt"] is not None


def test_dead_and_revive(monkeypatch, run):
    session = FakeSession([400])
    monkeypatch.setattr(cli, "ApiClient", lambda base_url: ApiClient(base_url=base_url, session=session))
    op_id = run("enqueue", "POST", "/api/x", "--body", "{}")[1].strip()

    code, _, _ = run("flush", "--token", "tok")
    assert code == 2

    dead = json.loads(run("dead")[1])
    assert [entry["id"] for entry in dead] == [op_id]
    assert dead[0]["lastStatus"] == 400

    assert run("revive", op_id)[0] == 0
    assert json.loads(run("dead")[1]) == []
    assert run("revive", "missing")[0] == 1
