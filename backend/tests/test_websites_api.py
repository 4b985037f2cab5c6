from __future__ import annotations

from typing import Any

import pytest
import structlog
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from abtercms.ids import IdGenerator

PROBLEM_JSON = "application/problem+json"


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, event: str, **kwargs: Any) -> None:
        self.events.append(("info", event, kwargs))

    def error(self, event: str, **kwargs: Any) -> None:
        self.events.append(("error", event, kwargs))


@pytest.fixture
def access_log(monkeypatch) -> _RecordingLogger:
    from abtercms.middleware import access_log as access_log_module

    rec = _RecordingLogger()
    monkeypatch.setattr(access_log_module, "get_logger", lambda _name=None: rec)
    return rec


@pytest.fixture
def make_client(websites_repo, access_log):
    from abtercms.dependencies import get_id_generator, get_websites_repo
    from abtercms.main import create_app

    def _make(repo: Any = websites_repo) -> TestClient:
        app = create_app()
        app.dependency_overrides[get_websites_repo] = lambda: repo
        app.dependency_overrides[get_id_generator] = lambda: IdGenerator()
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def _assert_problem(r, status: int) -> dict[str, Any]:
    assert r.status_code == status
    assert r.headers.get("content-type", "").startswith(PROBLEM_JSON)
    body = r.json()
    assert body["status"] == status
    assert body["detail"]
    assert str(status) in body["type"]
    assert body.get("requestId")
    return body


def test_crud_lifecycle(client):
    r = client.post("/websites", json={"name": "bar"})
    assert r.status_code == 201
    created = r.json()
    wid = created["pk"]
    assert len(wid) == 26
    assert created["name"] == "bar"

    r = client.get(f"/websites/{wid}")
    assert r.status_code == 200
    assert r.json() == created

    r = client.put(f"/websites/{wid}", json={"name": "baz", "url": "https://example.com"})
    assert r.status_code == 200
    assert r.json()["pk"] == wid

    r = client.get(f"/websites/{wid}")
    assert r.json()["name"] == "baz"
    assert r.json()["url"] == "https://example.com"

    r = client.delete(f"/websites/{wid}")
    assert r.status_code == 204

    r = client.get(f"/websites/{wid}")
    body = _assert_problem(r, 404)
    assert body["detail"] == "item not found"
    assert body["title"] == "Not Found"


def test_create_rejects_client_supplied_primary_key(client, fake_client):
    r = client.post("/websites", json={"pk": "abc", "name": "bar"})

    body = _assert_problem(r, 400)
    assert body["detail"] == "primary key is not allowed when creating entity: abc"
    assert fake_client.items == {}


def test_update_rejects_mismatched_primary_key(client, fake_client):
    r = client.put("/websites/abc", json={"pk": "other", "name": "bar"})

    body = _assert_problem(r, 400)
    assert "does not match" in body["detail"]
    assert fake_client.items == {}


def test_update_upserts_missing_entity(client):
    r = client.put("/websites/brand-new", json={"name": "bar"})
    assert r.status_code == 200

    r = client.get("/websites/brand-new")
    assert r.status_code == 200
    assert r.json()["pk"] == "brand-new"


def test_delete_missing_entity_is_no_content(client):
    r = client.delete("/websites/never-existed")
    assert r.status_code == 204


def test_list_pages_with_cursor(client):
    for name in ("a", "b", "c"):
        assert client.post("/websites", json={"name": name}).status_code == 201

    r = client.get("/websites", params={"limit": 2})
    assert r.status_code == 200
    first = r.json()
    assert len(first["items"]) == 2
    assert first["scanned_count"] == 2
    cursor = first["last_evaluated_key"]
    assert cursor == first["items"][-1]["pk"]

    r = client.get("/websites", params={"limit": 2, "exclusive_start_key": cursor})
    second = r.json()
    assert len(second["items"]) == 1
    assert "last_evaluated_key" not in second

    names = {w["name"] for w in first["items"] + second["items"]}
    assert names == {"a", "b", "c"}


def test_list_empty_omits_cursor_and_count(client):
    r = client.get("/websites")
    assert r.status_code == 200
    assert r.json() == {"items": []}


def test_list_clamps_limit(client, fake_client):
    client.get("/websites", params={"limit": 100000})
    client.get("/websites", params={"limit": -5})
    client.get("/websites", params={"limit": 0})
    client.get("/websites")

    limits = [kw["Limit"] for op, kw in fake_client.calls if op == "Scan"]
    assert limits == [100, 1, 1, 25]


def test_backend_failure_is_problem_500(client, fake_client):
    fake_client.fail_with = ClientError(
        {"Error": {"Code": "InternalServerError", "Message": "boom"}}, "Scan"
    )

    r = client.get("/websites")

    body = _assert_problem(r, 500)
    assert body["detail"] == "failed to fetch items"
    assert body["title"] == "Internal Server Error"


def test_validation_errors_are_problem_json(client):
    r = client.post("/websites", json={})

    body = _assert_problem(r, 422)
    assert body["detail"] == "Request validation failed"
    assert isinstance(body["errors"], list)
    assert body["errors"][0]["path"] == "name"


def test_unknown_route_is_problem_json(client):
    r = client.get("/this-route-does-not-exist")

    body = _assert_problem(r, 404)
    assert body["detail"] == "Route not found"


class _ExplodingRepo:
    def list(self, *_args, **_kwargs):
        raise RuntimeError("boom")


def test_unhandled_exception_is_problem_500(make_client, access_log):
    client = make_client(_ExplodingRepo())

    r = client.get("/websites")

    body = _assert_problem(r, 500)
    assert body["detail"] == "boom"

    level, event, fields = access_log.events[-1]
    assert level == "error"
    assert event == "GET /websites"
    assert fields["status_code"] == 500
    assert fields["error"] == "boom"


def test_unhandled_exception_is_logged_with_traceback(make_client, monkeypatch):
    from abtercms import main as main_module

    rec = _RecordingLogger()
    monkeypatch.setattr(main_module, "get_logger", lambda _name=None: rec)
    client = make_client(_ExplodingRepo())

    client.get("/websites")

    level, event, fields = next(e for e in rec.events if e[1] == "unhandled_exception")
    assert level == "error"
    assert fields["error"] == "boom"
    assert isinstance(fields["exc_info"], RuntimeError)

    rendered = structlog.processors.format_exc_info(None, "error", {"event": event, **fields})
    assert "RuntimeError: boom" in rendered["exception"]


def test_unhandled_exception_response_echoes_request_id(make_client):
    client = make_client(_ExplodingRepo())

    r = client.get("/websites", headers={"X-Request-Id": "rid-1"})

    assert r.status_code == 500
    assert r.headers.get("X-Request-Id") == "rid-1"
    assert r.json()["requestId"] == "rid-1"


def test_access_log_records_status_and_error(client, access_log):
    client.get("/websites/missing")

    level, event, fields = access_log.events[-1]
    assert level == "info"
    assert event == "GET /websites/missing"
    assert fields["http_method"] == "GET"
    assert fields["path"] == "/websites/missing"
    assert fields["status_code"] == 404
    assert "item not found" in fields["error"]


def test_request_id_is_generated_and_returned(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers.get("X-Request-Id")


def test_request_id_is_propagated_from_client(client):
    r = client.get("/websites/missing", headers={"X-Request-Id": "abc-123"})

    assert r.headers.get("X-Request-Id") == "abc-123"
    assert r.json()["requestId"] == "abc-123"


def test_health_is_excluded_from_access_log(client, access_log):
    client.get("/")
    assert access_log.events == []
