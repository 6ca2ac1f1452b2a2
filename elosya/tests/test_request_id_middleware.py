import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from elosya.core.logging import get_request_id
from elosya.core.middleware.request_id import RequestIdMiddleware


def _make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/")
    async def root(request: Request):
        return {"request_id": getattr(request.state, "request_id", None), "ctx": get_request_id()}

    @app.post("/v1/videos/{video_id}/like")
    async def like(video_id: str):
        return {"ok": True}

    return app


def test_generates_request_id_when_missing():
    client = TestClient(_make_app())
    resp = client.get("/")
    rid = resp.headers.get("x-request-id")
    assert rid
    assert resp.json() == {"request_id": rid, "ctx": rid}


def test_echoes_provided_request_id():
    client = TestClient(_make_app())
    resp = client.get("/", headers={"X-Request-Id": "test-rid-123"})
    assert resp.headers.get("x-request-id") == "test-rid-123"
    assert resp.json()["request_id"] == "test-rid-123"


def test_context_cleared_after_request():
    client = TestClient(_make_app())
    client.get("/")
    assert get_request_id() is None


def test_ledger_writes_are_flagged(caplog):
    client = TestClient(_make_app())
    with caplog.at_level(logging.INFO, logger="elosya"):
        client.post("/v1/videos/v1/like", headers={"X-User-Id": "alice"})
        client.get("/")

    completions = [r for r in caplog.records if r.getMessage() == "request.complete"]
    assert len(completions) == 2
    like, root = completions
    assert like.ledger_write is True
    assert like.user_id == "alice"
    assert root.ledger_write is False
