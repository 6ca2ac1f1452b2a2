"""Tests for structured logging and request_id propagation."""

import json
import logging

from fastapi.testclient import TestClient

from elosya.core.logging import JsonFormatter, log_event
from elosya.main import app


def test_request_id_in_response_and_logs(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="elosya"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"


def test_request_id_in_error_response():
    client = TestClient(app)
    response = client.get("/v1/videos/non-existent")
    rid = response.headers.get("x-request-id")
    assert response.status_code == 404
    assert response.json()["error"]["request_id"] == rid


def test_payout_event_logged(caplog, make_user, make_video):
    make_user("creator")
    make_video("creator", video_id="v1")
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="elosya"):
        for i in range(10):
            client.post("/v1/videos/v1/share")

    payouts = [r for r in caplog.records if r.getMessage() == "ledger.payout"]
    assert len(payouts) == 1
    assert payouts[0].user_id == "creator"
    assert payouts[0].video_id == "v1"
    assert payouts[0].event_type == "share_revenue"


def test_json_formatter_includes_structured_fields():
    record = logging.LogRecord("elosya", logging.INFO, __file__, 1, "ledger.coin_gift", None, None)
    record.request_id = "rid-1"
    record.user_id = "fan"
    record.event_type = "coin_sent"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "ledger.coin_gift"
    assert payload["request_id"] == "rid-1"
    assert payload["user_id"] == "fan"
    assert payload["event_type"] == "coin_sent"
    assert "video_id" not in payload


def test_log_event_truncates_extra(caplog):
    with caplog.at_level(logging.INFO, logger="elosya"):
        log_event("info", "big.event", extra={"blob": "x" * 1000})
    record = [r for r in caplog.records if r.getMessage() == "big.event"][0]
    assert record.blob.endswith("...<truncated>")
    assert len(record.blob) < 600
