"""HTTP contract for engagement routes."""

from decimal import Decimal

from fastapi.testclient import TestClient

from elosya.api.engagement import get_engagement_service
from elosya.core.errors import ConflictError
from elosya.main import app

client = TestClient(app)


def test_like_toggle_roundtrip(make_user, make_video):
    make_user("creator")
    make_video("creator", video_id="v1")

    first = client.post("/v1/videos/v1/like", headers={"X-User-Id": "alice"})
    assert first.status_code == 200
    body = first.json()
    assert body["liked"] is True
    assert body["likes"] == 1
    assert body["payout"] is None

    second = client.post("/v1/videos/v1/like", headers={"X-User-Id": "alice"})
    assert second.json()["liked"] is False
    assert second.json()["likes"] == 0


def test_like_threshold_reports_payout(make_user, make_video):
    make_user("creator")
    make_video("creator", video_id="v1")
    for i in range(19):
        client.post("/v1/videos/v1/like", headers={"X-User-Id": f"fan-{i}"})

    resp = client.post("/v1/videos/v1/like", headers={"X-User-Id": "fan-19"})
    body = resp.json()
    assert body["likes"] == 20
    assert body["payout"]["kind"] == "like_revenue"
    assert Decimal(body["payout"]["amount"]) == Decimal("0.05")
    assert Decimal(body["earnings"]) == Decimal("0.05")


def test_like_without_identity_is_rejected(make_user, make_video):
    make_user("creator")
    make_video("creator", video_id="v1")
    resp = client.post("/v1/videos/v1/like")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_like_unknown_video():
    resp = client.post("/v1/videos/missing/like", headers={"X-User-Id": "alice"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_share_view_comment(make_user, make_video):
    make_user("creator")
    make_video("creator", video_id="v1")

    assert client.post("/v1/videos/v1/share").json()["shares"] == 1
    assert client.post("/v1/videos/v1/view").json()["views"] == 1
    assert client.post("/v1/videos/v1/comment", headers={"X-User-Id": "bob"}).json()["comments"] == 1
    assert client.post("/v1/videos/missing/share").status_code == 404


def test_send_coins(make_user, make_video):
    make_user("creator")
    make_user("fan", balance="5")
    make_video("creator", video_id="v1")

    resp = client.post("/v1/coins/send", headers={"X-User-Id": "fan"}, json={"video_id": "v1", "amount": 10})
    assert resp.status_code == 200
    body = resp.json()
    assert body["coinsSent"] == 10
    assert Decimal(body["cost"]) == Decimal("1.00")
    assert Decimal(body["receiverCredit"]) == Decimal("0.85")
    assert Decimal(body["platformFee"]) == Decimal("0.15")
    assert Decimal(body["newBalance"]) == Decimal("4.00")
    assert body["coins"] == 10
    assert len(body["transactions"]) == 2


def test_send_coins_insufficient_balance(make_user, make_video):
    make_user("creator")
    make_user("fan", balance="0.10")
    make_video("creator", video_id="v1")

    resp = client.post("/v1/coins/send", headers={"X-User-Id": "fan"}, json={"video_id": "v1", "amount": 5})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "insufficient_balance"
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_send_coins_invalid_amount(make_user, make_video):
    make_user("creator")
    make_user("fan", balance="5")
    make_video("creator", video_id="v1")

    zero = client.post("/v1/coins/send", headers={"X-User-Id": "fan"}, json={"video_id": "v1", "amount": 0})
    assert zero.status_code == 400

    boolean = client.post("/v1/coins/send", headers={"X-User-Id": "fan"}, json={"video_id": "v1", "amount": True})
    assert boolean.status_code == 422

    for loose in ("5", 10.0):
        resp = client.post("/v1/coins/send", headers={"X-User-Id": "fan"}, json={"video_id": "v1", "amount": loose})
        assert resp.status_code == 422


def test_send_coins_huge_amount_is_insufficient_balance(make_user, make_video):
    make_user("creator")
    make_user("fan", balance="5")
    make_video("creator", video_id="v1")

    resp = client.post("/v1/coins/send", headers={"X-User-Id": "fan"}, json={"video_id": "v1", "amount": 10**25})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "insufficient_balance"
    wallet = client.get("/v1/users/fan/wallet").json()
    assert Decimal(wallet["balance"]) == Decimal("5")


def test_conflict_maps_to_409(make_user, make_video):
    class AlwaysConflicting:
        def toggle_like(self, video_id, user_id):
            raise ConflictError("like could not be applied")

    app.dependency_overrides[get_engagement_service] = lambda: AlwaysConflicting()
    try:
        resp = client.post("/v1/videos/v1/like", headers={"X-User-Id": "alice"})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "conflict"
