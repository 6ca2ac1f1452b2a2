from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from elosya.core.errors import NotFoundError, ValidationError
from elosya.features.earnings.service import EarningsService, local_midnight
from elosya.features.engagement.service import EngagementService


@pytest.fixture
def creator_with_activity(make_user, make_video):
    make_user("creator")
    make_user("fan", balance="10")
    make_video("creator", video_id="v1")
    make_video("creator", video_id="v2")

    engagement = EngagementService()
    for i in range(20):
        engagement.toggle_like("v1", f"fan-{i}")
    for _ in range(10):
        engagement.share("v2")
    engagement.send_coins("v1", "fan", 10)
    return "creator"


def test_summary_totals(creator_with_activity):
    summary = EarningsService().get_summary("creator", now=datetime.now(timezone.utc))

    assert summary.videos_count == 2
    assert summary.total_earnings == Decimal("1.00")
    assert summary.today_earnings == Decimal("1.00")
    assert summary.wallet_balance == Decimal("1.00")
    assert summary.lifetime_earnings == Decimal("1.00")
    assert summary.by_source == {
        "views": Decimal("0"),
        "likes": Decimal("0.05"),
        "shares": Decimal("0.10"),
        "comments": Decimal("0"),
        "coins": Decimal("0.85"),
    }
    assert summary.eligibility.eligible is False
    assert summary.eligibility.missing_requirements == ["8 more videos required"]


def test_sender_coin_bucket_is_negative(creator_with_activity):
    summary = EarningsService().get_summary("fan")
    assert summary.by_source["coins"] == Decimal("-1.00")
    assert summary.total_earnings == Decimal("0")
    assert summary.videos_count == 0
    assert summary.wallet_balance == Decimal("9.00")


def test_today_excludes_videos_updated_before_midnight(creator_with_activity):
    later = datetime.now(timezone.utc) + timedelta(days=2)
    summary = EarningsService().get_summary("creator", now=later)
    assert summary.today_earnings == Decimal("0")
    assert summary.total_earnings == Decimal("1.00")


def test_unknown_user_not_found():
    with pytest.raises(NotFoundError):
        EarningsService().get_summary("ghost")


def test_summary_to_dict_uses_strings(creator_with_activity):
    payload = EarningsService().get_summary("creator").to_dict()
    assert payload["userId"] == "creator"
    assert Decimal(payload["totalEarnings"]) == Decimal("1.00")
    assert set(payload["bySource"]) == {"views", "likes", "shares", "comments", "coins"}
    assert payload["eligibility"]["requirements"]["minVideos"] == "10"


def test_list_transactions_newest_first(creator_with_activity):
    entries = EarningsService().list_transactions("creator")
    assert len(entries) == 3
    assert entries[0].kind.value == "coin_received"
    assert entries[-1].kind.value == "like_revenue"


def test_list_transactions_limit(creator_with_activity):
    assert len(EarningsService().list_transactions("creator", limit=1)) == 1
    with pytest.raises(ValidationError):
        EarningsService().list_transactions("creator", limit=0)


def test_local_midnight_keeps_timezone():
    now = datetime(2024, 5, 3, 15, 30, tzinfo=timezone(timedelta(hours=2)))
    midnight = local_midnight(now)
    assert midnight == datetime(2024, 5, 3, 0, 0, tzinfo=timezone(timedelta(hours=2)))
