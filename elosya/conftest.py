# elosya/conftest.py
import os
from decimal import Decimal

import pytest

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")
os.environ.setdefault("ENV", "test")


@pytest.fixture(scope="function", autouse=True)
def fresh_db():
    """
    Give every test its own in-memory SQLite database.

    StaticPool keeps one connection alive so sessions opened by services and
    by TestClient requests all see the same tables.
    """
    from elosya.core.database import init_engine, create_all_tables, drop_all_tables

    init_engine("sqlite+pysqlite:///:memory:")
    create_all_tables()
    yield
    drop_all_tables()


@pytest.fixture
def make_user():
    """Insert a user/wallet row directly, optionally with an opening balance."""
    from elosya.core.database import get_db_session
    from elosya.features.ledger.persistence import insert_wallet
    from elosya.models.wallet import Wallet

    def _make(user_id: str, balance="0", username=None) -> Wallet:
        wallet = Wallet(user_id=user_id, username=username or user_id, balance=Decimal(str(balance)))
        with get_db_session() as session:
            insert_wallet(session, wallet)
        return wallet

    return _make


@pytest.fixture
def make_video(make_user):
    """Insert a video for `owner_id` (creating the owner unless told not to)."""
    from elosya.core.database import get_db_session
    from elosya.features.videos.persistence import VideoPersistence
    from elosya.models.video import Video

    counter = {"n": 0}

    def _make(owner_id: str, *, video_id=None, monetize=True, visibility="public", create_owner=False) -> Video:
        if create_owner:
            make_user(owner_id)
        counter["n"] += 1
        video = Video(
            video_id=video_id or f"vid-{counter['n']}",
            owner_id=owner_id,
            visibility=visibility,
            monetize=monetize,
            title=f"clip {counter['n']}",
            video_url=f"/uploads/clip-{counter['n']}.mp4",
        )
        with get_db_session() as session:
            VideoPersistence.insert_video(session, video)
        return video

    return _make
