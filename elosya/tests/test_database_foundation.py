"""Tests for engine selection and the ledger schema."""

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import QueuePool, StaticPool

import pytest

from elosya.core import database
from elosya.core.database import get_db_session, get_engine, check_connection
from elosya.features.videos.persistence import VideoPersistence


def test_test_database_url_wins(monkeypatch):
    monkeypatch.setenv("TEST_DATABASE_URL", "postgresql://u:p@localhost/elosya_test")
    assert database.get_database_url() == "postgresql://u:p@localhost/elosya_test"


def test_sqlite_fallback_outside_production(monkeypatch):
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.setattr(database.settings, "DATABASE_URL", None)
    monkeypatch.setattr(database.settings, "ENV", "development")
    assert database.get_database_url() == "sqlite:///./elosya.db"

    monkeypatch.setattr(database.settings, "ENV", "production")
    assert database.get_database_url() is None


def test_engine_kwargs_by_backend():
    assert database._engine_kwargs("sqlite+pysqlite:///:memory:")["poolclass"] is StaticPool
    assert "poolclass" not in database._engine_kwargs("sqlite:///./elosya.db")
    assert database._engine_kwargs("sqlite:///./elosya.db")["connect_args"]["timeout"] == database.SQLITE_BUSY_TIMEOUT
    server = database._engine_kwargs("postgresql://u:p@localhost/elosya")
    assert server["poolclass"] is QueuePool
    assert server["pool_size"] == database.POOL_SIZE


def test_tables_created():
    inspector = inspect(get_engine())
    for table in ("app_users", "videos", "video_likes", "transactions"):
        assert inspector.has_table(table)
    assert check_connection() is True


def test_like_rows_are_unique(make_user, make_video):
    make_user("creator")
    make_video("creator", video_id="v1")
    with get_db_session() as session:
        VideoPersistence.add_like(session, "v1", "alice")

    with pytest.raises(IntegrityError):
        with get_db_session() as session:
            VideoPersistence.add_like(session, "v1", "alice")

    with get_db_session() as session:
        assert VideoPersistence.load_likes(session, "v1") == frozenset({"alice"})
