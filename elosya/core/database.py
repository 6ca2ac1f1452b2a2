"""
Relational storage for Elosya.

Holds the process-wide engine and session factory plus the SQLAlchemy Core
tables behind the content store (videos, likes), the ledger store (wallets)
and the transaction log.

Server databases get a QueuePool. SQLite gets a same-thread-agnostic
connection, and in-memory SQLite a StaticPool so every session shares one
database.
"""
import logging
import os
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import event, create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Numeric, Index, ForeignKey, UniqueConstraint, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import func

from elosya.core.config import settings

logger = logging.getLogger("elosya")

metadata = MetaData()

POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # seconds
SQLITE_BUSY_TIMEOUT = 30  # seconds a writer waits for the database lock

# Money: 4 decimal places, enough for per-coin fractions
MONEY = Numeric(14, 4, asdecimal=True)

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url() -> Optional[str]:
    """
    Resolve the database URL.

    Order: TEST_DATABASE_URL env var, then settings.DATABASE_URL, then (outside
    production only) the local SQLite file.
    """
    url = os.getenv("TEST_DATABASE_URL") or settings.DATABASE_URL
    if url:
        return url
    if settings.ENV.lower() == "production":
        return None
    return settings.SQLITE_FALLBACK_URL


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {
            "poolclass": QueuePool,
            "pool_size": POOL_SIZE,
            "max_overflow": MAX_OVERFLOW,
            "pool_timeout": POOL_TIMEOUT,
            "pool_recycle": POOL_RECYCLE,
        }
    kwargs = {"connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}}
    if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


def _begin_immediate_on_sqlite(engine: Engine) -> None:
    """
    Take the SQLite write lock when a transaction begins.

    pysqlite defers BEGIN until the first write, so two transactions can read
    the same row version and then collide on the lock upgrade. BEGIN IMMEDIATE
    makes them queue on the busy timeout instead.
    """

    @event.listens_for(engine, "connect")
    def _manual_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine(database_url: Optional[str] = None) -> Engine:
    """(Re)build the engine and session factory, disposing any previous engine."""
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured (required in production)")

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(url, echo=False, **_engine_kwargs(url))
    if url.startswith("sqlite"):
        _begin_immediate_on_sqlite(_engine)
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """Session scope: commit on success, roll back on any exception."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables() -> None:
    """Create missing tables (idempotent)."""
    metadata.create_all(bind=get_engine())


def drop_all_tables() -> None:
    """Drop every table. Tests and local development only."""
    metadata.drop_all(bind=get_engine())


def check_connection() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
    return True


# Users and wallets (ledger store)
users = Table(
    'app_users',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('username', String(100), nullable=False, unique=True),
    Column('wallet_balance', MONEY, nullable=False, server_default='0'),
    Column('total_earnings', MONEY, nullable=False, server_default='0'),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
)

# Videos (content store)
videos = Table(
    'videos',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('owner_id', String(100), ForeignKey('app_users.user_id'), nullable=False, index=True),
    Column('title', String(100), nullable=False),
    Column('description', Text, nullable=True),
    Column('hashtags', JSON, nullable=False),
    Column('video_url', Text, nullable=False),
    Column('thumbnail_url', Text, nullable=True),
    Column('location', String(200), nullable=True),
    Column('visibility', String(20), nullable=False, server_default='public'),
    Column('monetize', Boolean, nullable=False, server_default='true'),
    Column('views', Integer, nullable=False, server_default='0'),
    Column('likes', Integer, nullable=False, server_default='0'),
    Column('comments', Integer, nullable=False, server_default='0'),
    Column('shares', Integer, nullable=False, server_default='0'),
    Column('coins', Integer, nullable=False, server_default='0'),
    Column('earnings', MONEY, nullable=False, server_default='0'),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Creator listing: (owner_id, created_at)
    Index('idx_videos_owner_created', 'owner_id', 'created_at'),
    # Public feed: (visibility, created_at)
    Index('idx_videos_visibility_created', 'visibility', 'created_at'),
)

# Like set: one row per (video, user)
video_likes = Table(
    'video_likes',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('video_id', String(100), ForeignKey('videos.id'), nullable=False, index=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('video_id', 'user_id', name='uq_video_likes_video_user'),
)

# Transaction log (append-only)
transactions = Table(
    'transactions',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('video_id', String(100), nullable=True, index=True),
    Column('kind', String(50), nullable=False),
    Column('amount', MONEY, nullable=False),
    Column('description', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_transactions_user_created', 'user_id', 'created_at'),
    Index('idx_transactions_video_kind', 'video_id', 'kind'),
)
