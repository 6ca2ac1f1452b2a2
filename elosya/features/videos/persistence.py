"""
elosya/features/videos/persistence.py

Content store for videos and their like sets.

Every function takes the caller's Session so several writes can share one
database transaction. Counter writes are guarded by the row's version column.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.orm import Session

from elosya.core.database import videos, video_likes
from elosya.models.video import EngagementStats, Video


class VideoPersistence:
    """SQLAlchemy-backed video persistence."""

    @staticmethod
    def _row_to_video(row, liked_by=frozenset()) -> Video:
        return Video(
            video_id=row.id,
            owner_id=row.owner_id,
            visibility=row.visibility,
            monetize=bool(row.monetize),
            stats=EngagementStats(
                views=row.views,
                likes=row.likes,
                comments=row.comments,
                shares=row.shares,
                coins=row.coins,
            ),
            earnings=Decimal(row.earnings or 0),
            liked_by=frozenset(liked_by),
            version=row.version,
            title=row.title,
            description=row.description or "",
            hashtags=list(row.hashtags or []),
            video_url=row.video_url,
            thumbnail_url=row.thumbnail_url,
            location=row.location,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def load_likes(session: Session, video_id: str) -> frozenset:
        rows = session.execute(
            select(video_likes.c.user_id).where(video_likes.c.video_id == video_id)
        ).fetchall()
        return frozenset(r[0] for r in rows)

    @staticmethod
    def load_video(session: Session, video_id: str, *, with_likes: bool = True) -> Optional[Video]:
        """
        Load a video snapshot.

        Args:
            session: Open session
            video_id: Video identifier
            with_likes: Also load the like set (needed for toggling)

        Returns:
            Video or None if not found
        """
        row = session.execute(select(videos).where(videos.c.id == video_id)).first()
        if not row:
            return None
        liked_by = VideoPersistence.load_likes(session, video_id) if with_likes else frozenset()
        return VideoPersistence._row_to_video(row, liked_by)

    @staticmethod
    def insert_video(session: Session, video: Video) -> None:
        now = datetime.now(timezone.utc)
        session.execute(
            insert(videos).values(
                id=video.video_id,
                owner_id=video.owner_id,
                title=video.title,
                description=video.description,
                hashtags=list(video.hashtags),
                video_url=video.video_url,
                thumbnail_url=video.thumbnail_url,
                location=video.location,
                visibility=video.visibility,
                monetize=video.monetize,
                views=video.stats.views,
                likes=video.stats.likes,
                comments=video.stats.comments,
                shares=video.stats.shares,
                coins=video.stats.coins,
                earnings=video.earnings,
                version=1,
                created_at=video.created_at or now,
                updated_at=video.updated_at or now,
            )
        )

    @staticmethod
    def save_engagement(session: Session, before: Video, after: Video) -> bool:
        """
        Write counters and earnings of `after` if the row still has `before.version`.

        Returns:
            True if the row was updated, False if another writer got there first
        """
        result = session.execute(
            update(videos)
            .where(videos.c.id == before.video_id, videos.c.version == before.version)
            .values(
                views=after.stats.views,
                likes=after.stats.likes,
                comments=after.stats.comments,
                shares=after.stats.shares,
                coins=after.stats.coins,
                earnings=after.earnings,
                version=before.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        return result.rowcount == 1

    @staticmethod
    def add_like(session: Session, video_id: str, user_id: str) -> None:
        session.execute(insert(video_likes).values(video_id=video_id, user_id=user_id, created_at=datetime.now(timezone.utc)))

    @staticmethod
    def remove_like(session: Session, video_id: str, user_id: str) -> None:
        session.execute(
            delete(video_likes).where(video_likes.c.video_id == video_id, video_likes.c.user_id == user_id)
        )

    @staticmethod
    def list_public(session: Session, *, offset: int, limit: int) -> List[Video]:
        rows = session.execute(
            select(videos)
            .where(videos.c.visibility == "public")
            .order_by(videos.c.created_at.desc(), videos.c.id.desc())
            .offset(offset)
            .limit(limit)
        ).fetchall()
        return [VideoPersistence._row_to_video(r) for r in rows]

    @staticmethod
    def count_public(session: Session) -> int:
        return int(session.execute(select(func.count()).select_from(videos).where(videos.c.visibility == "public")).scalar() or 0)

    @staticmethod
    def list_by_owner(session: Session, owner_id: str) -> List[Video]:
        rows = session.execute(
            select(videos).where(videos.c.owner_id == owner_id).order_by(videos.c.created_at.desc())
        ).fetchall()
        return [VideoPersistence._row_to_video(r) for r in rows]
