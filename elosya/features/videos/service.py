"""
Video catalogue: upload metadata, public feed, single-video lookup.

Binary storage and thumbnail generation live outside this service; uploads
arrive with the stored asset's URL.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
from uuid import uuid4

from elosya.core.config import settings
from elosya.core.database import get_db_session
from elosya.core.errors import NotFoundError, ValidationError
from elosya.core.logging import log_event
from elosya.features.ledger import persistence as ledger
from elosya.features.videos.persistence import VideoPersistence
from elosya.models.video import VISIBILITIES, Video

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
DEFAULT_THUMBNAIL_URL = "/thumbnails/default.jpg"


@dataclass(frozen=True)
class FeedPage:
    videos: List[Video]
    page: int
    limit: int
    total: int


def normalize_hashtags(hashtags: Optional[List[str]]) -> List[str]:
    seen = []
    for tag in hashtags or []:
        clean = tag.strip().lstrip("#").lower()
        if clean and clean not in seen:
            seen.append(clean)
    return seen


def upload_video(
    owner_id: str,
    *,
    title: str,
    video_url: str,
    description: str = "",
    hashtags: Optional[List[str]] = None,
    visibility: str = "public",
    monetize: bool = True,
    thumbnail_url: Optional[str] = None,
    location: Optional[str] = None,
) -> Video:
    """Register an uploaded video for `owner_id` with zeroed counters."""
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"description must be at most {MAX_DESCRIPTION_LENGTH} characters")
    if visibility not in VISIBILITIES:
        raise ValidationError(f"visibility must be one of {', '.join(VISIBILITIES)}")
    if not video_url or not video_url.strip():
        raise ValidationError("video_url is required")

    video = Video(
        video_id=uuid4().hex,
        owner_id=owner_id,
        visibility=visibility,
        monetize=monetize,
        title=title,
        description=description or "",
        hashtags=normalize_hashtags(hashtags),
        video_url=video_url.strip(),
        thumbnail_url=thumbnail_url or DEFAULT_THUMBNAIL_URL,
        location=location,
    )

    with get_db_session() as session:
        if ledger.load_wallet(session, owner_id) is None:
            raise NotFoundError(f"User {owner_id} not found")
        VideoPersistence.insert_video(session, video)
        stored = VideoPersistence.load_video(session, video.video_id, with_likes=False)

    log_event("info", "video.uploaded", user_id=owner_id, video_id=video.video_id, extra={"monetize": monetize})
    return stored


def get_video(video_id: str, *, with_likes: bool = False) -> Video:
    with get_db_session() as session:
        video = VideoPersistence.load_video(session, video_id, with_likes=with_likes)
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")
    return video


def get_feed(page: int = 1, limit: Optional[int] = None, *, with_likes: bool = False) -> FeedPage:
    """Public videos, newest first. `with_likes` loads each like set (for likedByMe)."""
    limit = settings.FEED_PAGE_SIZE_DEFAULT if limit is None else limit
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > settings.FEED_PAGE_SIZE_MAX:
        raise ValidationError(f"limit must be between 1 and {settings.FEED_PAGE_SIZE_MAX}")

    with get_db_session() as session:
        items = VideoPersistence.list_public(session, offset=(page - 1) * limit, limit=limit)
        total = VideoPersistence.count_public(session)
        if with_likes:
            items = [v.with_changes(liked_by=VideoPersistence.load_likes(session, v.video_id)) for v in items]
    return FeedPage(videos=items, page=page, limit=limit, total=total)
