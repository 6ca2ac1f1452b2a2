"""
Video domain model.

A video is the unit that collects engagement. Its counters and earnings move
only through MonetizationEngine transitions; catalogue fields are set on upload.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import FrozenSet, List, Literal, Optional


Visibility = Literal["public", "premium", "private"]
VISIBILITIES = ("public", "premium", "private")


@dataclass(frozen=True)
class EngagementStats:
    """Engagement counters for a video. All non-negative."""

    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    coins: int = 0

    def validate(self) -> None:
        for name in ("views", "likes", "comments", "shares", "coins"):
            value = getattr(self, name)
            assert value >= 0, f"{name} must be non-negative, got {value}"

    def to_dict(self) -> dict:
        return {
            "views": self.views,
            "likes": self.likes,
            "comments": self.comments,
            "shares": self.shares,
            "coins": self.coins,
        }


@dataclass(frozen=True)
class Video:
    """
    Snapshot of a video as loaded from the content store.

    Attributes:
        video_id: Video identifier
        owner_id: Creator's user id (receives payouts and coin credits)
        visibility: public | premium | private
        monetize: Whether engagement on this video pays the creator
        stats: Engagement counters
        earnings: Accumulated creator earnings attributed to this video
        liked_by: User ids currently liking the video
        version: Optimistic concurrency token from the store
    """

    video_id: str
    owner_id: str
    visibility: Visibility = "public"
    monetize: bool = True
    stats: EngagementStats = field(default_factory=EngagementStats)
    earnings: Decimal = Decimal("0")
    liked_by: FrozenSet[str] = frozenset()
    version: int = 1

    # Catalogue fields
    title: str = ""
    description: str = ""
    hashtags: List[str] = field(default_factory=list)
    video_url: str = ""
    thumbnail_url: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate(self) -> None:
        """Ensure the snapshot is internally consistent."""
        assert self.video_id, "video_id required"
        assert self.owner_id, "owner_id required"
        assert self.visibility in VISIBILITIES, f"invalid visibility: {self.visibility}"
        assert self.earnings >= 0, f"earnings must be non-negative, got {self.earnings}"
        self.stats.validate()

    def is_liked_by(self, user_id: str) -> bool:
        return user_id in self.liked_by

    def with_changes(self, **changes) -> "Video":
        """Return a copy with fields replaced (snapshots are immutable)."""
        return replace(self, **changes)

    def to_dict(self, viewer_id: Optional[str] = None) -> dict:
        """Serialize to dict for JSON response."""
        payload = {
            "id": self.video_id,
            "userId": self.owner_id,
            "title": self.title,
            "description": self.description,
            "hashtags": list(self.hashtags),
            "url": self.video_url,
            "thumbnailUrl": self.thumbnail_url,
            "location": self.location,
            "visibility": self.visibility,
            "monetize": self.monetize,
            "stats": self.stats.to_dict(),
            "earnings": str(self.earnings),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if viewer_id is not None:
            payload["likedByMe"] = self.is_liked_by(viewer_id)
        return payload


def _iso(value: Optional[datetime]) -> Optional[str]:
    if not value:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
