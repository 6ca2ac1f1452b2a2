"""
Video catalogue endpoints: upload metadata, feed, single video.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from elosya.core.auth import get_current_user_id, get_optional_user_id
from elosya.core.config import settings
from elosya.features.monetization.engine import MonetizationEngine, MonetizationRates
from elosya.features.videos import service as videos_service

router = APIRouter(prefix="/v1", tags=["videos"])


class UploadVideoRequest(BaseModel):
    title: str
    video_url: str
    description: str = ""
    hashtags: List[str] = Field(default_factory=list)
    visibility: str = "public"
    monetize: bool = True
    thumbnail_url: Optional[str] = None
    location: Optional[str] = None

    @field_validator("title", "video_url", "description", "visibility")
    @classmethod
    def _trim(cls, value: str) -> str:
        return value.strip()


@router.post("/videos", status_code=201)
def upload_video(body: UploadVideoRequest, user_id: str = Depends(get_current_user_id)) -> Dict:
    """Register an uploaded video and return the creator rate card."""
    video = videos_service.upload_video(
        user_id,
        title=body.title,
        video_url=body.video_url,
        description=body.description,
        hashtags=body.hashtags,
        visibility=body.visibility,
        monetize=body.monetize,
        thumbnail_url=body.thumbnail_url,
        location=body.location,
    )
    engine = MonetizationEngine(MonetizationRates.from_settings(settings))
    return {
        "success": True,
        "videoId": video.video_id,
        "video": video.to_dict(),
        "estimatedEarnings": engine.estimate_earnings(),
    }


@router.get("/feed")
def get_feed(
    page: int = 1,
    limit: Optional[int] = None,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
) -> Dict:
    feed = videos_service.get_feed(page, limit, with_likes=viewer_id is not None)
    return {
        "videos": [v.to_dict(viewer_id=viewer_id) for v in feed.videos],
        "page": feed.page,
        "limit": feed.limit,
        "total": feed.total,
        "hasMore": feed.page * feed.limit < feed.total,
    }


@router.get("/videos/{video_id}")
def get_video(video_id: str, viewer_id: Optional[str] = Depends(get_optional_user_id)) -> Dict:
    video = videos_service.get_video(video_id, with_likes=viewer_id is not None)
    return video.to_dict(viewer_id=viewer_id)
