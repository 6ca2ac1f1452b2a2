"""
Engagement endpoints: like, share, view, comment, coin gifts.

Every write goes through EngagementService, which applies the monetization
rules and persists the result in one transaction.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictInt, field_validator

from elosya.core.auth import get_current_user_id, get_optional_user_id
from elosya.features.engagement.service import EngagementService

router = APIRouter(prefix="/v1", tags=["engagement"])


def get_engagement_service() -> EngagementService:
    return EngagementService()


class SendCoinsRequest(BaseModel):
    video_id: str
    amount: StrictInt

    @field_validator("video_id")
    @classmethod
    def _trim(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("video_id is required")
        return value


def _payout_dict(payout) -> Optional[Dict]:
    return payout.to_dict() if payout else None


@router.post("/videos/{video_id}/like")
def like_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Dict:
    """Toggle the caller's like on a video."""
    result = service.toggle_like(video_id, user_id)
    return {
        "videoId": video_id,
        "liked": result.liked,
        "likes": result.video.stats.likes,
        "earnings": str(result.video.earnings),
        "payout": _payout_dict(result.payout),
    }


@router.post("/videos/{video_id}/share")
def share_video(
    video_id: str,
    service: EngagementService = Depends(get_engagement_service),
) -> Dict:
    result = service.share(video_id)
    return {
        "videoId": video_id,
        "shares": result.video.stats.shares,
        "earnings": str(result.video.earnings),
        "payout": _payout_dict(result.payout),
    }


@router.post("/videos/{video_id}/view")
def view_video(
    video_id: str,
    service: EngagementService = Depends(get_engagement_service),
) -> Dict:
    result = service.record_view(video_id)
    return {"videoId": video_id, "views": result.video.stats.views}


@router.post("/videos/{video_id}/comment")
def comment_video(
    video_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Dict:
    result = service.add_comment(video_id, user_id)
    return {"videoId": video_id, "comments": result.video.stats.comments}


@router.post("/coins/send")
def send_coins(
    body: SendCoinsRequest,
    user_id: str = Depends(get_current_user_id),
    service: EngagementService = Depends(get_engagement_service),
) -> Dict:
    """Gift coins to the owner of a video. The caller pays amount * unit price."""
    result = service.send_coins(body.video_id, user_id, body.amount)
    return {
        "success": True,
        "videoId": body.video_id,
        "coinsSent": body.amount,
        "cost": str(result.cost),
        "receiverCredit": str(result.creator_credit),
        "platformFee": str(result.platform_fee),
        "newBalance": str(result.sender_wallet.balance),
        "coins": result.video.stats.coins,
        "transactions": [t.to_dict() for t in result.transactions],
    }
