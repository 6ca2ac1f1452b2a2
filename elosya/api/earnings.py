"""
Earnings reporting endpoints (read-only).
"""
from typing import Dict

from fastapi import APIRouter

from elosya.features.earnings.service import EarningsService

router = APIRouter(prefix="/v1/earnings", tags=["earnings"])


@router.get("/{user_id}")
def get_earnings(user_id: str) -> Dict:
    """Totals, today's earnings, source breakdown and monetization eligibility."""
    return EarningsService().get_summary(user_id).to_dict()


@router.get("/{user_id}/transactions")
def get_transactions(user_id: str, limit: int = 50) -> Dict:
    entries = EarningsService().list_transactions(user_id, limit=limit)
    return {
        "userId": user_id,
        "entries": [t.to_dict() for t in entries],
        "count": len(entries),
    }
