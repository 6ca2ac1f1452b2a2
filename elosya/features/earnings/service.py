"""
Earnings reporting.

Read-only aggregation over a creator's videos, wallet and transaction log.
Nothing here writes to the database.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from elosya.core.config import settings
from elosya.core.database import get_db_session
from elosya.core.errors import NotFoundError, ValidationError
from elosya.features.ledger import persistence as ledger
from elosya.features.monetization.engine import (
    CreatorStats,
    EligibilityResult,
    MonetizationEngine,
    MonetizationRates,
    quantize_money,
)
from elosya.features.videos.persistence import VideoPersistence
from elosya.models.transaction import SOURCE_BUCKETS, Transaction

MAX_TRANSACTIONS_PAGE = 200


def _empty_buckets() -> Dict[str, Decimal]:
    return {f"{bucket}s": Decimal("0") for bucket in SOURCE_BUCKETS}


@dataclass(frozen=True)
class EarningsSummary:
    user_id: str
    total_earnings: Decimal
    today_earnings: Decimal
    videos_count: int
    eligibility: EligibilityResult
    wallet_balance: Decimal
    lifetime_earnings: Decimal
    by_source: Dict[str, Decimal] = field(default_factory=_empty_buckets)

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "totalEarnings": str(self.total_earnings),
            "todayEarnings": str(self.today_earnings),
            "videosCount": self.videos_count,
            "bySource": {k: str(v) for k, v in self.by_source.items()},
            "eligibility": self.eligibility.to_dict(),
            "walletBalance": str(self.wallet_balance),
            "lifetimeEarnings": str(self.lifetime_earnings),
        }


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; stored values are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_midnight(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now().astimezone()
    if now.tzinfo is None:
        now = now.astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def bucket_by_source(entries: List[Transaction]) -> Dict[str, Decimal]:
    buckets = _empty_buckets()
    for entry in entries:
        source = entry.source
        if source is not None:
            buckets[source] += entry.amount
    return {k: quantize_money(v) for k, v in buckets.items()}


class EarningsService:
    """Creator earnings summaries and the audit trail behind them."""

    def __init__(self, engine: Optional[MonetizationEngine] = None):
        self.engine = engine or MonetizationEngine(MonetizationRates.from_settings(settings))

    def get_summary(self, user_id: str, now: Optional[datetime] = None) -> EarningsSummary:
        """
        Summarize earnings for `user_id`.

        Args:
            user_id: Creator id
            now: Reference time for "today" (defaults to the server's local time)

        Raises:
            NotFoundError: unknown user
        """
        with get_db_session() as session:
            wallet = ledger.load_wallet(session, user_id)
            if wallet is None:
                raise NotFoundError(f"User {user_id} not found")
            owned = VideoPersistence.list_by_owner(session, user_id)
            entries = ledger.list_transactions(session, user_id)

        midnight = local_midnight(now)
        total = sum((v.earnings for v in owned), Decimal("0"))
        today = sum(
            (v.earnings for v in owned if v.updated_at is not None and _as_aware(v.updated_at) >= midnight),
            Decimal("0"),
        )

        return EarningsSummary(
            user_id=user_id,
            total_earnings=quantize_money(total),
            today_earnings=quantize_money(today),
            videos_count=len(owned),
            by_source=bucket_by_source(entries),
            eligibility=self.engine.check_monetization_eligibility(CreatorStats(video_count=len(owned))),
            wallet_balance=wallet.balance,
            lifetime_earnings=wallet.total_earnings,
        )

    def list_transactions(self, user_id: str, limit: int = 50) -> List[Transaction]:
        """Most recent transactions for `user_id`, newest first."""
        if limit < 1 or limit > MAX_TRANSACTIONS_PAGE:
            raise ValidationError(f"limit must be between 1 and {MAX_TRANSACTIONS_PAGE}")
        with get_db_session() as session:
            if ledger.load_wallet(session, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")
            return ledger.list_transactions(session, user_id, limit=limit)
