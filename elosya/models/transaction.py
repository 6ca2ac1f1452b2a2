"""
Transaction log entries.

Every balance-affecting event produces one immutable Transaction. The log is
append-only: nothing in the codebase updates or deletes a stored entry.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4


class TransactionKind(str, Enum):
    LIKE_REVENUE = "like_revenue"
    SHARE_REVENUE = "share_revenue"
    COIN_SENT = "coin_sent"
    COIN_RECEIVED = "coin_received"


# Reporting buckets, matched by substring of the kind in this order
SOURCE_BUCKETS = ("view", "like", "share", "comment", "coin")


@dataclass(frozen=True)
class Transaction:
    user_id: str
    kind: TransactionKind
    amount: Decimal  # signed: debits are negative
    description: str
    video_id: Optional[str] = None
    transaction_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def source(self) -> Optional[str]:
        """Reporting bucket for this entry (views/likes/shares/comments/coins)."""
        kind = self.kind.value if isinstance(self.kind, TransactionKind) else str(self.kind)
        for bucket in SOURCE_BUCKETS:
            if bucket in kind:
                return f"{bucket}s"
        return None

    def to_dict(self) -> dict:
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return {
            "id": self.transaction_id,
            "userId": self.user_id,
            "videoId": self.video_id,
            "kind": self.kind.value if isinstance(self.kind, TransactionKind) else self.kind,
            "amount": str(self.amount),
            "description": self.description,
            "createdAt": created.isoformat(),
        }
