"""
Monetization Engine

Pure, deterministic rules that turn engagement into ledger mutations.
No storage, no transport, no clock other than transaction timestamps.

Rules:
- Likes toggle. Reaching a positive multiple of the like threshold (20) on the
  like path pays the owner a fixed amount. Unlikes never pay and never claw back.
- Shares only go up. Reaching a positive multiple of the share threshold (10)
  pays a fixed amount.
- Coin gifts debit amount * unit price from the sender and credit the creator
  share of that to the owner. The remainder is the platform fee, which no
  wallet holds.
- Views and comments are counted but do not pay.

Callers must apply each result as one atomic unit.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from elosya.core.errors import InsufficientBalanceError, ValidationError
from elosya.models.transaction import Transaction, TransactionKind
from elosya.models.video import Video
from elosya.models.wallet import Wallet

MONEY_QUANTUM = Decimal("0.0001")


def quantize_money(amount) -> Decimal:
    """Round to the ledger's 4 decimal places using HALF_UP."""
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MonetizationRates:
    """Adjustable payout parameters. Defaults match the published rate card."""

    like_payout: Decimal = Decimal("0.05")
    like_threshold: int = 20
    share_payout: Decimal = Decimal("0.10")
    share_threshold: int = 10
    coin_unit_price: Decimal = Decimal("0.10")
    creator_coin_share: Decimal = Decimal("0.85")
    min_videos: int = 10
    min_followers: int = 10000  # declared, not enforced
    min_engagement_rate: Decimal = Decimal("0.05")  # declared, not enforced

    @classmethod
    def from_settings(cls, cfg) -> "MonetizationRates":
        return cls(
            like_payout=Decimal(str(cfg.LIKE_PAYOUT_AMOUNT)),
            like_threshold=int(cfg.LIKE_PAYOUT_THRESHOLD),
            share_payout=Decimal(str(cfg.SHARE_PAYOUT_AMOUNT)),
            share_threshold=int(cfg.SHARE_PAYOUT_THRESHOLD),
            coin_unit_price=Decimal(str(cfg.COIN_UNIT_PRICE)),
            creator_coin_share=Decimal(str(cfg.CREATOR_COIN_SHARE)),
            min_videos=int(cfg.MIN_VIDEOS_FOR_MONETIZATION),
            min_followers=int(cfg.MIN_FOLLOWERS_FOR_MONETIZATION),
            min_engagement_rate=Decimal(str(cfg.MIN_ENGAGEMENT_RATE)),
        )


@dataclass(frozen=True)
class LikeResult:
    video: Video
    liked: bool
    toggled: bool = True
    payout: Optional[Transaction] = None
    wallet_delta: Optional[Tuple[str, Decimal]] = None


@dataclass(frozen=True)
class ShareResult:
    video: Video
    payout: Optional[Transaction] = None
    wallet_delta: Optional[Tuple[str, Decimal]] = None


@dataclass(frozen=True)
class EngagementResult:
    """Counter-only transition (views, comments)."""
    video: Video


@dataclass(frozen=True)
class CoinGiftResult:
    sender_wallet: Wallet
    receiver_wallet: Wallet
    video: Video
    transactions: Tuple[Transaction, Transaction]  # (sent, received)
    cost: Decimal
    creator_credit: Decimal
    platform_fee: Decimal

    @property
    def self_gift(self) -> bool:
        return self.sender_wallet.user_id == self.receiver_wallet.user_id


@dataclass(frozen=True)
class CreatorStats:
    video_count: int
    follower_count: int = 0
    engagement_rate: Decimal = Decimal("0")


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    missing_requirements: List[str] = field(default_factory=list)
    requirements: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "eligible": self.eligible,
            "missing": list(self.missing_requirements),
            "requirements": dict(self.requirements),
        }


class MonetizationEngine:
    """Pure engagement-to-ledger rules."""

    # Advertised estimates only; nothing pays per view or per comment
    VIEW_ESTIMATE_PER_1000 = Decimal("0.01")
    COMMENT_ESTIMATE_PER_50 = Decimal("0.02")

    def __init__(self, rates: Optional[MonetizationRates] = None):
        self.rates = rates or MonetizationRates()

    # ----- likes -----

    def apply_like(self, video: Video, user_id: str) -> LikeResult:
        """
        Toggle `user_id`'s like on `video`.

        Returns a LikeResult whose `liked` is the negation of the prior membership.
        A payout is emitted only when a like (not an unlike) lands the counter on
        a positive multiple of the like threshold of a monetized video.
        """
        if not user_id or not str(user_id).strip():
            raise ValidationError("user_id is required to like a video")

        if video.is_liked_by(user_id):
            updated = video.with_changes(
                liked_by=video.liked_by - {user_id},
                stats=_bump(video, likes=-1),
            )
            updated.validate()
            return LikeResult(video=updated, liked=False)

        stats = _bump(video, likes=1)
        updated = video.with_changes(liked_by=video.liked_by | {user_id}, stats=stats)

        payout = None
        if video.monetize and _crosses(stats.likes, self.rates.like_threshold):
            amount = quantize_money(self.rates.like_payout)
            payout = Transaction(
                user_id=video.owner_id,
                video_id=video.video_id,
                kind=TransactionKind.LIKE_REVENUE,
                amount=amount,
                description=f"Like revenue ({stats.likes} likes)",
            )
            updated = updated.with_changes(earnings=quantize_money(video.earnings + amount))

        updated.validate()
        return LikeResult(
            video=updated,
            liked=True,
            payout=payout,
            wallet_delta=(video.owner_id, payout.amount) if payout else None,
        )

    # ----- shares -----

    def apply_share(self, video: Video) -> ShareResult:
        stats = _bump(video, shares=1)
        updated = video.with_changes(stats=stats)

        payout = None
        if video.monetize and _crosses(stats.shares, self.rates.share_threshold):
            amount = quantize_money(self.rates.share_payout)
            payout = Transaction(
                user_id=video.owner_id,
                video_id=video.video_id,
                kind=TransactionKind.SHARE_REVENUE,
                amount=amount,
                description=f"Share revenue ({stats.shares} shares)",
            )
            updated = updated.with_changes(earnings=quantize_money(video.earnings + amount))

        return ShareResult(
            video=updated,
            payout=payout,
            wallet_delta=(video.owner_id, payout.amount) if payout else None,
        )

    # ----- views / comments -----

    def apply_view(self, video: Video) -> EngagementResult:
        return EngagementResult(video=video.with_changes(stats=_bump(video, views=1)))

    def apply_comment(self, video: Video) -> EngagementResult:
        return EngagementResult(video=video.with_changes(stats=_bump(video, comments=1)))

    # ----- coins -----

    def apply_coin_gift(self, sender_wallet: Wallet, receiver_wallet: Wallet, video: Video, amount: int) -> CoinGiftResult:
        """
        Gift `amount` coins from `sender_wallet` to the owner of `video`.

        Raises:
            ValidationError: amount is not a positive integer, or receiver is not the owner
            InsufficientBalanceError: sender cannot cover amount * unit price
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("amount must be a positive integer number of coins")
        if receiver_wallet.user_id != video.owner_id:
            raise ValidationError("receiver wallet must belong to the video owner")

        # Compare before quantizing: huge amounts overflow the 4-place quantum
        raw_cost = amount * self.rates.coin_unit_price
        if raw_cost > sender_wallet.balance or quantize_money(raw_cost) > sender_wallet.balance:
            raise InsufficientBalanceError(
                f"Insufficient balance: {amount} coins cost {raw_cost}, wallet holds {sender_wallet.balance}",
                balance=sender_wallet.balance,
                required=raw_cost,
            )

        cost = quantize_money(raw_cost)
        credit = quantize_money(cost * self.rates.creator_coin_share)
        fee = cost - credit

        if sender_wallet.user_id == receiver_wallet.user_id:
            sender_after = sender_wallet.debited(cost).credited(credit)
            receiver_after = sender_after
        else:
            sender_after = sender_wallet.debited(cost)
            receiver_after = receiver_wallet.credited(credit)

        updated = video.with_changes(
            stats=_bump(video, coins=amount),
            earnings=quantize_money(video.earnings + credit),
        )

        sent = Transaction(
            user_id=sender_wallet.user_id,
            video_id=video.video_id,
            kind=TransactionKind.COIN_SENT,
            amount=-cost,
            description=f"Sent {amount} coins to @{receiver_wallet.username or receiver_wallet.user_id}",
        )
        received = Transaction(
            user_id=receiver_wallet.user_id,
            video_id=video.video_id,
            kind=TransactionKind.COIN_RECEIVED,
            amount=credit,
            description=f"Received {amount} coins from @{sender_wallet.username or sender_wallet.user_id}",
        )

        sender_after.validate()
        return CoinGiftResult(
            sender_wallet=sender_after,
            receiver_wallet=receiver_after,
            video=updated,
            transactions=(sent, received),
            cost=cost,
            creator_credit=credit,
            platform_fee=fee,
        )

    # ----- eligibility / estimates -----

    def check_monetization_eligibility(self, creator_stats: CreatorStats) -> EligibilityResult:
        """
        Eligible once the creator has published at least `min_videos` videos.

        Follower and engagement thresholds are reported in `requirements` but
        do not affect the decision.
        """
        missing: List[str] = []
        shortfall = self.rates.min_videos - creator_stats.video_count
        if shortfall > 0:
            noun = "video" if shortfall == 1 else "videos"
            missing.append(f"{shortfall} more {noun} required")

        return EligibilityResult(
            eligible=shortfall <= 0,
            missing_requirements=missing,
            requirements={
                "minVideos": str(self.rates.min_videos),
                "minFollowers": str(self.rates.min_followers),
                "minEngagement": str(self.rates.min_engagement_rate),
            },
        )

    def estimate_earnings(self) -> dict:
        """Rate card shown to creators on upload."""
        breakdown = {
            "per1000Views": str(self.VIEW_ESTIMATE_PER_1000),
            "per20Likes": str(self.rates.like_payout),
            "per10Shares": str(self.rates.share_payout),
            "per50Comments": str(self.COMMENT_ESTIMATE_PER_50),
        }
        ten_k = (self.VIEW_ESTIMATE_PER_1000 * 10).quantize(Decimal("0.01"))
        return {
            "potential": f"Up to {ten_k} for 10K views",
            "breakdown": breakdown,
        }


def _crosses(count: int, threshold: int) -> bool:
    return count > 0 and count % threshold == 0


def _bump(video: Video, **deltas: int):
    stats = video.stats
    return replace(stats, **{name: getattr(stats, name) + delta for name, delta in deltas.items()})
