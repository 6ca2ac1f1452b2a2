"""
Engagement service: load state, run the monetization engine, persist atomically.

Each operation is one unit of work:
1. open a transaction and load the video (and wallets) with their versions
2. run the pure engine
3. write every changed row guarded by its version, add/remove the like row,
   append transactions
4. commit, or roll back everything and retry when a guarded write hits a
   stale version

Retries are bounded; exhausting them surfaces a ConflictError.
"""
from __future__ import annotations

from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from elosya.core.config import settings
from elosya.core.database import get_session_factory
from elosya.core.errors import ConflictError, InsufficientBalanceError, NotFoundError, ValidationError
from elosya.core.logging import log_event
from elosya.features.ledger import persistence as ledger
from elosya.features.monetization.engine import (
    CoinGiftResult,
    EngagementResult,
    LikeResult,
    MonetizationEngine,
    MonetizationRates,
    ShareResult,
)
from elosya.features.videos.persistence import VideoPersistence
from elosya.models.transaction import Transaction
from elosya.models.video import Video

T = TypeVar("T")


class StaleSnapshotError(Exception):
    """A version-guarded write found the row changed since it was read."""


class EngagementService:
    """Applies engagement events to the content store, ledger store and transaction log."""

    def __init__(
        self,
        engine: Optional[MonetizationEngine] = None,
        session_factory=None,
        max_retries: Optional[int] = None,
    ):
        self.engine = engine or MonetizationEngine(MonetizationRates.from_settings(settings))
        self._session_factory = session_factory
        self.max_retries = settings.ENGAGEMENT_MAX_RETRIES if max_retries is None else max_retries

    # ----- unit of work -----

    def _run(self, operation: str, work: Callable[[Session], T], *, video_id: str, user_id: Optional[str] = None) -> T:
        factory = self._session_factory or get_session_factory()
        attempt = 0
        while True:
            attempt += 1
            session = factory()
            try:
                result = work(session)
                session.commit()
                return result
            except (StaleSnapshotError, IntegrityError) as exc:
                session.rollback()
                log_event(
                    "warning",
                    "engagement.retry",
                    user_id=user_id,
                    video_id=video_id,
                    event_type=operation,
                    extra={"attempt": attempt, "reason": type(exc).__name__},
                )
                if attempt > self.max_retries:
                    raise ConflictError(
                        f"{operation} could not be applied after {attempt} attempts; please retry"
                    )
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    @staticmethod
    def _load_video(session: Session, video_id: str, *, with_likes: bool = False) -> Video:
        video = VideoPersistence.load_video(session, video_id, with_likes=with_likes)
        if video is None:
            raise NotFoundError(f"Video {video_id} not found")
        return video

    @staticmethod
    def _save_video(session: Session, before: Video, after: Video) -> None:
        if not VideoPersistence.save_engagement(session, before, after):
            raise StaleSnapshotError(f"video {before.video_id} changed concurrently")

    @staticmethod
    def _credit_payout(session: Session, payout: Transaction) -> None:
        wallet = ledger.load_wallet(session, payout.user_id)
        if wallet is None:
            raise NotFoundError(f"Wallet for creator {payout.user_id} not found")
        if not ledger.save_wallet(session, wallet, wallet.credited(payout.amount)):
            raise StaleSnapshotError(f"wallet {payout.user_id} changed concurrently")
        ledger.append_transactions(session, [payout])

    @staticmethod
    def _log_payout(payout: Optional[Transaction]) -> None:
        if payout is None:
            return
        log_event(
            "info",
            "ledger.payout",
            user_id=payout.user_id,
            video_id=payout.video_id,
            event_type=payout.kind.value,
            extra={"amount": payout.amount, "description": payout.description},
        )

    # ----- operations -----

    def toggle_like(self, video_id: str, user_id: str) -> LikeResult:
        """Like or unlike `video_id` for `user_id`, crediting a threshold payout if one is due."""
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required to like a video")

        def work(session: Session) -> LikeResult:
            before = self._load_video(session, video_id, with_likes=True)
            result = self.engine.apply_like(before, user_id)
            self._save_video(session, before, result.video)
            if result.liked:
                VideoPersistence.add_like(session, video_id, user_id)
            else:
                VideoPersistence.remove_like(session, video_id, user_id)
            if result.payout:
                self._credit_payout(session, result.payout)
            return result

        result = self._run("like", work, video_id=video_id, user_id=user_id)
        self._log_payout(result.payout)
        return result

    def share(self, video_id: str) -> ShareResult:
        def work(session: Session) -> ShareResult:
            before = self._load_video(session, video_id)
            result = self.engine.apply_share(before)
            self._save_video(session, before, result.video)
            if result.payout:
                self._credit_payout(session, result.payout)
            return result

        result = self._run("share", work, video_id=video_id)
        self._log_payout(result.payout)
        return result

    def record_view(self, video_id: str) -> EngagementResult:
        def work(session: Session) -> EngagementResult:
            before = self._load_video(session, video_id)
            result = self.engine.apply_view(before)
            self._save_video(session, before, result.video)
            return result

        return self._run("view", work, video_id=video_id)

    def add_comment(self, video_id: str, user_id: Optional[str] = None) -> EngagementResult:
        def work(session: Session) -> EngagementResult:
            before = self._load_video(session, video_id)
            result = self.engine.apply_comment(before)
            self._save_video(session, before, result.video)
            return result

        return self._run("comment", work, video_id=video_id, user_id=user_id)

    def send_coins(self, video_id: str, sender_id: str, amount: int) -> CoinGiftResult:
        """
        Gift coins from `sender_id` to the owner of `video_id`.

        Raises:
            ValidationError: non-positive or non-integer amount, missing sender
            NotFoundError: unknown video or sender
            InsufficientBalanceError: sender cannot cover the cost (nothing is written)
        """
        if not sender_id or not sender_id.strip():
            raise ValidationError("sender_id is required to send coins")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("amount must be a positive integer number of coins")

        def work(session: Session) -> CoinGiftResult:
            video = self._load_video(session, video_id)
            sender = ledger.load_wallet(session, sender_id)
            if sender is None:
                raise NotFoundError(f"User {sender_id} not found")
            if video.owner_id == sender_id:
                receiver = sender
            else:
                receiver = ledger.load_wallet(session, video.owner_id)
                if receiver is None:
                    raise NotFoundError(f"Wallet for creator {video.owner_id} not found")

            result = self.engine.apply_coin_gift(sender, receiver, video, amount)

            self._save_video(session, video, result.video)
            if not ledger.save_wallet(session, sender, result.sender_wallet):
                raise StaleSnapshotError(f"wallet {sender_id} changed concurrently")
            if not result.self_gift and not ledger.save_wallet(session, receiver, result.receiver_wallet):
                raise StaleSnapshotError(f"wallet {receiver.user_id} changed concurrently")
            ledger.append_transactions(session, result.transactions)
            return result

        try:
            result = self._run("send_coins", work, video_id=video_id, user_id=sender_id)
        except InsufficientBalanceError as exc:
            log_event(
                "warning",
                "ledger.coin_gift_rejected",
                user_id=sender_id,
                video_id=video_id,
                event_type="coin_sent",
                error_code=exc.code,
                extra={"coins": amount, "required": exc.required, "balance": exc.balance},
            )
            raise

        log_event(
            "info",
            "ledger.coin_gift",
            user_id=sender_id,
            video_id=video_id,
            event_type="coin_sent",
            extra={
                "coins": amount,
                "cost": result.cost,
                "creator_credit": result.creator_credit,
                "platform_fee": result.platform_fee,
            },
        )
        return result

