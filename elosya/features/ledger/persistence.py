"""
Ledger store (wallets) and transaction log.

Manages ledger accounting with:
- Wallet rows guarded by an optimistic version column
- Append-only transaction log (insert and read helpers only)
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select, insert, update
from sqlalchemy.orm import Session

from elosya.core.database import users, transactions
from elosya.models.transaction import Transaction, TransactionKind
from elosya.models.wallet import Wallet


def _row_to_wallet(row) -> Wallet:
    return Wallet(
        user_id=row.user_id,
        username=row.username,
        balance=Decimal(row.wallet_balance or 0),
        total_earnings=Decimal(row.total_earnings or 0),
        version=row.version,
    )


def _row_to_transaction(row) -> Transaction:
    return Transaction(
        transaction_id=row.id,
        user_id=row.user_id,
        video_id=row.video_id,
        kind=TransactionKind(row.kind),
        amount=Decimal(row.amount),
        description=row.description,
        created_at=row.created_at,
    )


def load_wallet(session: Session, user_id: str) -> Optional[Wallet]:
    row = session.execute(select(users).where(users.c.user_id == user_id)).first()
    return _row_to_wallet(row) if row else None


def insert_wallet(session: Session, wallet: Wallet) -> None:
    now = datetime.now(timezone.utc)
    session.execute(
        insert(users).values(
            user_id=wallet.user_id,
            username=wallet.username,
            wallet_balance=wallet.balance,
            total_earnings=wallet.total_earnings,
            version=1,
            created_at=now,
            updated_at=now,
        )
    )


def save_wallet(session: Session, before: Wallet, after: Wallet) -> bool:
    """
    Persist balance and lifetime earnings if the row still has `before.version`.

    Returns False on a stale snapshot; the caller must roll back and retry.
    """
    result = session.execute(
        update(users)
        .where(users.c.user_id == before.user_id, users.c.version == before.version)
        .values(
            wallet_balance=after.balance,
            total_earnings=after.total_earnings,
            version=before.version + 1,
            updated_at=datetime.now(timezone.utc),
        )
    )
    return result.rowcount == 1


def append_transactions(session: Session, entries: Iterable[Transaction]) -> List[str]:
    """
    Append entries to the transaction log.
    Returns entry IDs.
    """
    ids = []
    for entry in entries:
        session.execute(
            insert(transactions).values(
                id=entry.transaction_id,
                user_id=entry.user_id,
                video_id=entry.video_id,
                kind=entry.kind.value,
                amount=entry.amount,
                description=entry.description,
                created_at=entry.created_at,
            )
        )
        ids.append(entry.transaction_id)
    return ids


def list_transactions(session: Session, user_id: str, limit: Optional[int] = None) -> List[Transaction]:
    """Transactions owned by `user_id`, newest first."""
    query = (
        select(transactions)
        .where(transactions.c.user_id == user_id)
        .order_by(transactions.c.created_at.desc(), transactions.c.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return [_row_to_transaction(r) for r in session.execute(query).fetchall()]


def list_video_transactions(session: Session, video_id: str) -> List[Transaction]:
    """Transactions referencing `video_id`, oldest first."""
    rows = session.execute(
        select(transactions)
        .where(transactions.c.video_id == video_id)
        .order_by(transactions.c.created_at.asc())
    ).fetchall()
    return [_row_to_transaction(r) for r in rows]
