"""
User/wallet domain service.
- create_user(user_id, username)
- get_wallet(user_id)
- normalize_username()
"""

import hashlib
from typing import Optional

from sqlalchemy.exc import IntegrityError

from elosya.core.database import get_db_session
from elosya.core.errors import ConflictError, NotFoundError, ValidationError
from elosya.core.logging import log_event
from elosya.features.ledger import persistence as ledger
from elosya.models.wallet import Wallet


def normalize_username(user_id: str, username: Optional[str]) -> str:
    if username and username.strip():
        return username.strip().lstrip("@").lower()
    # Deterministic fallback handle
    h = hashlib.sha1(user_id.encode("utf-8")).hexdigest()
    return f"u_{h[-6:]}"


def get_wallet(user_id: str) -> Wallet:
    with get_db_session() as session:
        wallet = ledger.load_wallet(session, user_id)
    if wallet is None:
        raise NotFoundError(f"User {user_id} not found")
    return wallet


def create_user(user_id: str, username: Optional[str] = None) -> Wallet:
    """Register a user with an empty wallet."""
    user_id = (user_id or "").strip()
    if not user_id:
        raise ValidationError("user_id is required")

    wallet = Wallet(user_id=user_id, username=normalize_username(user_id, username))
    try:
        with get_db_session() as session:
            ledger.insert_wallet(session, wallet)
    except IntegrityError:
        raise ConflictError(f"User {user_id} or username @{wallet.username} already exists")

    log_event("info", "user.created", user_id=user_id)
    return wallet
