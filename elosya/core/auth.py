"""
Caller identity for Elosya API routes.

Authentication itself lives in front of this service; requests arrive with the
caller's user id in the X-User-Id header.
"""
from typing import Optional

from fastapi import Header

from elosya.core.errors import ValidationError


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    Extract the caller's user id.

    Raises:
        ValidationError: header missing or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise ValidationError("X-User-Id header is required")
    return user_id


def get_optional_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> Optional[str]:
    """Caller id if presented, else None (anonymous reads)."""
    user_id = (x_user_id or "").strip()
    return user_id or None
