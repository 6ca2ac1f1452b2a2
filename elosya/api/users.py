"""
User registration and wallet lookup.
"""
from typing import Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, field_validator

from elosya.features.users import service as users_service

router = APIRouter(prefix="/v1/users", tags=["users"])


class CreateUserRequest(BaseModel):
    user_id: str
    username: Optional[str] = None

    @field_validator("user_id", "username")
    @classmethod
    def _trim(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


@router.post("", status_code=201)
def create_user(body: CreateUserRequest) -> Dict:
    wallet = users_service.create_user(body.user_id or "", body.username)
    return wallet.to_dict()


@router.get("/{user_id}/wallet")
def get_wallet(user_id: str) -> Dict:
    return users_service.get_wallet(user_id).to_dict()
