"""
Response DTOs for user endpoints.

UserResponse — one user; GET /api/v1/users/profile, items of GET /api/v1/users
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from schemas.models.user import UserDoc


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    phone: str
    created_at: datetime

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserResponse":
        return cls(id=user.id, phone=user.phone, created_at=user.created_at)
