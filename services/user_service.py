"""Users service — read-only access to the user directory."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from repositories.protocol import UserStore
from schemas.models.user import UserDoc

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


class UserService:
    def __init__(self, user_store: UserStore) -> None:
        self._users = user_store

    async def get_user(self, user_id: int) -> UserDoc:
        return await self._users.find_by_id(user_id)

    async def list_users(
        self,
        page: int = 0,
        limit: int = 0,
        search: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> list[UserDoc]:
        """List users by id ascending. A zero page or limit falls back to 1 / 10."""
        page = page or DEFAULT_PAGE
        limit = limit or DEFAULT_LIMIT
        skip = (page - 1) * limit
        return await self._users.list(
            skip,
            limit,
            phone_substring=search or None,
            created_from=created_from,
            created_to=created_to,
        )
