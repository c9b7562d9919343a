"""UserStore protocol — the auth core depends on this, not on MongoDB.

Lookups signal a miss by raising errors.NotFoundError; any other failure is
raised as its own AppError subclass, so callers branch on the error type
rather than on message text.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.user import UserDoc


class UserStore(Protocol):
    async def find_by_phone(self, phone: str) -> UserDoc: ...

    async def find_by_id(self, user_id: int) -> UserDoc: ...

    async def create(self, phone: str) -> UserDoc: ...

    async def list(
        self,
        skip: int,
        limit: int,
        phone_substring: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> list[UserDoc]: ...
