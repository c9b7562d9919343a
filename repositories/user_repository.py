"""MongoDB implementation of UserStore.

Collections:
    users     — {_id: int, phone: str (unique), created_at: datetime}
    counters  — {_id: "users", seq: int}; atomic $inc allocates user ids

Driver errors are translated at this boundary: a duplicate phone becomes
ConflictError, any other PyMongoError becomes StoreUnavailableError.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import ConflictError, NotFoundError, StoreUnavailableError
from schemas.models.user import UserDoc
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)

_USER_ID_COUNTER = "users"


class UserRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._users = db["users"]
        self._counters = db["counters"]

    async def ensure_indexes(self) -> None:
        try:
            await self._users.create_index([("phone", ASCENDING)], unique=True)
            await self._users.create_index([("created_at", ASCENDING)])
        except PyMongoError as e:
            log.error("user_indexes_failed", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError("user store unavailable") from e

    async def find_by_phone(self, phone: str) -> UserDoc:
        doc = await self._find_one({"phone": phone})
        if doc is None:
            raise NotFoundError("user not found")
        return UserDoc.from_mongo(doc)

    async def find_by_id(self, user_id: int) -> UserDoc:
        doc = await self._find_one({"_id": user_id})
        if doc is None:
            raise NotFoundError("user not found")
        return UserDoc.from_mongo(doc)

    async def create(self, phone: str) -> UserDoc:
        """Insert a user for *phone*. The store assigns ``id`` and ``created_at``."""
        try:
            user_id = await self._next_user_id()
            user = UserDoc(
                id=user_id,
                phone=phone,
                created_at=datetime.now(timezone.utc),
            )
            await self._users.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            raise ConflictError("user already exists", field="phone") from e
        except PyMongoError as e:
            log.error("user_create_failed", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError("user store unavailable") from e

        log.info("user_created", user_id=user.id, phone=mask_phone(phone))
        return user

    async def list(
        self,
        skip: int,
        limit: int,
        phone_substring: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> list[UserDoc]:
        """Return users ordered by id ascending, filtered and paginated."""
        query: dict = {}
        if phone_substring:
            query["phone"] = {"$regex": re.escape(phone_substring), "$options": "i"}

        created_range: dict = {}
        if created_from is not None:
            created_range["$gte"] = created_from
        if created_to is not None:
            created_range["$lte"] = created_to
        if created_range:
            query["created_at"] = created_range

        try:
            cursor = (
                self._users.find(query).sort("_id", ASCENDING).skip(skip).limit(limit)
            )
            docs = await cursor.to_list()
        except PyMongoError as e:
            log.error("user_list_failed", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError("user store unavailable") from e
        return [UserDoc.from_mongo(doc) for doc in docs]

    async def _find_one(self, query: dict) -> Optional[dict]:
        try:
            return await self._users.find_one(query)
        except PyMongoError as e:
            log.error("user_lookup_failed", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailableError("user store unavailable") from e

    async def _next_user_id(self) -> int:
        counter = await self._counters.find_one_and_update(
            {"_id": _USER_ID_COUNTER},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])
