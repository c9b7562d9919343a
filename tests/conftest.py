"""
Shared test doubles.

FakeRedis is an in-memory stand-in for the subset of redis.asyncio.Redis the
OTP store uses, with a manual clock so TTL expiry can be tested without
sleeping. InMemoryUserStore implements the UserStore protocol over a dict.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pytest

from config import JWTSettings
from errors import ConflictError, NotFoundError
from schemas.models.user import UserDoc
from services.token_service import TokenService

TEST_JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"


class FakeRedis:
    def __init__(self) -> None:
        self.now = 0.0
        self._data: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _purge(self, key: str) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and expires_at <= self.now:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    def ttl_of(self, key: str) -> Optional[float]:
        """Remaining TTL in seconds, or None when the key has none / is absent."""
        self._purge(key)
        if key not in self._expires_at:
            return None
        return self._expires_at[key] - self.now

    def raw(self, key: str) -> Optional[str]:
        self._purge(key)
        return self._data.get(key)

    async def ping(self) -> bool:
        return True

    async def set(self, key: str, value, ex: Optional[int] = None) -> bool:
        self._data[key] = str(value)
        if ex is not None:
            self._expires_at[key] = self.now + ex
        else:
            self._expires_at.pop(key, None)
        return True

    async def get(self, key: str) -> Optional[str]:
        return self.raw(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._purge(key)
            if key in self._data:
                del self._data[key]
                self._expires_at.pop(key, None)
                removed += 1
        return removed

    async def incr(self, key: str) -> int:
        self._purge(key)
        value = int(self._data.get(key, "0")) + 1
        self._data[key] = str(value)  # INCR keeps an existing TTL
        return value

    async def expire(self, key: str, seconds: int, nx: bool = False) -> bool:
        self._purge(key)
        if key not in self._data:
            return False
        if nx and key in self._expires_at:
            return False
        self._expires_at[key] = self.now + seconds
        return True

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    def register_script(self, script: str) -> "FakeConsumeScript":
        return FakeConsumeScript(self)

    async def aclose(self) -> None:
        pass


class FakePipeline:
    """Queues commands and replays them against FakeRedis on execute().

    Commands are looked up by name at execute time, so a method patched on
    the FakeRedis instance also fails inside a pipeline.
    """

    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._queued: list[tuple[str, tuple, dict]] = []

    def incr(self, key: str) -> "FakePipeline":
        self._queued.append(("incr", (key,), {}))
        return self

    def expire(self, key: str, seconds: int, nx: bool = False) -> "FakePipeline":
        self._queued.append(("expire", (key, seconds), {"nx": nx}))
        return self

    async def execute(self) -> list:
        queued, self._queued = self._queued, []
        return [await getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in queued]


class FakeConsumeScript:
    """Stands in for the OTP compare-and-delete Lua script."""

    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis

    async def __call__(self, keys=(), args=()) -> int:
        (key,), (expected,) = keys, args
        if self._redis.raw(key) != str(expected):
            return 0
        return await self._redis.delete(key)


class InMemoryUserStore:
    def __init__(self) -> None:
        self.users: dict[int, UserDoc] = {}
        self.create_calls: list[str] = []
        self._next_id = 1

    def add(self, phone: str) -> UserDoc:
        user = UserDoc(id=self._next_id, phone=phone, created_at=datetime.now(timezone.utc))
        self.users[user.id] = user
        self._next_id += 1
        return user

    async def find_by_phone(self, phone: str) -> UserDoc:
        for user in self.users.values():
            if user.phone == phone:
                return user
        raise NotFoundError("user not found")

    async def find_by_id(self, user_id: int) -> UserDoc:
        try:
            return self.users[user_id]
        except KeyError:
            raise NotFoundError("user not found") from None

    async def create(self, phone: str) -> UserDoc:
        self.create_calls.append(phone)
        if any(u.phone == phone for u in self.users.values()):
            raise ConflictError("user already exists", field="phone")
        return self.add(phone)

    async def list(self, skip, limit, phone_substring=None, created_from=None, created_to=None):
        users = sorted(self.users.values(), key=lambda u: u.id)
        if phone_substring:
            users = [u for u in users if phone_substring.lower() in u.phone.lower()]
        return users[skip : skip + limit]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(jwt_secret=TEST_JWT_SECRET)


@pytest.fixture
def token_service(jwt_settings) -> TokenService:
    return TokenService(jwt_settings)


@pytest.fixture
def jwt_secret() -> str:
    return TEST_JWT_SECRET
