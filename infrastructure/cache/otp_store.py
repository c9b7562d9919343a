"""Redis-backed OTP store.

Key layout (kept stable for compatibility with existing deployments):

    otp:code:<phone>  — the live code for a phone, SET with a 2 minute TTL
    otp:10m:<phone>   — delivery attempts in the current window, INCR counter

At most one code is live per phone: saving a new one overwrites the old.
Consuming a code is a single server-side compare-and-delete, so a matched
code is never reported as a mismatch and two verifiers cannot both win.

The rate-limit window is fixed, not sliding. INCR and EXPIRE NX go out in
one MULTI/EXEC: the TTL is set only while the counter has none, so the
window starts at the first attempt and a counter can never be left without
one. Every attempt, rejected or not, still increments it.

Every Redis call runs under a per-operation deadline. A timeout or driver
error becomes StoreUnavailableError and its outcome is unknown: the write
may or may not have been applied.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from errors import OtpMismatchError, RateLimitError, StoreUnavailableError
from shared.generators import generate_otp_code
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)

# Deletes KEYS[1] only if it still holds ARGV[1]; returns the number removed.
_CONSUME_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class OtpStore:
    def __init__(
        self,
        redis_client: Optional[aioredis.Redis],
        *,
        code_ttl_seconds: int = 120,
        rate_window_seconds: int = 600,
        max_sends_per_window: int = 3,
        op_timeout_seconds: Optional[float] = 2.0,
    ) -> None:
        self._redis = redis_client
        self.code_ttl_seconds = code_ttl_seconds
        self.rate_window_seconds = rate_window_seconds
        self.max_sends_per_window = max_sends_per_window
        self.op_timeout_seconds = op_timeout_seconds

    @staticmethod
    def code_key(phone: str) -> str:
        return f"otp:code:{phone}"

    @staticmethod
    def rate_key(phone: str) -> str:
        return f"otp:10m:{phone}"

    @property
    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            raise StoreUnavailableError("otp store is not configured")
        return self._redis

    async def _run(self, op: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.op_timeout_seconds)
        except asyncio.TimeoutError as e:
            log.warning("otp_store_timeout", op=op, timeout=self.op_timeout_seconds)
            raise StoreUnavailableError("otp store timed out") from e
        except RedisError as e:
            log.error(
                "otp_store_error", op=op, error=str(e), error_type=type(e).__name__
            )
            raise StoreUnavailableError("otp store unavailable") from e

    @staticmethod
    def generate() -> str:
        return generate_otp_code()

    async def save(self, phone: str, code: str) -> None:
        """Store *code* for *phone*, replacing any unconsumed code."""
        await self._run(
            "set", self._client.set(self.code_key(phone), code, ex=self.code_ttl_seconds)
        )
        log.info("otp_saved", phone=mask_phone(phone), ttl=self.code_ttl_seconds)

    async def verify_and_consume(self, phone: str, code: str) -> None:
        """Check *code* against the stored one and consume it on a match.

        A wrong code leaves the stored one in place.

        Raises:
            OtpMismatchError: code absent, expired, wrong, or already consumed
                by a concurrent verification.
            StoreUnavailableError: the store could not be reached; whether
                the code was consumed is unknown.
        """
        consume = self._client.register_script(_CONSUME_SCRIPT)
        deleted = await self._run(
            "consume", consume(keys=[self.code_key(phone)], args=[code])
        )
        if not deleted:
            log.info("otp_verification_failed", phone=mask_phone(phone))
            raise OtpMismatchError()

        log.info("otp_consumed", phone=mask_phone(phone))

    async def check_and_increment_rate_limit(self, phone: str) -> int:
        """Count one delivery attempt for *phone* and enforce the window limit.

        Returns:
            The attempt count in the current window.

        Raises:
            RateLimitError: the incremented count exceeds the limit. The
                attempt is still counted.
        """
        key = self.rate_key(phone)
        pipe = self._client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, self.rate_window_seconds, nx=True)
        incremented, _ = await self._run("rate_limit", pipe.execute())
        count = int(incremented)

        if count > self.max_sends_per_window:
            log.warning("otp_rate_limited", phone=mask_phone(phone), count=count)
            raise RateLimitError(
                f"rate limit exceeded: max {self.max_sends_per_window} OTPs "
                f"per {self.rate_window_seconds // 60} minutes"
            )
        return count
