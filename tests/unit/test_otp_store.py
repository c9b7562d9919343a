"""Unit tests for the Redis-backed OTP store."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from errors import OtpMismatchError, RateLimitError, StoreUnavailableError
from infrastructure.cache.otp_store import OtpStore

PHONE = "+15551234567"


@pytest.fixture
def store(fake_redis):
    return OtpStore(fake_redis)


# ── generate ──────────────────────────────────────────────────────────────────


class TestGenerate:
    def test_codes_are_five_digit_strings_in_range(self):
        for _ in range(500):
            code = OtpStore.generate()
            assert len(code) == 5
            assert code.isdigit()
            assert "10000" <= code <= "99999"

    def test_uses_secrets_randbelow_over_full_range(self, mocker):
        randbelow = mocker.patch("shared.generators.secrets.randbelow", return_value=0)
        assert OtpStore.generate() == "10000"
        randbelow.assert_called_once_with(90000)

        randbelow.return_value = 89999
        assert OtpStore.generate() == "99999"


# ── save ──────────────────────────────────────────────────────────────────────


class TestSave:
    async def test_stores_code_under_phone_key_with_two_minute_ttl(self, store, fake_redis):
        await store.save(PHONE, "12345")
        assert fake_redis.raw("otp:code:+15551234567") == "12345"
        assert fake_redis.ttl_of("otp:code:+15551234567") == 120

    async def test_overwrites_previous_code(self, store, fake_redis):
        await store.save(PHONE, "11111")
        await store.save(PHONE, "22222")
        assert fake_redis.raw(OtpStore.code_key(PHONE)) == "22222"
        with pytest.raises(OtpMismatchError):
            await store.verify_and_consume(PHONE, "11111")

    async def test_phone_used_verbatim(self, store, fake_redis):
        await store.save(" 0912 345 6789", "12345")
        assert fake_redis.raw("otp:code: 0912 345 6789") == "12345"

    async def test_store_error_propagates(self, fake_redis):
        fake_redis.set = AsyncMock(side_effect=RedisConnectionError("down"))
        with pytest.raises(StoreUnavailableError):
            await OtpStore(fake_redis).save(PHONE, "12345")

    async def test_missing_client_is_unavailable(self):
        with pytest.raises(StoreUnavailableError):
            await OtpStore(None).save(PHONE, "12345")


# ── verify_and_consume ────────────────────────────────────────────────────────


class TestVerifyAndConsume:
    async def test_match_consumes_code(self, store, fake_redis):
        await store.save(PHONE, "12345")
        await store.verify_and_consume(PHONE, "12345")
        assert fake_redis.raw(OtpStore.code_key(PHONE)) is None

    async def test_second_use_fails(self, store):
        await store.save(PHONE, "12345")
        await store.verify_and_consume(PHONE, "12345")
        with pytest.raises(OtpMismatchError):
            await store.verify_and_consume(PHONE, "12345")

    async def test_wrong_code_keeps_stored_code(self, store, fake_redis):
        await store.save(PHONE, "12345")
        with pytest.raises(OtpMismatchError):
            await store.verify_and_consume(PHONE, "54321")
        assert fake_redis.raw(OtpStore.code_key(PHONE)) == "12345"
        await store.verify_and_consume(PHONE, "12345")

    async def test_expired_code_fails(self, store, fake_redis):
        await store.save(PHONE, "12345")
        fake_redis.advance(121)
        with pytest.raises(OtpMismatchError):
            await store.verify_and_consume(PHONE, "12345")

    async def test_causes_are_indistinguishable(self, store, fake_redis):
        await store.save(PHONE, "12345")
        with pytest.raises(OtpMismatchError) as wrong:
            await store.verify_and_consume(PHONE, "99999")
        with pytest.raises(OtpMismatchError) as absent:
            await store.verify_and_consume("+19998887777", "12345")
        fake_redis.advance(200)
        with pytest.raises(OtpMismatchError) as expired:
            await store.verify_and_consume(PHONE, "12345")

        bodies = {str(e.value.to_dict()) for e in (wrong, absent, expired)}
        assert len(bodies) == 1
        assert wrong.value.message == "invalid or expired otp"

    async def test_match_is_one_compare_and_delete_call(self, store, fake_redis):
        consume = AsyncMock(return_value=1)
        fake_redis.register_script = MagicMock(return_value=consume)
        fake_redis.get = AsyncMock()
        fake_redis.delete = AsyncMock()

        await store.verify_and_consume(PHONE, "12345")

        consume.assert_awaited_once_with(keys=["otp:code:+15551234567"], args=["12345"])
        fake_redis.get.assert_not_awaited()
        fake_redis.delete.assert_not_awaited()

    async def test_concurrent_verifiers_exactly_one_wins(self, store):
        await store.save(PHONE, "12345")
        results = await asyncio.gather(
            store.verify_and_consume(PHONE, "12345"),
            store.verify_and_consume(PHONE, "12345"),
            return_exceptions=True,
        )
        assert results.count(None) == 1
        assert sum(isinstance(r, OtpMismatchError) for r in results) == 1

    async def test_code_matching_just_before_expiry_is_accepted(self, store, fake_redis):
        await store.save(PHONE, "12345")
        fake_redis.advance(119)
        await store.verify_and_consume(PHONE, "12345")
        assert fake_redis.raw(OtpStore.code_key(PHONE)) is None

    async def test_store_error_is_store_unavailable(self, store, fake_redis):
        fake_redis.register_script = MagicMock(
            return_value=AsyncMock(side_effect=RedisConnectionError("down"))
        )
        with pytest.raises(StoreUnavailableError):
            await store.verify_and_consume(PHONE, "12345")

    async def test_timeout_is_store_unavailable(self, fake_redis):
        async def slow_consume(keys=(), args=()):
            await asyncio.sleep(1)

        fake_redis.register_script = MagicMock(return_value=slow_consume)
        store = OtpStore(fake_redis, op_timeout_seconds=0.01)
        with pytest.raises(StoreUnavailableError):
            await store.verify_and_consume(PHONE, "12345")


# ── check_and_increment_rate_limit ────────────────────────────────────────────


class TestRateLimit:
    async def test_first_three_pass_fourth_fails(self, store):
        for expected in (1, 2, 3):
            assert await store.check_and_increment_rate_limit(PHONE) == expected
        with pytest.raises(RateLimitError):
            await store.check_and_increment_rate_limit(PHONE)

    async def test_ttl_set_only_on_first_increment(self, store, fake_redis):
        key = OtpStore.rate_key(PHONE)
        await store.check_and_increment_rate_limit(PHONE)
        assert fake_redis.ttl_of(key) == 600

        fake_redis.advance(300)
        await store.check_and_increment_rate_limit(PHONE)
        assert fake_redis.ttl_of(key) == 300

    async def test_rejected_attempts_still_count(self, store, fake_redis):
        for _ in range(3):
            await store.check_and_increment_rate_limit(PHONE)
        for _ in range(2):
            with pytest.raises(RateLimitError):
                await store.check_and_increment_rate_limit(PHONE)
        assert fake_redis.raw("otp:10m:+15551234567") == "5"

    async def test_window_resets_after_expiry(self, store, fake_redis):
        for _ in range(3):
            await store.check_and_increment_rate_limit(PHONE)
        with pytest.raises(RateLimitError):
            await store.check_and_increment_rate_limit(PHONE)

        fake_redis.advance(601)
        assert await store.check_and_increment_rate_limit(PHONE) == 1

    async def test_limits_are_per_phone(self, store):
        for _ in range(3):
            await store.check_and_increment_rate_limit(PHONE)
        assert await store.check_and_increment_rate_limit("+447700900123") == 1

    async def test_rate_limit_error_shape(self, store):
        for _ in range(3):
            await store.check_and_increment_rate_limit(PHONE)
        with pytest.raises(RateLimitError) as exc:
            await store.check_and_increment_rate_limit(PHONE)
        assert exc.value.status_code == 429
        assert "max 3 OTPs per 10 minutes" in exc.value.message

    async def test_increment_error_propagates(self, fake_redis):
        fake_redis.incr = AsyncMock(side_effect=RedisConnectionError("down"))
        with pytest.raises(StoreUnavailableError):
            await OtpStore(fake_redis).check_and_increment_rate_limit(PHONE)

    async def test_failed_expire_does_not_leave_counter_without_ttl(self, store, fake_redis):
        key = OtpStore.rate_key(PHONE)
        real_expire = fake_redis.expire
        fake_redis.expire = AsyncMock(side_effect=RedisConnectionError("blip"))
        with pytest.raises(StoreUnavailableError):
            await store.check_and_increment_rate_limit(PHONE)
        fake_redis.expire = real_expire

        # The increment landed without a TTL; the next attempt sets one.
        assert await store.check_and_increment_rate_limit(PHONE) == 2
        assert fake_redis.ttl_of(key) == 600
        await store.check_and_increment_rate_limit(PHONE)
        with pytest.raises(RateLimitError):
            await store.check_and_increment_rate_limit(PHONE)

        fake_redis.advance(601)
        assert await store.check_and_increment_rate_limit(PHONE) == 1

    async def test_counter_without_ttl_is_given_one(self, store, fake_redis):
        key = OtpStore.rate_key(PHONE)
        await fake_redis.set(key, "7")
        with pytest.raises(RateLimitError):
            await store.check_and_increment_rate_limit(PHONE)
        assert fake_redis.ttl_of(key) == 600

        fake_redis.advance(601)
        assert await store.check_and_increment_rate_limit(PHONE) == 1

    async def test_increment_and_expire_sent_in_one_transaction(self, store, fake_redis):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[1, True])
        fake_redis.pipeline = MagicMock(return_value=pipe)

        assert await store.check_and_increment_rate_limit(PHONE) == 1

        fake_redis.pipeline.assert_called_once_with(transaction=True)
        pipe.incr.assert_called_once_with("otp:10m:+15551234567")
        pipe.expire.assert_called_once_with("otp:10m:+15551234567", 600, nx=True)
