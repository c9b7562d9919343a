"""
Auth service — phone + OTP login orchestration.

    request_otp(phone)         validate → generate → save → rate-limit → send
    verify_login(phone, otp)   validate → verify_and_consume → find/create user → access token
    validate_token(header)     strip "Bearer " → validate token → re-read user by id

Nothing is retried here and no state is kept between calls: it all lives in
the OTP store, the signed token, and the user store. Each step short-circuits
on the first error. A code that was saved but then rate-limited or not
delivered just expires unused.
"""

from __future__ import annotations

from typing import Optional

from errors import ConflictError, DeliveryError, MissingTokenError, NotFoundError
from infrastructure.cache.otp_store import OtpStore
from infrastructure.sms.protocol import SmsSender
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from services.token_service import TokenService
from shared.logging import get_logger, mask_phone
from shared.validators import validate_otp, validate_phone

log = get_logger(__name__)

_BEARER_PREFIX = "bearer "


def extract_bearer_token(raw_header: Optional[str]) -> str:
    """Pull the token out of an ``Authorization`` header value.

    The header is trimmed, then a case-insensitive ``"bearer "`` prefix (the
    exact 7 characters, single space) is removed and the remainder trimmed
    again. ``"  Bearer   abc  "`` therefore yields ``"abc"``, while
    ``"Bearer\\tabc"`` keeps its prefix and fails token validation. A bare
    token without the prefix is accepted as-is.

    Raises:
        MissingTokenError: the header is absent or blank.
    """
    token = (raw_header or "").strip()
    if not token:
        raise MissingTokenError()
    if token.lower().startswith(_BEARER_PREFIX):
        token = token[len(_BEARER_PREFIX) :].strip()
    return token


class AuthService:
    def __init__(
        self,
        otp_store: OtpStore,
        token_service: TokenService,
        user_store: UserStore,
        sms_sender: SmsSender,
    ) -> None:
        self._otp_store = otp_store
        self._tokens = token_service
        self._users = user_store
        self._sms = sms_sender

    async def request_otp(self, phone: str) -> None:
        phone = validate_phone(phone)
        code = self._otp_store.generate()
        await self._otp_store.save(phone, code)
        await self._deliver(phone, code)
        log.info("otp_requested", phone=mask_phone(phone))

    async def verify_login(self, phone: str, otp: str) -> str:
        """Consume the OTP and return an access token for the phone's user.

        The user is created on first login. Any lookup failure other than
        NotFoundError propagates without creating anything.
        """
        phone = validate_phone(phone)
        otp = validate_otp(otp)

        await self._otp_store.verify_and_consume(phone, otp)
        user = await self._resolve_user(phone)
        access_token = self._tokens.issue_access(user.id)

        log.info("login_succeeded", user_id=user.id, phone=mask_phone(phone))
        return access_token

    async def validate_token(self, raw_header: Optional[str]) -> UserDoc:
        """Return the current user record for a bearer credential header."""
        token = extract_bearer_token(raw_header)
        payload = self._tokens.validate(token)
        return await self._users.find_by_id(payload.user_id)

    async def _deliver(self, phone: str, code: str) -> None:
        await self._otp_store.check_and_increment_rate_limit(phone)
        if not await self._sms.send_otp(phone, code):
            log.error("otp_delivery_failed", phone=mask_phone(phone))
            raise DeliveryError("failed to deliver otp")

    async def _resolve_user(self, phone: str) -> UserDoc:
        try:
            return await self._users.find_by_phone(phone)
        except NotFoundError:
            pass

        try:
            return await self._users.create(phone)
        except ConflictError:
            # A concurrent login for the same phone created it first.
            log.info("user_create_raced", phone=mask_phone(phone))
            return await self._users.find_by_phone(phone)
