"""
Token service — mints and validates signed bearer tokens.

Two token classes share one HMAC secret:
- access:  {user_id, iat, exp = iat + 1h}
- refresh: {user_id, iat, exp = iat + 7d, is_refresh: true}

validate() is the only entry point used to protect resources and it accepts
access tokens only. Every rejection (bad signature, expired, malformed,
refresh class) raises the same TokenError so callers cannot tell them apart.
There is no revocation list: a token is valid until its exp claim passes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from pydantic import ValidationError as PydanticValidationError

from config import JWTSettings
from errors import TokenError
from schemas.models.base import UINT32_MAX
from schemas.models.token import TokenPayload
from shared.logging import get_logger

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    def __init__(
        self,
        settings: JWTSettings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not settings.jwt_secret:
            raise RuntimeError("JWT_SECRET must be set")
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._access_ttl = timedelta(seconds=settings.access_token_ttl_seconds)
        self._refresh_ttl = timedelta(seconds=settings.refresh_token_ttl_seconds)
        self._clock = clock

    def issue_access(self, user_id: int) -> str:
        return self._sign(user_id, self._access_ttl)

    def issue_refresh(self, user_id: int) -> str:
        return self._sign(user_id, self._refresh_ttl, is_refresh=True)

    def validate(self, token: str) -> TokenPayload:
        """Verify signature and expiry and return the access-token payload.

        Raises:
            TokenError: for any invalid, expired, malformed or refresh token.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "user_id"]},
            )
            payload = TokenPayload.model_validate(claims)
        except (jwt.InvalidTokenError, PydanticValidationError) as e:
            log.debug("token_rejected", reason=type(e).__name__)
            raise TokenError() from e

        if payload.is_refresh:
            log.debug("token_rejected", reason="refresh_token_used_as_access")
            raise TokenError()
        return payload

    def _sign(self, user_id: int, ttl: timedelta, *, is_refresh: bool = False) -> str:
        if not 0 <= user_id <= UINT32_MAX:
            raise ValueError(f"user_id out of range: {user_id}")
        now = self._clock()
        claims: dict = {
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        if is_refresh:
            claims["is_refresh"] = True
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)
