"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Clients (MongoDB, Redis) are created once in the
app lifespan and live on app.state; services are built per request around
them, so nothing here is a module-level singleton.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from config import AppSettings
from errors import AppError, UnauthorizedError
from infrastructure.cache.otp_store import OtpStore
from infrastructure.sms.log_sender import LogSmsSender
from infrastructure.sms.protocol import SmsSender
from repositories.protocol import UserStore
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.token_service import TokenService
from services.user_service import UserService
from shared.logging import get_logger

log = get_logger(__name__)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


async def get_redis(request: Request):
    """Return the async Redis client from app.state (None if the connection failed)."""
    return request.app.state.redis


def get_token_service(request: Request) -> TokenService:
    """Return the TokenService built at startup."""
    return request.app.state.token_service


def get_sms_sender() -> SmsSender:
    return LogSmsSender()


async def get_otp_store(
    redis=Depends(get_redis),
    settings: AppSettings = Depends(get_settings),
) -> OtpStore:
    return OtpStore(
        redis,
        code_ttl_seconds=settings.otp.otp_code_ttl_seconds,
        rate_window_seconds=settings.otp.otp_rate_window_seconds,
        max_sends_per_window=settings.otp.otp_max_sends_per_window,
        op_timeout_seconds=settings.redis.redis_op_timeout_seconds,
    )


async def get_user_store(db=Depends(get_db)) -> UserStore:
    return UserRepository(db)


async def get_auth_service(
    otp_store: OtpStore = Depends(get_otp_store),
    token_service: TokenService = Depends(get_token_service),
    user_store: UserStore = Depends(get_user_store),
    sms_sender: SmsSender = Depends(get_sms_sender),
) -> AuthService:
    return AuthService(otp_store, token_service, user_store, sms_sender)


async def get_user_service(user_store: UserStore = Depends(get_user_store)) -> UserService:
    return UserService(user_store)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserDoc:
    """Identity guard: resolve the bearer credential or reject with a bare 401.

    The resolved user is also attached to ``request.state.user``. The reason
    for a rejection is logged but never returned to the caller.
    """
    try:
        user = await auth_service.validate_token(authorization)
    except AppError as e:
        log.info("request_unauthorized", reason=e.error_code)
        raise UnauthorizedError() from e

    request.state.user = user
    return user
