"""
Auth endpoints.

POST /api/v1/auth/request-otp — generate, store and send a login OTP
POST /api/v1/auth/verify-otp  — exchange phone + OTP for an access token

Errors are AppError subclasses and are rendered by the global handlers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_auth_service
from schemas.dto.requests.auth import RequestOtpRequest, VerifyOtpRequest
from schemas.dto.responses.auth import LoginResponse, OtpSentResponse
from schemas.dto.responses.common import ErrorResponse
from services.auth_service import AuthService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

_ERRORS = {
    status: {"model": ErrorResponse} for status in (400, 401, 429, 502, 503)
}


@router.post("/request-otp", response_model=OtpSentResponse, responses=_ERRORS)
async def request_otp(
    body: RequestOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> OtpSentResponse:
    await auth_service.request_otp(body.phone)
    return OtpSentResponse()


@router.post("/verify-otp", response_model=LoginResponse, responses=_ERRORS)
async def verify_otp(
    body: VerifyOtpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    access_token = await auth_service.verify_login(body.phone, body.otp)
    return LoginResponse(jwt=access_token)
