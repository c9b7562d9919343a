"""
Response DTOs for authentication endpoints.

OtpSentResponse  — POST /api/v1/auth/request-otp  (200)
LoginResponse    — POST /api/v1/auth/verify-otp   (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class OtpSentResponse(BaseModel):
    """Response body for POST /api/v1/auth/request-otp."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "otp sms sent successfully."


class LoginResponse(BaseModel):
    """Response body for POST /api/v1/auth/verify-otp. ``jwt`` is the access token."""

    model_config = ConfigDict(populate_by_name=True)

    jwt: str
