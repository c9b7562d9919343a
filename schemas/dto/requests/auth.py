"""
Request DTOs for authentication endpoints.

RequestOtpRequest  — POST /api/v1/auth/request-otp
VerifyOtpRequest   — POST /api/v1/auth/verify-otp

Fields are optional at the schema level; format rules (phone 8–20 chars,
otp exactly 5 digits) are enforced by AuthService so that a missing field
and a malformed one produce the same 400 validation_error shape.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class RequestOtpRequest(BaseModel):
    """Request body for POST /api/v1/auth/request-otp."""

    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    """Request body for POST /api/v1/auth/verify-otp."""

    model_config = ConfigDict(populate_by_name=True)

    phone: Optional[str] = None
    otp: Optional[str] = None
