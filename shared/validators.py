"""
Input validators — framework-agnostic, pure functions.

Phone numbers are identity keys used verbatim; no canonicalisation is done
beyond length checks.
"""

from __future__ import annotations

import re
from typing import Optional

from errors import ValidationError

PHONE_MIN_LENGTH = 8
PHONE_MAX_LENGTH = 20
OTP_LENGTH = 5

_OTP_RE = re.compile(r"[0-9]{5}")


def validate_phone(phone: Optional[str]) -> str:
    """Return *phone* unchanged if it is 8–20 characters long.

    Raises:
        ValidationError: when the phone is missing or out of range.
    """
    if not phone:
        raise ValidationError("phone is required", field="phone")
    if not PHONE_MIN_LENGTH <= len(phone) <= PHONE_MAX_LENGTH:
        raise ValidationError(
            f"phone must be between {PHONE_MIN_LENGTH} and {PHONE_MAX_LENGTH} characters",
            field="phone",
        )
    return phone


def validate_otp(otp: Optional[str]) -> str:
    """Return *otp* unchanged if it is exactly 5 ASCII digits.

    Raises:
        ValidationError: when the code is missing or malformed.
    """
    if not otp:
        raise ValidationError("otp is required", field="otp")
    if not _OTP_RE.fullmatch(otp):
        raise ValidationError(
            f"otp must be exactly {OTP_LENGTH} numeric digits", field="otp"
        )
    return otp
