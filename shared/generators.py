"""
Random code generators — pure, side-effect-free functions.

All generators use the cryptographically secure ``secrets`` module.
"""

from __future__ import annotations

import secrets

OTP_MIN = 10000
OTP_MAX = 99999


def generate_otp_code() -> str:
    """Generate a uniformly distributed 5-digit OTP in ``[10000, 99999]``.

    ``secrets.randbelow`` rejects out-of-range samples internally, so every
    one of the 90,000 values is equally likely (no modulo bias).

    Returns:
        5-character string of decimal digits.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
