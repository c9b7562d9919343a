"""SmsSender protocol — services depend on this, not the concrete implementation."""

from typing import Protocol


class SmsSender(Protocol):
    async def send_otp(self, phone: str, code: str) -> bool: ...
