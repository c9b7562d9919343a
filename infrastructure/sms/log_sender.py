"""Log-only SmsSender.

No SMS gateway is wired in: dispatch is recorded in the logs and reported as
successful. The code itself is never logged.
"""

from shared.logging import get_logger, mask_phone

log = get_logger(__name__)


class LogSmsSender:
    async def send_otp(self, phone: str, code: str) -> bool:
        log.info("otp_sms_dispatched", phone=mask_phone(phone), code_length=len(code))
        return True
