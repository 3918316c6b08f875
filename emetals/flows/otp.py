"""OTP entry sub-form shared by the registration and recovery flows."""
from typing import Any, Awaitable, Callable, Dict, Optional

from emetals.auth_schemas import OtpForm
from emetals.config import settings
from emetals.flows.errors import OtpRejectedError, OtpResendError, ResendUnavailableError
from emetals.flows.timers import ResendCountdown
from emetals.logging_config import get_logger
from emetals.validation import validate_form

logger = get_logger(__name__)

INVALID_OTP = "Invalid OTP. Please try again."
RESEND_FAILED = "Failed to resend OTP. Please try again."


def otp_error(value: Any) -> Optional[str]:
    """Return the OTP validation message, or None when the code is well formed."""
    if not isinstance(value, str):
        return "OTP must be exactly 6 digits"
    _, errors = validate_form(OtpForm, {"otp": value})
    return errors.get("otp")


def mask_email(email: str) -> str:
    """j***e@example.com style masking for display."""
    username, sep, domain = email.partition("@")
    if not sep or len(username) <= 2:
        return email
    return f"{username[0]}{'*' * (len(username) - 2)}{username[-1]}@{domain}"


class OtpVerificationForm:
    """
    Six-digit code entry with a resend countdown.

    Malformed codes are rejected here and never reach ``verify``. The owning
    flow raises OtpRejectedError / OtpResendError after recording its own
    alert; this form turns those into its field error.
    """

    def __init__(
        self,
        email: str,
        verify: Callable[[str], Awaitable[Any]],
        resend: Callable[[], Awaitable[Any]],
        resend_seconds: Optional[int] = None,
    ):
        self.email = email
        self._verify = verify
        self._resend = resend
        self.countdown = ResendCountdown(
            resend_seconds if resend_seconds is not None else settings.OTP_RESEND_SECONDS
        )
        self.error: Optional[str] = None
        self.is_resending = False

    def open(self):
        self.countdown.start()

    def close(self):
        self.countdown.cancel()

    async def submit(self, otp: Any) -> bool:
        self.error = None

        problem = otp_error(otp)
        if problem:
            self.error = problem
            return False

        try:
            await self._verify(otp)
        except OtpRejectedError:
            self.error = INVALID_OTP
            return False
        return True

    async def resend(self) -> bool:
        if not self.countdown.can_resend:
            raise ResendUnavailableError(self.countdown.remaining)

        self.is_resending = True
        try:
            await self._resend()
        except OtpResendError:
            self.error = RESEND_FAILED
            return False
        finally:
            self.is_resending = False

        logger.info("otp_resent", sent_to=mask_email(self.email))
        self.countdown.restart()
        self.error = None
        return True

    def describe(self) -> Dict[str, Any]:
        return {
            "sent_to": mask_email(self.email),
            "resend_in": self.countdown.remaining,
            "can_resend": self.countdown.can_resend,
            "is_resending": self.is_resending,
            "error": self.error,
        }
