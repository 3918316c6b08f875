"""
Flow exceptions and auth-service error classification.

The auth service reports failures as a message plus an optional error code.
Codes are checked first; the message substrings are kept for services that
only send text.
"""
from typing import Iterable, Optional

from emetals.auth_schemas import AuthError


class FlowError(Exception):
    """Base class for flow controller errors."""


class FlowBusyError(FlowError):
    """An auth call is already in flight for this flow."""


class InvalidTransitionError(FlowError):
    """The requested action does not apply to the current step."""


class ResendUnavailableError(FlowError):
    """The resend countdown has not reached zero yet."""

    def __init__(self, remaining: int):
        super().__init__(f"Resend available in {remaining}s")
        self.remaining = remaining


class OtpRejectedError(FlowError):
    """Raised to the OTP form when verification fails."""


class OtpResendError(FlowError):
    """Raised to the OTP form when sending a new code fails."""


DUPLICATE_EMAIL_CODES = {"USER_ALREADY_EXISTS", "USER_ALREADY_EXISTS_USE_ANOTHER_EMAIL"}
MISSING_ACCOUNT_CODES = {"USER_NOT_FOUND"}
INVALID_CREDENTIAL_CODES = {"INVALID_EMAIL_OR_PASSWORD", "INVALID_PASSWORD", "INVALID_EMAIL"}
UNVERIFIED_EMAIL_CODES = {"EMAIL_NOT_VERIFIED"}
REJECTED_OTP_CODES = {"INVALID_OTP", "OTP_EXPIRED", "TOO_MANY_ATTEMPTS"}


def _matches(error: Optional[AuthError], codes: Iterable[str], fragments: Iterable[str]) -> bool:
    # Only answers from the service are classified; local failures carry no status
    if error is None or error.status is None:
        return False
    if error.code and error.code in codes:
        return True
    message = error.message or ""
    return any(fragment in message for fragment in fragments)


def is_duplicate_email(error: Optional[AuthError]) -> bool:
    return _matches(error, DUPLICATE_EMAIL_CODES, ("email",))


def is_missing_account(error: Optional[AuthError]) -> bool:
    return _matches(error, MISSING_ACCOUNT_CODES, ("not found", "exist"))


def is_invalid_credentials(error: Optional[AuthError]) -> bool:
    return _matches(error, INVALID_CREDENTIAL_CODES, ("credentials", "Invalid"))


def is_unverified_email(error: Optional[AuthError]) -> bool:
    return _matches(error, UNVERIFIED_EMAIL_CODES, ("verified",))


def is_rejected_otp(error: Optional[AuthError]) -> bool:
    return _matches(error, REJECTED_OTP_CODES, ("OTP", "code", "invalid"))
