"""
Password recovery flow: email -> OTP -> new password -> success.

The code entered at the OTP step is only format-checked and carried forward;
the auth service validates it during the final reset call, which can send the
flow back to the OTP step.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping, Optional, Union

from emetals.auth_schemas import ForgotPasswordForm, ResetPasswordForm
from emetals.config import settings
from emetals.flows.base import (
    BackRequested,
    FlowController,
    FlowStatus,
    NoticeShown,
    RequestFailed,
    RequestStarted,
    ValidationFailed,
    reduce_status,
)
from emetals.flows.errors import OtpResendError, is_missing_account, is_rejected_otp
from emetals.logging_config import get_logger
from emetals.validation import validate_form

logger = get_logger(__name__)

CODE_SENT = "Verification code sent! Check your email."
CODE_ACCEPTED = "Code verified! Now create your new password."
CODE_REJECTED = "Invalid verification code. Please try again."
CODE_RESENT = "Verification code sent successfully!"
PASSWORD_RESET = "Password reset successful!"
NO_ACCOUNT = "No account found with this email address"


# ---------------------------------------------
# Steps
# ---------------------------------------------

@dataclass(frozen=True)
class EmailEntry:
    key: ClassVar[str] = "email"


@dataclass(frozen=True)
class OtpVerification:
    key: ClassVar[str] = "otp_verification"
    email: str


@dataclass(frozen=True)
class ResetPassword:
    key: ClassVar[str] = "reset_password"
    email: str
    otp: str


@dataclass(frozen=True)
class Success:
    key: ClassVar[str] = "success"
    email: str


RecoveryStep = Union[EmailEntry, OtpVerification, ResetPassword, Success]


@dataclass(frozen=True)
class RecoveryState:
    step: RecoveryStep = field(default_factory=EmailEntry)
    status: FlowStatus = field(default_factory=FlowStatus)


# ---------------------------------------------
# Events
# ---------------------------------------------

@dataclass(frozen=True)
class ResetCodeSent:
    email: str


@dataclass(frozen=True)
class CodeAccepted:
    otp: str


@dataclass(frozen=True)
class CodeRejected:
    message: str = CODE_REJECTED


@dataclass(frozen=True)
class PasswordChanged:
    pass


def reduce(state: RecoveryState, event: Any) -> RecoveryState:
    step = state.step

    if isinstance(event, ResetCodeSent) and isinstance(step, EmailEntry):
        return RecoveryState(OtpVerification(event.email), state.status.succeeded(CODE_SENT))

    if isinstance(event, CodeAccepted) and isinstance(step, OtpVerification):
        return RecoveryState(ResetPassword(step.email, event.otp), state.status.succeeded(CODE_ACCEPTED))

    if isinstance(event, CodeRejected) and isinstance(step, ResetPassword):
        return RecoveryState(OtpVerification(step.email), state.status.failed(event.message))

    if isinstance(event, PasswordChanged) and isinstance(step, ResetPassword):
        return RecoveryState(Success(step.email), state.status.succeeded(PASSWORD_RESET))

    if isinstance(event, BackRequested):
        if isinstance(step, OtpVerification):
            return RecoveryState(EmailEntry(), FlowStatus())
        if isinstance(step, ResetPassword):
            return RecoveryState(OtpVerification(step.email), FlowStatus())
        return state

    return RecoveryState(step, reduce_status(state.status, event))


class PasswordResetFlow(FlowController[RecoveryState]):
    """
    Forgot-password journey, standalone or embedded in the login flow.

    ``on_back_to_login`` replaces navigation to the login route when the flow
    is embedded.
    """

    name = "forgot-password"

    def __init__(
        self,
        auth_client,
        on_back_to_login: Optional[Callable[[], Any]] = None,
        on_redirect=None,
        redirect_delay=None,
        resend_seconds=None,
    ):
        self.on_back_to_login = on_back_to_login
        super().__init__(
            auth_client, on_redirect=on_redirect, redirect_delay=redirect_delay, resend_seconds=resend_seconds
        )

    @property
    def is_embedded(self) -> bool:
        return self.on_back_to_login is not None

    def initial_state(self) -> RecoveryState:
        return RecoveryState()

    def reduce(self, state: RecoveryState, event: Any) -> RecoveryState:
        return reduce(state, event)

    async def submit(self, data: Mapping[str, Any]) -> RecoveryState:
        """Submit whichever form the current step shows."""
        if isinstance(self.state.step, ResetPassword):
            return await self.reset_password(data)
        return await self.submit_email(data)

    # -- email step ----------------------------------------------------

    async def submit_email(self, data: Mapping[str, Any]) -> RecoveryState:
        self.ensure_step(EmailEntry, action="request a reset code")
        self.ensure_idle()

        form, errors = validate_form(ForgotPasswordForm, data)
        if errors:
            return self.dispatch(ValidationFailed(errors))

        self.dispatch(RequestStarted())
        result = await self.call_auth(
            "send_password_reset_otp", self.auth_client.send_password_reset_otp, email=form.email
        )

        if result.error:
            message = result.error.message or "Failed to send verification code"
            field_errors = {"email": NO_ACCOUNT} if is_missing_account(result.error) else {}
            return self.dispatch(RequestFailed(message, field_errors))

        self.dispatch(ResetCodeSent(form.email))
        self._show_otp_form(form.email)
        return self.state

    # -- OTP step ------------------------------------------------------

    def _show_otp_form(self, email: str):
        self.open_otp_form(email, verify=self._accept_code, resend=self._resend_code)

    async def verify(self, otp: Any) -> bool:
        self.ensure_step(OtpVerification, action="enter a code")
        self.ensure_idle()
        return await self.otp_form.submit(otp)

    async def resend(self) -> bool:
        self.ensure_step(OtpVerification, action="resend a code")
        self.ensure_idle()
        return await self.otp_form.resend()

    async def _accept_code(self, otp: str):
        # Checked by the auth service at reset time, not here.
        logger.info("reset_code_accepted_locally", flow=self.name)
        self.dispatch(CodeAccepted(otp))
        self.close_otp_form()

    async def _resend_code(self):
        email = self.state.step.email
        self.dispatch(RequestStarted())
        result = await self.call_auth(
            "send_password_reset_otp", self.auth_client.send_password_reset_otp, email=email
        )

        if result.error:
            message = result.error.message or "Failed to resend verification code"
            self.dispatch(RequestFailed(message))
            raise OtpResendError(message)

        self.dispatch(NoticeShown(CODE_RESENT))

    # -- reset step ----------------------------------------------------

    async def reset_password(self, data: Mapping[str, Any]) -> RecoveryState:
        self.ensure_step(ResetPassword, action="reset the password")
        self.ensure_idle()

        form, errors = validate_form(ResetPasswordForm, data)
        if errors:
            return self.dispatch(ValidationFailed(errors))

        step = self.state.step
        self.dispatch(RequestStarted())
        result = await self.call_auth(
            "reset_password_with_otp",
            self.auth_client.reset_password_with_otp,
            email=step.email,
            otp=step.otp,
            password=form.password,
        )

        if result.error:
            if is_rejected_otp(result.error):
                self.dispatch(CodeRejected())
                self._show_otp_form(step.email)
                return self.state
            message = result.error.message or "Failed to reset password"
            return self.dispatch(RequestFailed(message, {"password": message}))

        self.dispatch(PasswordChanged())
        self.schedule_redirect(settings.RESET_REDIRECT_DELAY_SECONDS, self.return_to_login)
        return self.state

    # -- navigation ----------------------------------------------------

    def back(self) -> RecoveryState:
        self.ensure_step(EmailEntry, OtpVerification, ResetPassword, action="go back")
        self.ensure_idle()

        step = self.state.step
        if isinstance(step, EmailEntry):
            self.return_to_login()
            return self.state

        self.dispatch(BackRequested())
        if isinstance(step, ResetPassword):
            self._show_otp_form(step.email)
        else:
            self.close_otp_form()
        return self.state

    def return_to_login(self):
        if self.on_back_to_login is not None:
            self._redirect.cancel()
            self.on_back_to_login()
        else:
            self.navigate(settings.LOGIN_ROUTE)

    def redirect_now(self):
        self.ensure_step(Success, action="continue")
        self.return_to_login()

