"""Registration flow: form -> email OTP verification -> success."""
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Union

from emetals.auth_schemas import RegisterForm
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
from emetals.flows.errors import OtpRejectedError, OtpResendError, is_duplicate_email
from emetals.validation import validate_form

ACCOUNT_CREATED = "Account created successfully! Please verify your email."
EMAIL_VERIFIED = "Email verified successfully! Welcome to Emetals."
CODE_RESENT = "Verification code sent successfully!"
EMAIL_TAKEN = "This email is already registered"


# ---------------------------------------------
# Steps
# ---------------------------------------------

@dataclass(frozen=True)
class Form:
    key: ClassVar[str] = "form"


@dataclass(frozen=True)
class OtpVerification:
    key: ClassVar[str] = "otp_verification"
    email: str


@dataclass(frozen=True)
class Success:
    key: ClassVar[str] = "success"
    email: str


RegistrationStep = Union[Form, OtpVerification, Success]


@dataclass(frozen=True)
class RegistrationState:
    step: RegistrationStep = field(default_factory=Form)
    status: FlowStatus = field(default_factory=FlowStatus)


# ---------------------------------------------
# Events
# ---------------------------------------------

@dataclass(frozen=True)
class SignedUp:
    email: str


@dataclass(frozen=True)
class EmailVerified:
    pass


def reduce(state: RegistrationState, event: Any) -> RegistrationState:
    step = state.step

    if isinstance(event, SignedUp) and isinstance(step, Form):
        return RegistrationState(OtpVerification(event.email), state.status.succeeded(ACCOUNT_CREATED))

    if isinstance(event, EmailVerified) and isinstance(step, OtpVerification):
        return RegistrationState(Success(step.email), state.status.succeeded(EMAIL_VERIFIED))

    if isinstance(event, BackRequested):
        if isinstance(step, OtpVerification):
            return RegistrationState(Form(), FlowStatus())
        return state

    return RegistrationState(step, reduce_status(state.status, event))


class RegistrationFlow(FlowController[RegistrationState]):
    """Sign up, then confirm the email address with a one-time code."""

    name = "register"

    def initial_state(self) -> RegistrationState:
        return RegistrationState()

    def reduce(self, state: RegistrationState, event: Any) -> RegistrationState:
        return reduce(state, event)

    # -- form step -----------------------------------------------------

    async def submit(self, data: Mapping[str, Any]) -> RegistrationState:
        self.ensure_step(Form, action="submit registration")
        self.ensure_idle()

        form, errors = validate_form(RegisterForm, data)
        if errors:
            return self.dispatch(ValidationFailed(errors))

        self.dispatch(RequestStarted())
        result = await self.call_auth(
            "sign_up",
            self.auth_client.sign_up,
            email=form.email,
            password=form.password,
            name=form.name,
        )

        if result.error:
            message = result.error.message or "Registration failed"
            field_errors = {"email": EMAIL_TAKEN} if is_duplicate_email(result.error) else {}
            return self.dispatch(RequestFailed(message, field_errors))

        self.dispatch(SignedUp(form.email))
        self.open_otp_form(form.email, verify=self._verify_code, resend=self._resend_code)
        return self.state

    # -- OTP step ------------------------------------------------------

    async def verify(self, otp: Any) -> bool:
        self.ensure_step(OtpVerification, action="verify a code")
        self.ensure_idle()
        return await self.otp_form.submit(otp)

    async def resend(self) -> bool:
        self.ensure_step(OtpVerification, action="resend a code")
        self.ensure_idle()
        return await self.otp_form.resend()

    async def _verify_code(self, otp: str):
        email = self.state.step.email
        self.dispatch(RequestStarted())
        result = await self.call_auth("verify_email_otp", self.auth_client.verify_email_otp, email=email, otp=otp)

        if result.error:
            message = result.error.message or "OTP verification failed"
            self.dispatch(RequestFailed(message))
            raise OtpRejectedError(message)

        self.dispatch(EmailVerified())
        self.close_otp_form()
        self.schedule_redirect(
            settings.REGISTRATION_REDIRECT_DELAY_SECONDS, self.navigate, settings.DASHBOARD_ROUTE
        )

    async def _resend_code(self):
        email = self.state.step.email
        self.dispatch(RequestStarted())
        result = await self.call_auth(
            "send_verification_otp",
            self.auth_client.send_verification_otp,
            email=email,
            type="email-verification",
        )

        if result.error:
            message = result.error.message or "Failed to resend verification code"
            self.dispatch(RequestFailed(message))
            raise OtpResendError(message)

        self.dispatch(NoticeShown(CODE_RESENT))

    # -- navigation ----------------------------------------------------

    def back(self) -> RegistrationState:
        self.ensure_step(OtpVerification, action="go back")
        self.ensure_idle()
        self.close_otp_form()
        return self.dispatch(BackRequested())

    def redirect_now(self):
        self.ensure_step(Success, action="continue")
        self.navigate(settings.DASHBOARD_ROUTE)

