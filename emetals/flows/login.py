"""Login flow: credentials -> success, with the recovery flow embedded."""
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Mapping, Optional, Union

from emetals.auth_schemas import LoginForm
from emetals.config import settings
from emetals.flows.base import (
    FlowController,
    FlowStatus,
    RequestFailed,
    RequestStarted,
    ValidationFailed,
    reduce_status,
)
from emetals.flows.errors import InvalidTransitionError, is_invalid_credentials, is_unverified_email
from emetals.flows.password_reset import PasswordResetFlow
from emetals.flows.password_reset import Success as RecoverySuccess
from emetals.logging_config import get_logger
from emetals.validation import validate_form

logger = get_logger(__name__)

BAD_CREDENTIALS = "Invalid email or password. Please try again."
CHECK_CREDENTIALS = "Check your credentials"
VERIFY_FIRST = "Please verify your email before logging in."
RESET_DONE = "Password reset successful! You can now log in."


# ---------------------------------------------
# Steps
# ---------------------------------------------

@dataclass(frozen=True)
class Credentials:
    key: ClassVar[str] = "form"


@dataclass(frozen=True)
class ForgotPassword:
    key: ClassVar[str] = "forgot_password"


@dataclass(frozen=True)
class Success:
    key: ClassVar[str] = "success"
    user_name: str = ""


LoginStep = Union[Credentials, ForgotPassword, Success]


@dataclass(frozen=True)
class LoginState:
    step: LoginStep = field(default_factory=Credentials)
    status: FlowStatus = field(default_factory=FlowStatus)


# ---------------------------------------------
# Events
# ---------------------------------------------

@dataclass(frozen=True)
class SignedIn:
    user_name: str = ""


@dataclass(frozen=True)
class RecoveryOpened:
    pass


@dataclass(frozen=True)
class RecoveryClosed:
    reset: bool = False


def reduce(state: LoginState, event: Any) -> LoginState:
    step = state.step

    if isinstance(event, SignedIn) and isinstance(step, Credentials):
        return LoginState(Success(event.user_name), FlowStatus())

    if isinstance(event, RecoveryOpened) and isinstance(step, Credentials):
        return LoginState(ForgotPassword(), FlowStatus())

    if isinstance(event, RecoveryClosed) and isinstance(step, ForgotPassword):
        status = FlowStatus(success=RESET_DONE) if event.reset else FlowStatus()
        return LoginState(Credentials(), status)

    return LoginState(step, reduce_status(state.status, event))


def user_name_from(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    user = data.get("user") or {}
    return user.get("name") or ""


class LoginFlow(FlowController[LoginState]):
    """
    Email/password sign in. The forgot-password journey runs as an embedded
    PasswordResetFlow and hands control back here when it finishes.
    """

    name = "login"

    def __init__(self, auth_client, on_redirect=None, redirect_delay=None, resend_seconds=None):
        self.recovery: Optional[PasswordResetFlow] = None
        super().__init__(
            auth_client, on_redirect=on_redirect, redirect_delay=redirect_delay, resend_seconds=resend_seconds
        )

    def initial_state(self) -> LoginState:
        return LoginState()

    def reduce(self, state: LoginState, event: Any) -> LoginState:
        return reduce(state, event)

    # -- credentials step ----------------------------------------------

    async def submit(self, data: Mapping[str, Any]) -> LoginState:
        if isinstance(self.state.step, ForgotPassword):
            await self._recovery().submit(data)
            return self.state

        self.ensure_step(Credentials, action="sign in")
        self.ensure_idle()

        form, errors = validate_form(LoginForm, data)
        if errors:
            return self.dispatch(ValidationFailed(errors))

        self.dispatch(RequestStarted())
        result = await self.call_auth(
            "sign_in",
            self.auth_client.sign_in,
            email=form.email,
            password=form.password,
            remember_me=True,
        )

        if result.error:
            if is_invalid_credentials(result.error):
                return self.dispatch(RequestFailed(BAD_CREDENTIALS, {"password": CHECK_CREDENTIALS}))
            if is_unverified_email(result.error):
                return self.dispatch(RequestFailed(VERIFY_FIRST))
            return self.dispatch(RequestFailed(result.error.message or "Invalid credentials"))

        self.dispatch(SignedIn(user_name_from(result.data)))
        self.schedule_redirect(settings.LOGIN_REDIRECT_DELAY_SECONDS, self.navigate, settings.DASHBOARD_ROUTE)
        return self.state

    # -- embedded recovery ---------------------------------------------

    def forgot_password(self) -> LoginState:
        self.ensure_step(Credentials, action="open password recovery")
        self.ensure_idle()

        self.recovery = PasswordResetFlow(
            self.auth_client,
            on_back_to_login=self._back_to_login,
            redirect_delay=self.redirect_delay,
            resend_seconds=self.resend_seconds,
        )
        return self.dispatch(RecoveryOpened())

    def _recovery(self) -> PasswordResetFlow:
        if self.recovery is None:
            raise InvalidTransitionError("Password recovery is not open")
        return self.recovery

    def take_set_cookies(self):
        cookies = super().take_set_cookies()
        if self.recovery is not None:
            cookies.extend(self.recovery.take_set_cookies())
        return cookies

    def _back_to_login(self):
        recovery = self._recovery()
        reset = isinstance(recovery.step, RecoverySuccess)
        self.set_cookies.extend(recovery.take_set_cookies())
        recovery.close()
        self.recovery = None
        logger.info("login_recovery_closed", flow=self.name, reset=reset)
        self.dispatch(RecoveryClosed(reset=reset))

    async def verify(self, otp: Any) -> bool:
        self.ensure_step(ForgotPassword, action="enter a code")
        return await self._recovery().verify(otp)

    async def resend(self) -> bool:
        self.ensure_step(ForgotPassword, action="resend a code")
        return await self._recovery().resend()

    def back(self) -> LoginState:
        self.ensure_step(ForgotPassword, action="go back")
        self._recovery().back()
        return self.state

    # -- navigation ----------------------------------------------------

    def redirect_now(self):
        if isinstance(self.state.step, ForgotPassword):
            self._recovery().redirect_now()
            return
        self.ensure_step(Success, action="continue")
        self.navigate(settings.DASHBOARD_ROUTE)

    def close(self):
        if self.recovery is not None:
            self.recovery.close()
            self.recovery = None
        super().close()

    def describe(self) -> Dict[str, Any]:
        view = super().describe()
        step = self.state.step
        if isinstance(step, Success):
            view["user_name"] = step.user_name
        if self.recovery is not None:
            view["recovery"] = self.recovery.describe()
        return view
