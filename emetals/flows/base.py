"""
Shared pieces of the auth flow state machines.

A flow state is an immutable ``step`` variant plus a ``FlowStatus``. Each flow
module defines its steps, its events and a pure ``reduce(state, event)``; the
controllers here run the side effects (auth calls, timers) and feed events
back through the reducer.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, ClassVar, Dict, Generic, List, Mapping, Optional, TypeVar

from emetals.auth_schemas import AuthError, AuthResult
from emetals.flows.errors import FlowBusyError, InvalidTransitionError
from emetals.flows.otp import OtpVerificationForm
from emetals.flows.timers import RedirectScheduler
from emetals.logging_config import get_logger
from emetals.services.auth_client import AuthServiceError

logger = get_logger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred"


@dataclass(frozen=True)
class FlowStatus:
    is_loading: bool = False
    error: Optional[str] = None
    success: Optional[str] = None
    field_errors: Mapping[str, str] = field(default_factory=dict)

    def loading(self) -> "FlowStatus":
        return FlowStatus(is_loading=True)

    def failed(self, message: str, field_errors: Optional[Mapping[str, str]] = None) -> "FlowStatus":
        return FlowStatus(error=message, field_errors=dict(field_errors or {}))

    def succeeded(self, message: Optional[str] = None) -> "FlowStatus":
        return FlowStatus(success=message)

    def invalid(self, field_errors: Mapping[str, str]) -> "FlowStatus":
        return replace(self, is_loading=False, field_errors=dict(field_errors))

    def cleared(self) -> "FlowStatus":
        return FlowStatus(is_loading=self.is_loading)


# ---------------------------------------------
# Events shared by every flow
# ---------------------------------------------

@dataclass(frozen=True)
class RequestStarted:
    pass


@dataclass(frozen=True)
class RequestFailed:
    message: str
    field_errors: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationFailed:
    field_errors: Mapping[str, str]


@dataclass(frozen=True)
class NoticeShown:
    message: str


@dataclass(frozen=True)
class AlertsCleared:
    pass


@dataclass(frozen=True)
class BackRequested:
    pass


def reduce_status(status: FlowStatus, event: Any) -> FlowStatus:
    """Status changes that never move the step."""
    if isinstance(event, RequestStarted):
        return status.loading()
    if isinstance(event, RequestFailed):
        return status.failed(event.message, event.field_errors)
    if isinstance(event, ValidationFailed):
        return status.invalid(event.field_errors)
    if isinstance(event, NoticeShown):
        return status.succeeded(event.message)
    if isinstance(event, AlertsCleared):
        return status.cleared()
    return status


StateT = TypeVar("StateT")


class FlowController(Generic[StateT]):
    """
    Runs one flow: holds the current state, applies events through the
    flow's reducer and owns the flow's timers.
    """

    name: ClassVar[str] = "flow"

    def __init__(
        self,
        auth_client: Any,
        on_redirect: Optional[Callable[[str], Any]] = None,
        redirect_delay: Optional[float] = None,
        resend_seconds: Optional[int] = None,
    ):
        self.auth_client = auth_client
        self.on_redirect = on_redirect
        self.redirect_delay = redirect_delay
        self.redirect_to: Optional[str] = None
        self.set_cookies: List[str] = []
        self.closed = False
        self.resend_seconds = resend_seconds
        self.otp_form: Optional[OtpVerificationForm] = None
        self._redirect = RedirectScheduler()
        self.state: StateT = self.initial_state()

    # -- state machine -------------------------------------------------

    def initial_state(self) -> StateT:
        raise NotImplementedError

    def reduce(self, state: StateT, event: Any) -> StateT:
        raise NotImplementedError

    def dispatch(self, event: Any) -> StateT:
        previous = self.state.step.key
        self.state = self.reduce(self.state, event)
        logger.debug(
            "flow_event",
            flow=self.name,
            event_type=type(event).__name__,
            step_from=previous,
            step_to=self.state.step.key,
        )
        return self.state

    @property
    def step(self):
        return self.state.step

    @property
    def status(self) -> FlowStatus:
        return self.state.status

    def ensure_step(self, *steps: type, action: str):
        if self.closed:
            raise InvalidTransitionError(f"The {self.name} flow is closed")
        if not isinstance(self.state.step, steps):
            raise InvalidTransitionError(
                f"Cannot {action} from step '{self.state.step.key}' of {self.name} flow"
            )

    def ensure_idle(self):
        if self.state.status.is_loading:
            raise FlowBusyError(f"A request is already in progress for the {self.name} flow")

    def clear_alerts(self) -> StateT:
        return self.dispatch(AlertsCleared())

    # -- auth calls ----------------------------------------------------

    async def call_auth(self, operation: str, call: Callable[..., Awaitable[AuthResult]], **kwargs: Any) -> AuthResult:
        """
        Await an auth client call, turning exceptions into an AuthResult error
        so the caller handles every failure the same way.
        """
        try:
            result = await call(**kwargs)
        except AuthServiceError as e:
            logger.warning("auth_call_unavailable", flow=self.name, operation=operation, error=str(e))
            return AuthResult(error=AuthError(message=str(e)))
        except Exception as e:
            logger.error("auth_call_crashed", flow=self.name, operation=operation, exc_info=e)
            return AuthResult(error=AuthError(message=str(e) or UNEXPECTED_ERROR))

        if result.error:
            logger.info(
                "auth_call_rejected",
                flow=self.name,
                operation=operation,
                code=result.error.code,
                status=result.error.status,
            )
        else:
            logger.info("auth_call_succeeded", flow=self.name, operation=operation)
            self.set_cookies.extend(result.set_cookies)
        return result

    def take_set_cookies(self) -> List[str]:
        cookies, self.set_cookies = self.set_cookies, []
        return cookies

    # -- redirects -----------------------------------------------------

    def schedule_redirect(self, delay: float, callback: Callable[..., Any], *args: Any):
        if self.redirect_delay is not None:
            delay = self.redirect_delay
        logger.info("flow_redirect_scheduled", flow=self.name, delay=delay)
        self._redirect.schedule(delay, callback, *args)

    @property
    def redirect_pending(self) -> bool:
        return self._redirect.pending

    def navigate(self, target: str):
        self._redirect.cancel()
        self.redirect_to = target
        logger.info("flow_redirect", flow=self.name, target=target)
        if self.on_redirect is not None:
            self.on_redirect(target)

    # -- OTP sub-form --------------------------------------------------

    def open_otp_form(self, email: str, verify: Callable[[str], Awaitable[Any]], resend: Callable[[], Awaitable[Any]]):
        """Mount a fresh OTP form; its resend countdown starts over."""
        self.close_otp_form()
        self.otp_form = OtpVerificationForm(email, verify=verify, resend=resend, resend_seconds=self.resend_seconds)
        self.otp_form.open()

    def close_otp_form(self):
        if self.otp_form is not None:
            self.otp_form.close()
            self.otp_form = None

    def close(self):
        """Tear down timers; the flow must not act after this."""
        self.close_otp_form()
        self._redirect.cancel()
        self.closed = True

    # -- views ---------------------------------------------------------

    def describe(self) -> Dict[str, Any]:
        status = self.state.status
        view = {
            "flow": self.name,
            "step": self.state.step.key,
            "email": getattr(self.state.step, "email", None),
            "is_loading": status.is_loading,
            "error": status.error,
            "success": status.success,
            "field_errors": dict(status.field_errors),
            "redirect_to": self.redirect_to,
        }
        if self.otp_form is not None:
            view["otp"] = self.otp_form.describe()
            if self.otp_form.error:
                view["field_errors"].setdefault("otp", self.otp_form.error)
        return view

