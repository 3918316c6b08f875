from .base import FlowController, FlowStatus
from .errors import FlowBusyError, FlowError, InvalidTransitionError, ResendUnavailableError
from .login import LoginFlow
from .password_reset import PasswordResetFlow
from .registration import RegistrationFlow
from .store import FLOW_KINDS, FlowStore

__all__ = [
    "FlowController",
    "FlowStatus",
    "FlowError",
    "FlowBusyError",
    "InvalidTransitionError",
    "ResendUnavailableError",
    "LoginFlow",
    "PasswordResetFlow",
    "RegistrationFlow",
    "FLOW_KINDS",
    "FlowStore",
]
