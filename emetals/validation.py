"""
Field validation rules shared by the auth forms.

Each ``check_*`` helper raises ``PydanticCustomError`` so that, when used as a
pydantic field validator, the message reaches the caller verbatim.
"""
import re
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticCustomError

EMAIL_MAX_LENGTH = 254  # RFC 5321
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
LOGIN_PASSWORD_MAX_LENGTH = 128
OTP_LENGTH = 6

NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
OTP_PATTERN = re.compile(r"^\d+$")

PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "password_lowercase", "Password must contain at least one lowercase letter"),
    (re.compile(r"[A-Z]"), "password_uppercase", "Password must contain at least one uppercase letter"),
    (re.compile(r"[0-9]"), "password_digit", "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "password_symbol", "Password must contain at least one special character"),
)

PASSWORD_MISMATCH = "Passwords don't match"

FormT = TypeVar("FormT", bound=BaseModel)


def check_email(value: str) -> str:
    if not value:
        raise PydanticCustomError("email_required", "Email is required")
    if len(value) > EMAIL_MAX_LENGTH:
        raise PydanticCustomError("email_too_long", "Email is too long")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email_invalid", "Please enter a valid email address")
    return value


def check_name(value: str) -> str:
    if len(value) < NAME_MIN_LENGTH:
        raise PydanticCustomError("name_too_short", "Name must be at least 2 characters long")
    if len(value) > NAME_MAX_LENGTH:
        raise PydanticCustomError("name_too_long", "Name must be less than 50 characters")
    if not NAME_PATTERN.match(value):
        raise PydanticCustomError("name_invalid", "Name can only contain letters and spaces")
    return value


def check_password_complexity(value: str) -> str:
    """Registration and reset rules: 8+ chars, every character class present."""
    if len(value) < PASSWORD_MIN_LENGTH:
        raise PydanticCustomError("password_too_short", "Password must be at least 8 characters long")
    for pattern, error_type, message in PASSWORD_RULES:
        if not pattern.search(value):
            raise PydanticCustomError(error_type, message)
    return value


def check_password_present(value: str) -> str:
    """Login only checks presence and a sane upper bound."""
    if not value:
        raise PydanticCustomError("password_required", "Password is required")
    if len(value) > LOGIN_PASSWORD_MAX_LENGTH:
        raise PydanticCustomError("password_too_long", "Password is too long")
    return value


def check_confirmation(value: str) -> str:
    if not value:
        raise PydanticCustomError("confirm_password_required", "Please confirm your password")
    return value


def check_otp(value: str) -> str:
    if len(value) != OTP_LENGTH:
        raise PydanticCustomError("otp_length", "OTP must be exactly 6 digits")
    if not OTP_PATTERN.match(value):
        raise PydanticCustomError("otp_digits", "OTP must contain only numbers")
    return value


def field_errors(exc: ValidationError, root_field: str = "form") -> Dict[str, str]:
    """Collapse a ValidationError to the first message per field."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        key = str(loc[0]) if loc else root_field
        errors.setdefault(key, error["msg"])
    return errors


def confirmation_mismatch(schema: Type[BaseModel], data: Mapping[str, Any]) -> Optional[str]:
    """
    Compare raw password/confirmation input.

    Model validators only run once every field is valid, so a mismatch next to
    a weak password would otherwise go unreported.
    """
    if "confirm_password" not in schema.model_fields:
        return None
    confirm = data.get("confirm_password")
    if not confirm:
        return None
    if data.get("password") != confirm:
        return PASSWORD_MISMATCH
    return None


def validate_form(schema: Type[FormT], data: Mapping[str, Any]) -> Tuple[Optional[FormT], Dict[str, str]]:
    """
    Validate ``data`` against a form schema.

    Returns ``(form, {})`` on success or ``(None, {field: message})``.
    """
    root_field = getattr(schema, "root_error_field", "form")
    try:
        form = schema.model_validate(dict(data))
    except ValidationError as exc:
        errors = field_errors(exc, root_field=root_field)
        mismatch = confirmation_mismatch(schema, data)
        if mismatch:
            errors.setdefault("confirm_password", mismatch)
        return None, errors
    return form, {}
