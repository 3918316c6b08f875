# emetals/auth_schemas.py

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from emetals.validation import (
    PASSWORD_MISMATCH,
    check_confirmation,
    check_email,
    check_name,
    check_otp,
    check_password_complexity,
    check_password_present,
)


# -------------------------------------------
# Forms
# -------------------------------------------

class PasswordConfirmation(BaseModel):
    """Mixin for forms carrying password + confirm_password."""

    # Omitted fields are checked like empty input
    model_config = ConfigDict(validate_default=True)

    root_error_field: ClassVar[str] = "confirm_password"

    password: str = ""
    confirm_password: str = ""

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return check_password_complexity(v)

    @field_validator("confirm_password")
    @classmethod
    def confirmation_present(cls, v: str) -> str:
        return check_confirmation(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise PydanticCustomError("password_mismatch", PASSWORD_MISMATCH)
        return self


class RegisterForm(PasswordConfirmation):
    name: str = ""
    email: str = ""

    @field_validator("name")
    @classmethod
    def valid_name(cls, v: str) -> str:
        return check_name(v)

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        return check_email(v)


class LoginForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        return check_password_present(v)


class ForgotPasswordForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ""

    @field_validator("email")
    @classmethod
    def normalized_email(cls, v: str) -> str:
        return check_email(v.strip().lower())


class ResetPasswordForm(PasswordConfirmation):
    pass


class OtpForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    otp: str = ""

    @field_validator("otp")
    @classmethod
    def valid_otp(cls, v: str) -> str:
        return check_otp(v)


# -------------------------------------------
# Auth service payloads
# -------------------------------------------

class AuthError(BaseModel):
    message: str = ""
    code: Optional[str] = None
    status: Optional[int] = None


class AuthResult(BaseModel):
    data: Optional[Dict[str, Any]] = None
    error: Optional[AuthError] = None
    set_cookies: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class UserProfile(BaseModel):
    """User as returned by the auth service session endpoint. Display only."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    email: str
    role: Literal["user", "admin"] = "user"
    image: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    email_verified: bool = Field(default=False, alias="emailVerified")

    @field_validator("role", mode="before")
    @classmethod
    def known_role(cls, v: Any) -> str:
        # Null or unrecognised roles get the least privilege
        return "admin" if v == "admin" else "user"


class SessionInfo(BaseModel):
    user: Optional[UserProfile] = None
    session: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


# -------------------------------------------
# HTTP request / response bodies
# -------------------------------------------

class OtpRequest(BaseModel):
    otp: str = ""


class PasswordStrengthRequest(BaseModel):
    password: str = ""


class PasswordStrengthResponse(BaseModel):
    score: int
    label: str
    hint: str
    width: int


class OtpView(BaseModel):
    sent_to: str
    resend_in: int
    can_resend: bool
    is_resending: bool
    error: Optional[str] = None


class FlowView(BaseModel):
    flow_id: Optional[str] = None
    flow: str
    step: str
    email: Optional[str] = None
    user_name: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None
    success: Optional[str] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)
    otp: Optional[OtpView] = None
    redirect_to: Optional[str] = None
    recovery: Optional["FlowView"] = None


FlowView.model_rebuild()
