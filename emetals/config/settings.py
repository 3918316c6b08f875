"""
Configuration settings for Emetals
Handles environment variables and application settings
"""
import os
from typing import Annotated, List
from pydantic_settings import BaseSettings, NoDecode
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Emetals"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # External auth service (Better Auth REST endpoints)
    AUTH_BASE_URL: str = os.getenv("AUTH_BASE_URL", "http://localhost:3000/api/auth")
    AUTH_TIMEOUT_SECONDS: float = 10.0

    # Session cookie owned by the auth service
    SESSION_COOKIE_NAME: str = "session_token"
    SESSION_COOKIE_PREFIX: str = "better-auth"

    # Page routes
    DASHBOARD_ROUTE: str = "/dashboard"
    LOGIN_ROUTE: str = "/login"

    # OTP
    OTP_RESEND_SECONDS: int = 60

    # Redirect delays after a flow completes
    REGISTRATION_REDIRECT_DELAY_SECONDS: float = 2.0
    LOGIN_REDIRECT_DELAY_SECONDS: float = 3.0
    RESET_REDIRECT_DELAY_SECONDS: float = 3.0

    # Flow store: idle flows expire, completed flows linger briefly for polling
    FLOW_TTL_SECONDS: float = 1800.0
    FLOW_COMPLETED_TTL_SECONDS: float = 60.0

    # Route guard
    SECURITY_HEADERS_ENABLED: bool = False

    # CORS
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",
    ]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("AUTH_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()


# Environment-specific overrides
if settings.ENVIRONMENT == "development":
    settings.DEBUG = True
    settings.ALLOWED_ORIGINS.extend([
        "http://127.0.0.1:3000",
        "http://localhost:8000",
    ])


# Validation
def validate_settings():
    """Validate critical settings"""
    issues = []

    if "localhost" in settings.AUTH_BASE_URL or "127.0.0.1" in settings.AUTH_BASE_URL:
        issues.append("AUTH_BASE_URL must point at the deployed auth service")

    if not settings.AUTH_BASE_URL.startswith("https://"):
        issues.append("AUTH_BASE_URL must use https in production")

    if issues:
        raise ValueError(f"Configuration issues: {', '.join(issues)}")


# Auto-validate on import in production
if settings.ENVIRONMENT == "production":
    validate_settings()
