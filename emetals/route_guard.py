"""
Route classification and redirect decisions for page requests.

The guard only checks whether a session cookie is present. Whether the
session is still valid, and what role the user holds, is decided by the
handlers that call the auth service.
"""
from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional, Sequence
from urllib.parse import quote

from emetals.config import settings

PUBLIC_ROUTES = (
    "/",
    "/register",
    "/login",
    "/forgot-password",
    "/reset-password",
    "/about",
    "/contact",
    "/privacy",
    "/terms",
)

AUTH_ROUTES = (
    "/login",
    "/register",
    "/forgot-password",
    "/reset-password",
    "/verify-email",
)

PROTECTED_ROUTES = ("/dashboard", "/profile", "/settings", "/admin")

ADMIN_ROUTES = ("/admin",)

BYPASS_PREFIXES = ("/api/", "/_next/", "/static/", "/favicon.ico")

SECURE_COOKIE_PREFIX = "__Secure-"

ALLOW = "allow"
BYPASS = "bypass"
REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    action: str
    location: Optional[str] = None

    @property
    def redirects(self) -> bool:
        return self.action == REDIRECT


def matches_route(path: str, routes: Sequence[str]) -> bool:
    return any(path == route or path.startswith(route + "/") for route in routes)


def is_bypassed(path: str) -> bool:
    return path.startswith(BYPASS_PREFIXES) or "." in path


def classify_path(path: str) -> FrozenSet[str]:
    """Every class the path belongs to; a path can be public and auth at once."""
    classes = set()
    if matches_route(path, PUBLIC_ROUTES):
        classes.add("public")
    if matches_route(path, AUTH_ROUTES):
        classes.add("auth")
    if matches_route(path, PROTECTED_ROUTES):
        classes.add("protected")
    if matches_route(path, ADMIN_ROUTES):
        classes.add("admin")
    return frozenset(classes)


def session_cookie_names(cookie_name: Optional[str] = None, cookie_prefix: Optional[str] = None) -> Sequence[str]:
    name = f"{cookie_prefix or settings.SESSION_COOKIE_PREFIX}.{cookie_name or settings.SESSION_COOKIE_NAME}"
    return (name, SECURE_COOKIE_PREFIX + name)


def has_session_cookie(
    cookies: Mapping[str, str],
    cookie_name: Optional[str] = None,
    cookie_prefix: Optional[str] = None,
) -> bool:
    return any(cookies.get(name) for name in session_cookie_names(cookie_name, cookie_prefix))


def login_location(path: str) -> str:
    # callbackUrl keeps '/' unescaped
    return f"{settings.LOGIN_ROUTE}?callbackUrl={quote(path, safe='/')}"


def evaluate(path: str, authenticated: bool) -> GuardDecision:
    if is_bypassed(path):
        return GuardDecision(BYPASS)

    classes = classify_path(path)

    if authenticated and "auth" in classes:
        return GuardDecision(REDIRECT, settings.DASHBOARD_ROUTE)

    if not authenticated and ("protected" in classes or "admin" in classes):
        return GuardDecision(REDIRECT, login_location(path))

    return GuardDecision(ALLOW)
