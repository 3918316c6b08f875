# emetals/services/auth_client.py

import logging
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import ValidationError

from emetals.auth_schemas import AuthError, AuthResult, SessionInfo
from emetals.config import settings

logger = logging.getLogger(__name__)

headers = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class AuthServiceError(Exception):
    """The auth service could not be reached or answered with garbage."""


def _cookie_header(cookies: Optional[Mapping[str, str]]) -> Dict[str, str]:
    if not cookies:
        return {}
    return {"Cookie": "; ".join(f"{name}={value}" for name, value in cookies.items())}


def _parse_error(res: httpx.Response) -> AuthError:
    """Normalize an error response body to AuthError."""
    message = ""
    code = None
    try:
        body = res.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or ""
        code = body.get("code")
    if not message:
        message = res.text or res.reason_phrase

    return AuthError(message=message, code=code, status=res.status_code)


class AuthClient:
    """
    Thin async wrapper over the auth service REST API.

    Every call returns an AuthResult; HTTP error statuses become
    ``AuthResult.error``. Transport failures raise AuthServiceError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.AUTH_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.AUTH_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        cookies: Optional[Mapping[str, str]] = None,
    ) -> AuthResult:
        request_headers = {**headers, **_cookie_header(cookies)}

        try:
            async with self._client() as client:
                res = await client.request(method, path, json=payload, headers=request_headers)
        except httpx.HTTPError as e:
            logger.error(f"Auth service call {method} {path} failed: {e}")
            raise AuthServiceError(f"Auth service unavailable: {e}") from e

        set_cookies = res.headers.get_list("set-cookie")

        if res.status_code >= 400:
            error = _parse_error(res)
            logger.info(f"Auth service rejected {path}: {res.status_code} {error.code or ''}".strip())
            return AuthResult(error=error, set_cookies=set_cookies)

        if not res.content:
            return AuthResult(data={}, set_cookies=set_cookies)

        try:
            data = res.json()
        except ValueError as e:
            raise AuthServiceError(f"Auth service returned invalid JSON for {path}") from e

        if data is None:
            data = {}
        elif not isinstance(data, dict):
            data = {"result": data}

        return AuthResult(data=data, set_cookies=set_cookies)

    async def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        return await self._request("POST", "/sign-up/email", {
            "email": email,
            "password": password,
            "name": name,
        })

    async def sign_in(self, email: str, password: str, remember_me: bool = True) -> AuthResult:
        return await self._request("POST", "/sign-in/email", {
            "email": email,
            "password": password,
            "rememberMe": remember_me,
        })

    async def send_verification_otp(self, email: str, type: str = "email-verification") -> AuthResult:
        return await self._request("POST", "/email-otp/send-verification-otp", {
            "email": email,
            "type": type,
        })

    async def verify_email_otp(self, email: str, otp: str) -> AuthResult:
        return await self._request("POST", "/email-otp/verify-email", {
            "email": email,
            "otp": otp,
        })

    async def send_password_reset_otp(self, email: str) -> AuthResult:
        return await self._request("POST", "/forget-password/email-otp", {"email": email})

    async def reset_password_with_otp(self, email: str, otp: str, password: str) -> AuthResult:
        return await self._request("POST", "/email-otp/reset-password", {
            "email": email,
            "otp": otp,
            "password": password,
        })

    async def get_session(self, cookies: Optional[Mapping[str, str]] = None) -> SessionInfo:
        """Fetch the current session. An error or empty body means no session."""
        result = await self._request("GET", "/get-session", cookies=cookies)
        if result.error or not result.data:
            return SessionInfo()
        try:
            return SessionInfo.model_validate(result.data)
        except ValidationError as e:
            logger.warning(f"Auth service returned an unreadable session: {e.error_count()} error(s)")
            return SessionInfo()

    async def sign_out(self, cookies: Optional[Mapping[str, str]] = None) -> AuthResult:
        return await self._request("POST", "/sign-out", {}, cookies=cookies)
