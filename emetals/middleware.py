"""
Middleware for request tracking, logging and page route protection.
"""
import uuid
from typing import Callable, Optional
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from structlog.contextvars import bind_contextvars, clear_contextvars
from emetals.config import settings
from emetals.logging_config import get_logger
from emetals.route_guard import BYPASS, evaluate, has_session_cookie
import time

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


async def request_id_middleware(request: Request, call_next: Callable) -> Response:
    """
    Add unique request_id to each request for tracing.
    Binds request_id to structlog context for all logs in this request.
    """
    # Generate or extract request ID
    request_id = request.headers.get('X-Request-ID', str(uuid.uuid4()))

    clear_contextvars()
    bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    request.state.request_id = request_id

    logger.info(
        "request_started",
        method=request.method,
        path=str(request.url.path),
        client_host=request.client.host if request.client else None,
    )

    start_time = time.time()

    try:
        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers['X-Request-ID'] = request_id

        return response

    except Exception as exc:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            "request_failed",
            exc_info=exc,
            duration_ms=round(duration_ms, 2),
        )
        raise
    finally:
        clear_contextvars()


def create_route_guard_middleware(
    cookie_name: Optional[str] = None,
    cookie_prefix: Optional[str] = None,
    security_headers: bool = False,
) -> Callable:
    """
    Build the page guard.

    Signed-in visitors are sent from the auth pages to the dashboard and
    anonymous visitors are sent from protected pages to the login page with a
    callbackUrl. With ``security_headers`` every guarded response also gets the
    standard hardening headers and ``X-User-Authenticated``.
    """

    async def route_guard_middleware(request: Request, call_next: Callable) -> Response:
        path = request.url.path
        authenticated = has_session_cookie(request.cookies, cookie_name, cookie_prefix)
        decision = evaluate(path, authenticated)

        if decision.redirects:
            logger.info(
                "route_guard_redirect",
                path=path,
                location=decision.location,
                authenticated=authenticated,
            )
            return RedirectResponse(decision.location, status_code=307)

        response = await call_next(request)

        if security_headers and decision.action != BYPASS:
            for header, value in SECURITY_HEADERS.items():
                response.headers[header] = value
            if authenticated:
                response.headers["X-User-Authenticated"] = "true"

        return response

    return route_guard_middleware


route_guard_middleware = create_route_guard_middleware(
    security_headers=settings.SECURITY_HEADERS_ENABLED,
)
