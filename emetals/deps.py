from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from emetals.auth_schemas import SessionInfo, UserProfile
from emetals.flows.store import FlowStore
from emetals.services.auth_client import AuthClient, AuthServiceError

_auth_client: Optional[AuthClient] = None
_flow_store = FlowStore()


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthClient()
    return _auth_client


def get_flow_store() -> FlowStore:
    return _flow_store


async def get_current_session(
    request: Request,
    auth_client: AuthClient = Depends(get_auth_client),
) -> SessionInfo:
    """
    Dependency to resolve the caller's session from the auth service using the
    browser's cookies.
    """
    try:
        session = await auth_client.get_session(request.cookies)
    except AuthServiceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session


def get_current_user(session: SessionInfo = Depends(get_current_session)) -> UserProfile:
    return session.user


def require_role(role: str):
    """
    Dependency factory to require a role on the session user.

    Usage:
        @router.get("/admin")
        def admin_page(user: UserProfile = Depends(require_role("admin"))):
            ...
    """
    def role_checker(current_user: UserProfile = Depends(get_current_user)) -> UserProfile:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {role}",
            )
        return current_user
    return role_checker
