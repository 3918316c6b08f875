from .auth_client import AuthClient, AuthServiceError

__all__ = ["AuthClient", "AuthServiceError"]
