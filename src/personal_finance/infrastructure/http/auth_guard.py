"""Bearer header parsing and access-token guard for authenticated endpoints."""

from __future__ import annotations

from personal_finance.application.services.auth_errors import AuthenticationError
from personal_finance.application.services.auth_service import AuthService, UserSummary


class MissingAuthTokenError(PermissionError):
    """Raised when a bearer token is required but not provided."""


class InvalidAuthTokenError(PermissionError):
    """Raised when the bearer header is malformed or the access token is unusable."""


def extract_bearer_token(authorization_header: str | None) -> str:
    """Extract the access token from a standard `Authorization: Bearer <token>` header."""

    if authorization_header is None or not authorization_header.strip():
        raise MissingAuthTokenError("missing bearer token")

    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise InvalidAuthTokenError("invalid bearer token header")

    return parts[1]


class AccessTokenGuard:
    """Resolve the authenticated caller from a bearer access token."""

    def __init__(self, *, auth_service: AuthService) -> None:
        self._auth_service = auth_service

    async def require_user(self, *, authorization_header: str | None) -> UserSummary:
        """Return the caller's summary or raise a `PermissionError` subclass."""

        token = extract_bearer_token(authorization_header)
        try:
            return await self._auth_service.authenticate_access_token(access_token=token)
        except AuthenticationError as exc:
            raise InvalidAuthTokenError(str(exc)) from exc
