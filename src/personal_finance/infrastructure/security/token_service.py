"""Signed access tokens and opaque refresh-token values."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

import jwt

from personal_finance.application.ports.token_issuer_port import TokenIssuerPort
from personal_finance.application.services.auth_errors import (
    AuthenticationError,
    ConfigurationError,
)
from personal_finance.domain.auth.refresh_tokens import digest_refresh_token
from personal_finance.domain.auth.token_policy import AuthTokenPolicy

REFRESH_TOKEN_BYTES = 40
ACCESS_TOKEN_TYPE = "access"


def _default_refresh_token_factory() -> str:
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


class TokenService(TokenIssuerPort):
    """Issue HS256 access tokens and hex refresh-token values, digest the latter."""

    def __init__(
        self,
        *,
        policy: AuthTokenPolicy,
        refresh_token_factory: Callable[[], str] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._secret = (policy.signing_secret or "").strip() or None
        self._algorithm = policy.signing_algorithm
        self._access_token_ttl = policy.access_token_ttl
        self._refresh_token_factory = refresh_token_factory or _default_refresh_token_factory
        self._now = now or (lambda: datetime.now(tz=UTC))

    def ensure_configured(self) -> None:
        if self._secret is None:
            raise ConfigurationError("JWT_SECRET is not configured")

    def issue_access_token(self, user_id: UUID) -> str:
        secret = self._require_secret()
        issued_at = self._now()
        claims = {
            "sub": str(user_id),
            "type": ACCESS_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._access_token_ttl).timestamp()),
        }
        return jwt.encode(claims, secret, algorithm=self._algorithm)

    def decode_access_token(self, token: str) -> UUID:
        secret = self._require_secret()
        try:
            # Expiry is checked below against the injected clock.
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("invalid access token") from exc

        if claims.get("type") != ACCESS_TOKEN_TYPE:
            raise AuthenticationError("invalid access token")
        if int(claims["exp"]) <= int(self._now().timestamp()):
            raise AuthenticationError("access token expired")
        try:
            return UUID(str(claims["sub"]))
        except ValueError as exc:
            raise AuthenticationError("invalid access token") from exc

    def issue_refresh_token_value(self) -> str:
        return self._refresh_token_factory()

    def hash_token(self, token: str) -> str:
        return digest_refresh_token(token)

    def _require_secret(self) -> str:
        self.ensure_configured()
        assert self._secret is not None
        return self._secret
