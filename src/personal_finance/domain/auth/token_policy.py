"""Immutable token issuance policy shared by the token issuer and auth service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

DEFAULT_ACCESS_TOKEN_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TOKEN_TTL = timedelta(days=30)
DEFAULT_MAX_REFRESH_TOKENS = 5
DEFAULT_MAX_CONFLICT_RETRIES = 3


@dataclass(frozen=True)
class AuthTokenPolicy:
    """Signing secret, token lifetimes and per-user refresh-token bounds."""

    signing_secret: str | None = field(default=None, repr=False)
    signing_algorithm: str = "HS256"
    access_token_ttl: timedelta = DEFAULT_ACCESS_TOKEN_TTL
    refresh_token_ttl: timedelta = DEFAULT_REFRESH_TOKEN_TTL
    max_refresh_tokens: int = DEFAULT_MAX_REFRESH_TOKENS
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES
    uniform_refresh_errors: bool = False

    def __post_init__(self) -> None:
        if self.access_token_ttl <= timedelta(0):
            raise ValueError("access_token_ttl must be positive")
        if self.refresh_token_ttl <= timedelta(0):
            raise ValueError("refresh_token_ttl must be positive")
        if self.max_refresh_tokens < 1:
            raise ValueError("max_refresh_tokens must be at least 1")
        if self.max_conflict_retries < 1:
            raise ValueError("max_conflict_retries must be at least 1")
