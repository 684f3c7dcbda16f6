"""Port for minting access tokens and opaque refresh-token values."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID


class TokenIssuerPort(Protocol):
    """Access-token signing and refresh-token generation contract."""

    def ensure_configured(self) -> None:
        """Raise `ConfigurationError` when no signing secret is available."""

    def issue_access_token(self, user_id: UUID) -> str:
        """Return a signed, time-bounded access token for `user_id`."""

    def decode_access_token(self, token: str) -> UUID:
        """Return the user id carried by a valid access token.

        Raises `AuthenticationError` for bad signatures, expired or malformed tokens.
        """

    def issue_refresh_token_value(self) -> str:
        """Return a fresh high-entropy raw refresh-token value."""

    def hash_token(self, token: str) -> str:
        """Return the one-way digest stored in place of a raw refresh token."""
