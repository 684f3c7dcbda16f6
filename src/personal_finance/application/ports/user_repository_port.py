"""Port for user persistence used by the authentication service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import UUID

from personal_finance.domain.auth.refresh_tokens import RefreshTokenEntries


class DuplicateUserEmailError(ValueError):
    """Raised when a user insert collides with an existing email."""

    def __init__(self, *, email: str) -> None:
        super().__init__("email already in use")
        self.email = email


@dataclass(frozen=True)
class UserCreateInput:
    """Input payload for inserting a user account."""

    name: str
    email: str
    password_hash: str


@dataclass(frozen=True)
class UserRecord:
    """User persistence model, including its refresh-token collection."""

    user_id: UUID
    name: str
    email: str
    password_hash: str = field(repr=False)
    refresh_tokens: RefreshTokenEntries
    token_version: int
    created_at: datetime
    updated_at: datetime


class UserRepositoryPort(Protocol):
    """User repository contract."""

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id with its refresh tokens in issuance order."""

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email or None."""

    async def get_by_refresh_token_hash(self, *, token_hash: str) -> UserRecord | None:
        """Return the user holding a refresh-token entry stored under `token_hash`."""

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one user with an empty token collection at version 0.

        Raises `DuplicateUserEmailError` when the email is already registered.
        """

    async def replace_refresh_tokens(
        self,
        *,
        user_id: UUID,
        expected_version: int,
        entries: RefreshTokenEntries,
    ) -> bool:
        """Replace the whole token collection when `token_version` still matches.

        Returns False without writing when another request changed the
        collection since `expected_version` was read.
        """
