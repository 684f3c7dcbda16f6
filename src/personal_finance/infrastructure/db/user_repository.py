"""SQLAlchemy adapter for user accounts and their refresh-token collections."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from personal_finance.application.ports.user_repository_port import (
    DuplicateUserEmailError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from personal_finance.domain.auth.refresh_tokens import RefreshTokenEntries, RefreshTokenEntry
from personal_finance.infrastructure.db.metadata import refresh_tokens, users


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id with its refresh tokens in issuance order."""

        return await self._get_one(users.c.id == user_id)

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email or None."""

        return await self._get_one(users.c.email == email)

    async def get_by_refresh_token_hash(self, *, token_hash: str) -> UserRecord | None:
        """Return the user holding the refresh-token row stored under `token_hash`."""

        owner = (
            sa.select(refresh_tokens.c.user_id)
            .where(refresh_tokens.c.token_hash == token_hash)
            .scalar_subquery()
        )
        return await self._get_one(users.c.id == owner)

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert a user at token version 0 with no refresh tokens."""

        statement = sa.insert(users).values(
            id=uuid4(),
            name=payload.name,
            email=payload.email,
            password_hash=payload.password_hash,
            token_version=0,
        ).returning(*users.c)

        async with self._session_factory() as session:
            try:
                result = await session.execute(statement)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateUserEmailError(email=payload.email) from exc

        row = result.mappings().one()
        return _to_user_record(row, entries=())

    async def replace_refresh_tokens(
        self,
        *,
        user_id: UUID,
        expected_version: int,
        entries: RefreshTokenEntries,
    ) -> bool:
        """Bump token_version if it still equals `expected_version`, then rewrite rows."""

        bump_version = (
            sa.update(users)
            .where(
                users.c.id == user_id,
                users.c.token_version == expected_version,
            )
            .values(
                token_version=expected_version + 1,
                updated_at=sa.func.current_timestamp(),
            )
        )

        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(bump_version))
            if int(result.rowcount or 0) != 1:
                await session.rollback()
                return False

            await session.execute(
                sa.delete(refresh_tokens).where(refresh_tokens.c.user_id == user_id)
            )
            if entries:
                await session.execute(
                    sa.insert(refresh_tokens),
                    [
                        {
                            "user_id": user_id,
                            "token_hash": entry.token_hash,
                            "expires_at": entry.expires_at.astimezone(UTC),
                        }
                        for entry in entries
                    ],
                )
            await session.commit()

        return True

    async def _get_one(self, condition: sa.ColumnElement[bool]) -> UserRecord | None:
        """Load one user row and its ordered token rows in a single session."""

        user_statement = sa.select(*users.c).where(condition).limit(1)

        async with self._session_factory() as session:
            user_result = await session.execute(user_statement)
            row = user_result.mappings().first()
            if row is None:
                return None

            token_result = await session.execute(
                sa.select(refresh_tokens.c.token_hash, refresh_tokens.c.expires_at)
                .where(refresh_tokens.c.user_id == row["id"])
                .order_by(refresh_tokens.c.id)
            )
            token_rows = token_result.mappings().all()

        entries = tuple(
            RefreshTokenEntry(
                token_hash=cast(str, token_row["token_hash"]),
                expires_at=_as_utc(cast(datetime, token_row["expires_at"])),
            )
            for token_row in token_rows
        )
        return _to_user_record(row, entries=entries)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; every stored timestamp is written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_user_record(row: sa.RowMapping, *, entries: RefreshTokenEntries) -> UserRecord:
    raw_user_id = row["id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    return UserRecord(
        user_id=user_id,
        name=cast(str, row["name"]),
        email=cast(str, row["email"]),
        password_hash=cast(str, row["password_hash"]),
        refresh_tokens=entries,
        token_version=int(row["token_version"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )
