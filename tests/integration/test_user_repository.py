from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command
from personal_finance.application.ports.user_repository_port import (
    DuplicateUserEmailError,
    UserCreateInput,
)
from personal_finance.domain.auth.refresh_tokens import RefreshTokenEntry
from personal_finance.infrastructure.db.session import create_session_factory
from personal_finance.infrastructure.db.user_repository import SqlAlchemyUserRepository

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _entry(token_hash: str, *, days: int = 30) -> RefreshTokenEntry:
    return RefreshTokenEntry(token_hash=token_hash, expires_at=NOW + timedelta(days=days))


def _payload(email: str = "a@x.com") -> UserCreateInput:
    return UserCreateInput(name="A", email=email, password_hash="bcrypt-hash")


@pytest.mark.asyncio
async def test_create_user_starts_at_version_zero_without_tokens(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "repo_create.db")
    repository = SqlAlchemyUserRepository(create_session_factory(async_url))

    created = await repository.create_user(_payload())
    loaded = await repository.get_by_email(email="a@x.com")

    assert isinstance(created.user_id, UUID)
    assert created.token_version == 0
    assert created.refresh_tokens == ()
    assert loaded is not None
    assert loaded.user_id == created.user_id
    assert loaded.name == "A"
    assert loaded.password_hash == "bcrypt-hash"
    assert await repository.get_by_id(user_id=created.user_id) == loaded


@pytest.mark.asyncio
async def test_create_user_rejects_duplicate_email(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "repo_duplicate.db")
    repository = SqlAlchemyUserRepository(create_session_factory(async_url))
    await repository.create_user(_payload())

    with pytest.raises(DuplicateUserEmailError, match="email already in use"):
        await repository.create_user(_payload())


@pytest.mark.asyncio
async def test_replace_refresh_tokens_bumps_version_and_keeps_order(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "repo_replace.db")
    repository = SqlAlchemyUserRepository(create_session_factory(async_url))
    user = await repository.create_user(_payload())
    entries = (_entry("hash-b", days=1), _entry("hash-a", days=2), _entry("hash-c", days=3))

    stored = await repository.replace_refresh_tokens(
        user_id=user.user_id,
        expected_version=0,
        entries=entries,
    )
    loaded = await repository.get_by_id(user_id=user.user_id)

    assert stored is True
    assert loaded is not None
    assert loaded.token_version == 1
    assert loaded.refresh_tokens == entries

    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        count = connection.execute(
            sa.text("SELECT COUNT(*) AS count FROM refresh_tokens")
        ).mappings().one()
    assert int(count["count"]) == 3


@pytest.mark.asyncio
async def test_replace_refresh_tokens_rejects_stale_version_without_writing(
    tmp_path: Path,
) -> None:
    _, async_url = _upgrade_head(tmp_path, "repo_stale.db")
    repository = SqlAlchemyUserRepository(create_session_factory(async_url))
    user = await repository.create_user(_payload())
    assert await repository.replace_refresh_tokens(
        user_id=user.user_id,
        expected_version=0,
        entries=(_entry("first"),),
    )

    stored = await repository.replace_refresh_tokens(
        user_id=user.user_id,
        expected_version=0,
        entries=(_entry("stale-write"),),
    )
    loaded = await repository.get_by_id(user_id=user.user_id)

    assert stored is False
    assert loaded is not None
    assert loaded.token_version == 1
    assert [entry.token_hash for entry in loaded.refresh_tokens] == ["first"]


@pytest.mark.asyncio
async def test_replace_refresh_tokens_can_clear_collection(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "repo_clear.db")
    repository = SqlAlchemyUserRepository(create_session_factory(async_url))
    user = await repository.create_user(_payload())
    await repository.replace_refresh_tokens(
        user_id=user.user_id,
        expected_version=0,
        entries=(_entry("only"),),
    )

    stored = await repository.replace_refresh_tokens(
        user_id=user.user_id,
        expected_version=1,
        entries=(),
    )
    loaded = await repository.get_by_id(user_id=user.user_id)

    assert stored is True
    assert loaded is not None
    assert loaded.refresh_tokens == ()
    assert loaded.token_version == 2


@pytest.mark.asyncio
async def test_get_by_refresh_token_hash_finds_owner_only(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "repo_lookup.db")
    repository = SqlAlchemyUserRepository(create_session_factory(async_url))
    owner = await repository.create_user(_payload("owner@x.com"))
    other = await repository.create_user(_payload("other@x.com"))
    await repository.replace_refresh_tokens(
        user_id=owner.user_id,
        expected_version=0,
        entries=(_entry("owner-hash"),),
    )
    await repository.replace_refresh_tokens(
        user_id=other.user_id,
        expected_version=0,
        entries=(_entry("other-hash"),),
    )

    found = await repository.get_by_refresh_token_hash(token_hash="owner-hash")
    missing = await repository.get_by_refresh_token_hash(token_hash="unknown-hash")

    assert found is not None
    assert found.user_id == owner.user_id
    assert found.refresh_tokens == (_entry("owner-hash"),)
    assert missing is None
