"""Application authentication service for signup, login, refresh and logout."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from personal_finance.application.ports.credential_verifier_port import CredentialVerifierPort
from personal_finance.application.ports.token_issuer_port import TokenIssuerPort
from personal_finance.application.ports.user_repository_port import (
    DuplicateUserEmailError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from personal_finance.application.services.auth_errors import (
    AuthenticationError,
    AuthServiceError,
    ConfigurationError,
    ConflictError,
    ServerError,
    ValidationError,
)
from personal_finance.domain.auth import refresh_tokens
from personal_finance.domain.auth.credentials import (
    normalize_user_email,
    normalize_user_name,
    validate_user_password,
)
from personal_finance.domain.auth.refresh_tokens import RefreshTokenEntries
from personal_finance.domain.auth.token_policy import AuthTokenPolicy

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "invalid credentials"
INVALID_REFRESH_TOKEN_MESSAGE = "invalid refresh token"
EXPIRED_REFRESH_TOKEN_MESSAGE = "refresh token expired"
INVALID_ACCESS_TOKEN_MESSAGE = "invalid access token"


class TokenMutationOutcome(StrEnum):
    """Result of evaluating one token operation against a user's collection."""

    ISSUED = "issued"
    REVOKED = "revoked"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class UserSummary:
    """Public user fields returned alongside issued tokens."""

    user_id: UUID
    name: str
    email: str


@dataclass(frozen=True)
class IssuedTokens:
    """Access/refresh pair handed to the client exactly once."""

    access_token: str
    refresh_token: str
    user: UserSummary


@dataclass(frozen=True)
class _TokenMutation:
    entries: RefreshTokenEntries
    outcome: TokenMutationOutcome
    refresh_token: str | None = None


_MutationPlan = Callable[[UserRecord, datetime], _TokenMutation]


class AuthService:
    """Compose credential checks, token issuance and the per-user token store."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        credential_verifier: CredentialVerifierPort,
        token_issuer: TokenIssuerPort,
        policy: AuthTokenPolicy,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._users = users
        self._credential_verifier = credential_verifier
        self._token_issuer = token_issuer
        self._policy = policy
        self._now = now or (lambda: datetime.now(tz=UTC))

    async def signup(self, *, name: str, email: str, password: str) -> IssuedTokens:
        """Create an account and issue its first access/refresh pair."""

        with _classify_failures("signup"):
            try:
                normalized_name = normalize_user_name(name=name)
                normalized_email = normalize_user_email(email=email)
                validate_user_password(password=password)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

            self._token_issuer.ensure_configured()
            if await self._users.get_by_email(email=normalized_email) is not None:
                raise ConflictError("email already in use")

            password_hash = self._credential_verifier.hash_password(password)
            try:
                user = await self._users.create_user(
                    UserCreateInput(
                        name=normalized_name,
                        email=normalized_email,
                        password_hash=password_hash,
                    )
                )
            except DuplicateUserEmailError as exc:
                raise ConflictError("email already in use") from exc

            tokens = await self._issue_tokens(user)
            logger.info("auth_signup_success user_id=%s", user.user_id)
            return tokens

    async def login(self, *, email: str, password: str) -> IssuedTokens:
        """Verify credentials and issue a new access/refresh pair."""

        with _classify_failures("login"):
            try:
                normalized_email = normalize_user_email(email=email)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

            user = await self._users.get_by_email(email=normalized_email)
            if user is None:
                logger.info("auth_login_failed reason=invalid_credentials")
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

            is_valid = self._credential_verifier.verify_password(
                password=password,
                password_hash=user.password_hash,
            )
            if not is_valid:
                logger.info(
                    "auth_login_failed reason=invalid_credentials user_id=%s",
                    user.user_id,
                )
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

            tokens = await self._issue_tokens(user)
            logger.info("auth_login_success user_id=%s", user.user_id)
            return tokens

    async def refresh(self, *, refresh_token: str) -> IssuedTokens:
        """Rotate a refresh token: consume it and issue a fresh pair in its place."""

        with _classify_failures("refresh"):
            self._token_issuer.ensure_configured()
            token_hash = self._token_issuer.hash_token(refresh_token)
            user = await self._users.get_by_refresh_token_hash(token_hash=token_hash)
            if user is None:
                logger.info("auth_refresh_rejected reason=not_found")
                raise AuthenticationError(INVALID_REFRESH_TOKEN_MESSAGE)

            def plan(current: UserRecord, now: datetime) -> _TokenMutation:
                entry = refresh_tokens.find_by_hash(current.refresh_tokens, token_hash=token_hash)
                if entry is None:
                    return _TokenMutation(
                        entries=current.refresh_tokens,
                        outcome=TokenMutationOutcome.NOT_FOUND,
                    )
                remaining, _ = refresh_tokens.remove(current.refresh_tokens, token_hash=token_hash)
                if entry.is_expired(now=now):
                    return _TokenMutation(entries=remaining, outcome=TokenMutationOutcome.EXPIRED)
                return self._plan_issue(remaining, now=now)

            user, mutation = await self._apply(user, plan)
            if mutation.outcome is TokenMutationOutcome.EXPIRED:
                logger.info("auth_refresh_rejected reason=expired user_id=%s", user.user_id)
                raise AuthenticationError(self._expired_refresh_message())
            if mutation.outcome is TokenMutationOutcome.NOT_FOUND:
                logger.info("auth_refresh_rejected reason=consumed user_id=%s", user.user_id)
                raise AuthenticationError(INVALID_REFRESH_TOKEN_MESSAGE)

            tokens = self._to_issued_tokens(user, mutation)
            logger.info("auth_refresh_success user_id=%s", user.user_id)
            return tokens

    async def logout(self, *, refresh_token: str) -> None:
        """Revoke a refresh token if it is stored; unknown tokens are a silent no-op."""

        with _classify_failures("logout"):
            token_hash = self._token_issuer.hash_token(refresh_token)
            user = await self._users.get_by_refresh_token_hash(token_hash=token_hash)
            if user is None:
                return

            def plan(current: UserRecord, now: datetime) -> _TokenMutation:
                remaining, removed = refresh_tokens.remove(
                    current.refresh_tokens,
                    token_hash=token_hash,
                )
                outcome = (
                    TokenMutationOutcome.REVOKED if removed else TokenMutationOutcome.NOT_FOUND
                )
                return _TokenMutation(entries=remaining, outcome=outcome)

            user, mutation = await self._apply(user, plan)
            if mutation.outcome is TokenMutationOutcome.REVOKED:
                logger.info("auth_logout_revoked user_id=%s", user.user_id)

    async def authenticate_access_token(self, *, access_token: str) -> UserSummary:
        """Resolve a bearer access token to the summary of an existing user."""

        with _classify_failures("access"):
            user_id = self._token_issuer.decode_access_token(access_token)
            user = await self._users.get_by_id(user_id=user_id)
            if user is None:
                raise AuthenticationError(INVALID_ACCESS_TOKEN_MESSAGE)
            return _to_user_summary(user)

    async def _issue_tokens(self, user: UserRecord) -> IssuedTokens:
        """Attach a new refresh entry to `user` and mint the matching access token."""

        self._token_issuer.ensure_configured()

        def plan(current: UserRecord, now: datetime) -> _TokenMutation:
            return self._plan_issue(current.refresh_tokens, now=now)

        user, mutation = await self._apply(user, plan)
        return self._to_issued_tokens(user, mutation)

    def _plan_issue(self, entries: RefreshTokenEntries, *, now: datetime) -> _TokenMutation:
        """Prune, make room for one entry, then attach a freshly generated token."""

        entries = refresh_tokens.prune_expired(entries, now=now)
        entries = refresh_tokens.enforce_limit(
            entries,
            max_size=self._policy.max_refresh_tokens - 1,
        )
        raw_token = self._token_issuer.issue_refresh_token_value()
        entries = refresh_tokens.attach(
            entries,
            raw_token=raw_token,
            ttl=self._policy.refresh_token_ttl,
            now=now,
        )
        return _TokenMutation(
            entries=entries,
            outcome=TokenMutationOutcome.ISSUED,
            refresh_token=raw_token,
        )

    async def _apply(
        self,
        user: UserRecord,
        plan: _MutationPlan,
    ) -> tuple[UserRecord, _TokenMutation]:
        """Evaluate `plan` and persist its result with a token-version check.

        A lost compare-and-swap reloads the user and re-evaluates the plan, so a
        token consumed by a concurrent request is never rotated twice.
        """

        current = user
        for attempt in range(1, self._policy.max_conflict_retries + 1):
            mutation = plan(current, self._now())
            if mutation.entries == current.refresh_tokens:
                return current, mutation

            stored = await self._users.replace_refresh_tokens(
                user_id=current.user_id,
                expected_version=current.token_version,
                entries=mutation.entries,
            )
            if stored:
                return current, mutation

            logger.info(
                "auth_token_version_conflict user_id=%s attempt=%s",
                current.user_id,
                attempt,
            )
            reloaded = await self._users.get_by_id(user_id=current.user_id)
            if reloaded is None:
                raise ServerError()
            current = reloaded

        logger.warning(
            "auth_token_version_conflict_exhausted user_id=%s attempts=%s",
            current.user_id,
            self._policy.max_conflict_retries,
        )
        raise ServerError()

    def _to_issued_tokens(self, user: UserRecord, mutation: _TokenMutation) -> IssuedTokens:
        assert mutation.refresh_token is not None
        return IssuedTokens(
            access_token=self._token_issuer.issue_access_token(user.user_id),
            refresh_token=mutation.refresh_token,
            user=_to_user_summary(user),
        )

    def _expired_refresh_message(self) -> str:
        if self._policy.uniform_refresh_errors:
            return INVALID_REFRESH_TOKEN_MESSAGE
        return EXPIRED_REFRESH_TOKEN_MESSAGE


def _to_user_summary(user: UserRecord) -> UserSummary:
    return UserSummary(user_id=user.user_id, name=user.name, email=user.email)


@contextmanager
def _classify_failures(operation: str) -> Iterator[None]:
    """Let classified outcomes through and turn every other failure into `ServerError`."""

    try:
        yield
    except ConfigurationError:
        logger.error("auth_%s_misconfigured", operation)
        raise
    except AuthServiceError:
        raise
    except Exception as exc:
        logger.exception("auth_%s_failed", operation)
        raise ServerError() from exc
