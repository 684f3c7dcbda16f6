"""api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from personal_finance.application.services.auth_service import AuthService
from personal_finance.config.settings import load_settings
from personal_finance.domain.auth.token_policy import AuthTokenPolicy
from personal_finance.infrastructure.db.session import create_session_factory
from personal_finance.infrastructure.db.user_repository import SqlAlchemyUserRepository
from personal_finance.infrastructure.http.auth_router import build_auth_router
from personal_finance.infrastructure.logging import configure_logging
from personal_finance.infrastructure.security.password_hasher import BcryptPasswordHasher
from personal_finance.infrastructure.security.token_service import TokenService

API_HOST = "0.0.0.0"
API_PORT = 3000
logger = logging.getLogger(__name__)


def build_auth_service(
    database_url: str,
    *,
    policy: AuthTokenPolicy,
    token_service: TokenService,
) -> AuthService:
    """Build authentication service with SQLAlchemy-backed dependencies."""

    session_factory = create_session_factory(database_url)
    return AuthService(
        users=SqlAlchemyUserRepository(session_factory),
        credential_verifier=BcryptPasswordHasher(),
        token_issuer=token_service,
        policy=policy,
    )


def create_app(
    *,
    auth_service: AuthService | None = None,
    token_service: TokenService | None = None,
    policy: AuthTokenPolicy | None = None,
    database_url: str | None = None,
) -> FastAPI:
    """Create FastAPI app for the auth endpoints.

    Fails with `ConfigurationError` when no access-token signing secret is set.
    """

    needs_policy = policy is None and (auth_service is None or token_service is None)
    needs_database_url = database_url is None and auth_service is None
    if needs_policy or needs_database_url:
        settings = load_settings()
        configure_logging(level=settings.log_level)
        if policy is None:
            policy = settings.auth_token_policy()
        if database_url is None:
            database_url = settings.database_url

    if token_service is None:
        assert policy is not None
        token_service = TokenService(policy=policy)
    token_service.ensure_configured()

    if auth_service is None:
        assert policy is not None
        assert database_url is not None
        auth_service = build_auth_service(
            database_url,
            policy=policy,
            token_service=token_service,
        )

    app = FastAPI()
    app.include_router(build_auth_router(auth_service=auth_service))

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"message": "API is running"}

    logger.info("api_app_created")
    return app


def run_asgi_server(*, host: str = API_HOST, port: int = API_PORT) -> None:
    """Run the API as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
