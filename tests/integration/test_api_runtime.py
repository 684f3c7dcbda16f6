from __future__ import annotations

from pathlib import Path

import pytest
from alembic.config import Config
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from alembic import command
from apps.api import main as api_main
from personal_finance.application.services.auth_errors import ConfigurationError
from personal_finance.config.settings import load_settings
from personal_finance.domain.auth.token_policy import AuthTokenPolicy


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"
    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")
    return sync_url, async_url


def test_create_app_fails_fast_without_signing_secret(tmp_path: Path) -> None:
    async_url = f"sqlite+aiosqlite:///{tmp_path / 'runtime_no_secret.db'}"

    with pytest.raises(ConfigurationError, match="JWT_SECRET"):
        api_main.create_app(
            policy=AuthTokenPolicy(signing_secret="   "),
            database_url=async_url,
        )


def test_create_app_from_environment_exposes_auth_routes(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _, async_url = _upgrade_head(tmp_path, "runtime_env.db")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", async_url)
    monkeypatch.setenv("JWT_SECRET", "runtime-signing-secret")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    load_settings.cache_clear()

    try:
        app = api_main.create_app()
    finally:
        load_settings.cache_clear()

    routes = {
        (route.path, method)
        for route in app.routes
        if isinstance(route, APIRoute)
        for method in route.methods
    }
    assert {
        ("/", "GET"),
        ("/api/auth/signup", "POST"),
        ("/api/auth/login", "POST"),
        ("/api/auth/refresh", "POST"),
        ("/api/auth/logout", "POST"),
        ("/api/auth/me", "GET"),
    } <= routes

    with TestClient(app) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "API is running"}


def test_run_asgi_server_uses_factory_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(app: str, **kwargs: object) -> None:
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(api_main.uvicorn, "run", fake_run)

    api_main.run_asgi_server()

    assert captured == {
        "app": "apps.api.main:create_app",
        "host": "0.0.0.0",
        "port": 3000,
        "factory": True,
    }
