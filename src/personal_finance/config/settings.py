"""Runtime settings loaded from environment variables."""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from personal_finance.domain.auth.token_policy import AuthTokenPolicy

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    jwt_secret: str | None = Field(default=None, validation_alias="JWT_SECRET")
    jwt_algorithm: NonEmptyStr = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_access_expires_minutes: PositiveInt = Field(
        default=15,
        validation_alias="JWT_ACCESS_EXPIRES_MINUTES",
    )
    jwt_refresh_days: PositiveInt = Field(default=30, validation_alias="JWT_REFRESH_DAYS")
    jwt_refresh_max_tokens: PositiveInt = Field(
        default=5,
        validation_alias="JWT_REFRESH_MAX_TOKENS",
    )
    auth_max_conflict_retries: PositiveInt = Field(
        default=3,
        validation_alias="AUTH_MAX_CONFLICT_RETRIES",
    )
    auth_uniform_refresh_errors: bool = Field(
        default=False,
        validation_alias="AUTH_UNIFORM_REFRESH_ERRORS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def auth_token_policy(self) -> AuthTokenPolicy:
        """Freeze token-related settings into the policy passed to auth components."""

        return AuthTokenPolicy(
            signing_secret=self.jwt_secret,
            signing_algorithm=self.jwt_algorithm,
            access_token_ttl=timedelta(minutes=self.jwt_access_expires_minutes),
            refresh_token_ttl=timedelta(days=self.jwt_refresh_days),
            max_refresh_tokens=self.jwt_refresh_max_tokens,
            max_conflict_retries=self.auth_max_conflict_retries,
            uniform_refresh_errors=self.auth_uniform_refresh_errors,
        )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
