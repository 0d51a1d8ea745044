from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic.aliases import AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BACKEND_DIR / ".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///" + str(BACKEND_DIR / "schedules.db"),
        validation_alias=AliasChoices("database_url", "DATABASE_URL"),
    )

    # Tokens are issued by the external identity service; we only verify them.
    jwt_secret_key: str = Field(
        validation_alias=AliasChoices("jwt_secret_key", "jwt_secret", "JWT_SECRET_KEY", "JWT_SECRET")
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias=AliasChoices("jwt_algorithm", "JWT_ALGORITHM"))

    # Runtime
    environment: str = Field(default="development", validation_alias=AliasChoices("environment", "ENVIRONMENT"))
    log_level: str | None = Field(default=None, validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    log_dir: Path | None = Field(default=None, validation_alias=AliasChoices("log_dir", "LOG_DIR"))
    frontend_origin: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("frontend_origin", "FRONTEND_ORIGIN"),
    )

    # Used when the school_settings row has never been written.
    default_max_course_load: int = Field(
        default=8,
        ge=1,
        validation_alias=AliasChoices("default_max_course_load", "DEFAULT_MAX_COURSE_LOAD"),
    )
    default_allow_conflicts: bool = Field(
        default=False,
        validation_alias=AliasChoices("default_allow_conflicts", "DEFAULT_ALLOW_CONFLICTS"),
    )

    # Backoff between automatic retries of a lost transaction race.
    transaction_retry_delays: list[float] = Field(
        default_factory=lambda: [0.2, 0.5, 1.0],
        validation_alias=AliasChoices("transaction_retry_delays", "TRANSACTION_RETRY_DELAYS"),
    )

    @field_validator("frontend_origin")
    @classmethod
    def _normalize_frontend_origin(cls, v: str) -> str:
        # Starlette CORS expects the Origin to match exactly (no trailing slash).
        return v.strip().rstrip("/")

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @field_validator("transaction_retry_delays")
    @classmethod
    def _validate_retry_delays(cls, v: list[float]) -> list[float]:
        if any(d < 0 for d in v):
            raise ValueError("TRANSACTION_RETRY_DELAYS must not contain negative values")
        return v


settings = Settings()
