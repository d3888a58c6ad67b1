import os
import sys
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from backoffice.core.crypto import DEFAULT_MASTER_SECRET, decrypt_env_value, is_encrypted


_WEAK_JWT_SECRETS = {"", "local-dev-secret", "replace-me", "your-secret-key"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Campaign Backoffice API"
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"

    jwt_secret: str = "local-dev-secret"
    jwt_algorithm: str = "HS256"
    session_timeout_minutes: int = 30
    session_warning_minutes: int = 5

    database_url: str = "sqlite:///./backoffice.db"
    db_pool_size: int = 10
    db_max_overflow: int = 5
    master_secret: str = DEFAULT_MASTER_SECRET

    log_level: str = "INFO"
    metrics_enabled: bool = False
    max_request_body_bytes: int = 2_000_000
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @model_validator(mode="before")
    @classmethod
    def decrypt_encrypted_values(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        raw_master = data.get("master_secret") or os.getenv("MASTER_SECRET", "")
        master_secret = str(raw_master).strip() or DEFAULT_MASTER_SECRET
        for key, value in list(data.items()):
            if key != "master_secret" and isinstance(value, str) and is_encrypted(value):
                data[key] = decrypt_env_value(value, master_secret=master_secret)
        return data

    @model_validator(mode="after")
    def validate_production_guardrails(self) -> "Settings":
        if not self.jwt_secret.strip():
            raise ValueError("JWT_SECRET is required and must not be empty.")
        if self.session_warning_minutes >= self.session_timeout_minutes:
            raise ValueError("SESSION_WARNING_MINUTES must be smaller than SESSION_TIMEOUT_MINUTES.")

        if self.app_env.lower() != "production":
            return self

        if self.jwt_secret in _WEAK_JWT_SECRETS or len(self.jwt_secret) < 32:
            raise ValueError("Production requires JWT_SECRET with at least 32 characters.")
        if self.master_secret in {"", DEFAULT_MASTER_SECRET}:
            raise ValueError("Production requires MASTER_SECRET and forbids the default value.")
        if self.database_url.startswith("sqlite"):
            raise ValueError("Production requires DATABASE_URL backed by a server database.")
        return self

    @property
    def session_timeout_seconds(self) -> int:
        return self.session_timeout_minutes * 60

    @property
    def session_warning_seconds(self) -> int:
        return self.session_warning_minutes * 60

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "").lower()
    is_pytest_runtime = "pytest" in sys.modules
    if app_env == "test" or (not app_env and is_pytest_runtime):
        def _env_or_default(name: str, default: str) -> str:
            value = os.getenv(name)
            if value is None:
                return default
            stripped = value.strip()
            return stripped if stripped else default

        return Settings(
            app_env="test",
            jwt_secret=_env_or_default("JWT_SECRET", "test-jwt-secret-32-characters-minimum"),
            database_url=_env_or_default("DATABASE_URL", "sqlite:///./backoffice-test.db"),
            master_secret=_env_or_default("MASTER_SECRET", "test-master-secret"),
            db_pool_size=2,
            db_max_overflow=0,
        )
    return Settings()
