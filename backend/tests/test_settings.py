import pytest
from pydantic import ValidationError

from backoffice.core import config as settings_module
from backoffice.core.config import Settings
from backoffice.core.crypto import ENCRYPTED_PREFIX, encrypt


_STRONG_SECRET = "x" * 40


def test_get_settings_in_test_mode_uses_safe_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    settings_module.get_settings.cache_clear()
    try:
        monkeypatch.setenv("APP_ENV", "test")
        monkeypatch.delenv("JWT_SECRET", raising=False)

        settings = settings_module.get_settings()

        assert settings.app_env == "test"
        assert settings.jwt_secret == "test-jwt-secret-32-characters-minimum"
        assert settings.session_timeout_seconds == 1800
        assert settings.session_warning_seconds == 300
    finally:
        settings_module.get_settings.cache_clear()


def test_encrypted_values_are_decrypted_with_master_secret() -> None:
    encrypted = ENCRYPTED_PREFIX + encrypt(_STRONG_SECRET, master_secret="settings-master")
    settings = Settings(jwt_secret=encrypted, master_secret="settings-master")
    assert settings.jwt_secret == _STRONG_SECRET


def test_encrypted_values_use_master_secret_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MASTER_SECRET", "env-master")
    encrypted = ENCRYPTED_PREFIX + encrypt("postgresql+psycopg://u:p@db/app", master_secret="env-master")
    settings = Settings(database_url=encrypted)
    assert settings.database_url == "postgresql+psycopg://u:p@db/app"


def test_warning_window_must_be_shorter_than_timeout() -> None:
    with pytest.raises(ValidationError):
        Settings(session_timeout_minutes=5, session_warning_minutes=5)


def test_production_settings_reject_weak_jwt_secret() -> None:
    with pytest.raises(ValidationError) as exc_info:
        Settings(
            app_env="production",
            jwt_secret="local-dev-secret",
            master_secret="prod-master",
            database_url="postgresql+psycopg://u:p@db/app",
        )
    assert "JWT_SECRET" in str(exc_info.value)


def test_production_settings_reject_default_master_secret() -> None:
    with pytest.raises(ValidationError) as exc_info:
        Settings(
            app_env="production",
            jwt_secret=_STRONG_SECRET,
            master_secret="default-master-secret-change-this",
            database_url="postgresql+psycopg://u:p@db/app",
        )
    assert "MASTER_SECRET" in str(exc_info.value)


def test_production_settings_reject_sqlite() -> None:
    with pytest.raises(ValidationError) as exc_info:
        Settings(
            app_env="production",
            jwt_secret=_STRONG_SECRET,
            master_secret="prod-master",
            database_url="sqlite:///./prod.db",
        )
    assert "DATABASE_URL" in str(exc_info.value)


def test_production_settings_accept_strong_values() -> None:
    settings = Settings(
        app_env="production",
        jwt_secret=_STRONG_SECRET,
        master_secret="prod-master",
        database_url="postgresql+psycopg://u:p@db/app",
    )
    assert settings.app_env == "production"


def test_cors_origin_list_splits_and_trims() -> None:
    settings = Settings(cors_origins=" https://a.example , ,https://b.example")
    assert settings.cors_origin_list == ["https://a.example", "https://b.example"]
