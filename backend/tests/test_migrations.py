from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from backoffice.core.config import get_settings


EXPECTED_TABLES = {
    "users",
    "sessions",
    "password_reset_requests",
    "customer_groups",
    "offers",
    "scripts",
    "channels",
    "campaigns",
    "campaign_customer_groups",
    "campaign_offers",
    "campaign_scripts",
    "campaign_approval_requests",
    "campaign_history",
    "notices",
    "system_logs",
}


def _config(dsn: str) -> Config:
    cfg = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", dsn)
    cfg.attributes["connection_url"] = dsn
    return cfg


def test_migration_upgrade_and_downgrade(tmp_path, monkeypatch):
    dsn = f"sqlite:///{(tmp_path / 'mig.db').as_posix()}"
    monkeypatch.setenv("DATABASE_URL", dsn)
    get_settings.cache_clear()
    cfg = _config(dsn)
    engine = create_engine(dsn)
    try:
        command.upgrade(cfg, "head")
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert EXPECTED_TABLES <= tables, f"missing tables: {EXPECTED_TABLES - tables}"

        indexes = {idx["name"]: idx for idx in inspector.get_indexes("campaign_approval_requests")}
        assert indexes["uq_campaign_approval_requests_pending"]["unique"]
        history_cols = {col["name"] for col in inspector.get_columns("campaign_history")}
        assert {"campaign_id", "action_type", "action_by", "previous_status", "new_status", "comments"} <= history_cols
        session_cols = {col["name"] for col in inspector.get_columns("sessions")}
        assert {"token", "user_id", "expires_at", "last_activity", "warned_at"} <= session_cols

        with engine.connect() as conn:
            revision = conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
        assert revision == "20261019_0001"

        command.downgrade(cfg, "base")
        assert "campaigns" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
        get_settings.cache_clear()


def test_pending_index_allows_only_one_pending_request_per_campaign(tmp_path, monkeypatch):
    dsn = f"sqlite:///{(tmp_path / 'pending.db').as_posix()}"
    monkeypatch.setenv("DATABASE_URL", dsn)
    get_settings.cache_clear()
    engine = create_engine(dsn)
    try:
        command.upgrade(_config(dsn), "head")
        insert = text(
            "INSERT INTO campaign_approval_requests (campaign_id, requester_id, approver_id, status, created_at, updated_at) "
            "VALUES (:campaign_id, 1, 2, :status, '2026-10-19 09:00:00', '2026-10-19 09:00:00')"
        )
        with engine.begin() as conn:
            conn.execute(insert, {"campaign_id": 7, "status": "APPROVED"})
            conn.execute(insert, {"campaign_id": 7, "status": "PENDING"})
        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                conn.execute(insert, {"campaign_id": 7, "status": "PENDING"})
    finally:
        engine.dispose()
        get_settings.cache_clear()
