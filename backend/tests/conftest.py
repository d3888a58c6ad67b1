import os
os.environ["APP_ENV"] = "test"

# THEN import anything else
import shutil
import tempfile
import time
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Generator
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

import backoffice.db.session as db_session_module
from backoffice.core.passwords import hash_password
from backoffice.db.session import get_db
from backoffice.models.user import User
from backoffice.services import session_service


PASSWORDS = {
    "planner@example.com": "pass-planner",
    "approver@example.com": "pass-approver",
    "other@example.com": "pass-other",
}
# Hashed once per run; pbkdf2 at full strength per test is slow.
_PASSWORD_HASHES = {email: hash_password(password) for email, password in PASSWORDS.items()}


def _run_alembic_upgrade(backend_dir: Path, database_url: str) -> None:
    cfg = Config(str(backend_dir / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    os.environ["DATABASE_URL"] = database_url
    command.upgrade(cfg, "head")


def pytest_configure(config: pytest.Config) -> None:
    workers = getattr(config.option, "numprocesses", None)
    if workers and int(workers) > 1:
        pytest.exit("SQLite test path does not support pytest-xdist parallel workers.")


@pytest.fixture(scope="session", autouse=True)
def apply_migrations() -> Generator[Path, None, None]:
    backend_dir = Path(__file__).resolve().parents[1]
    temp_dir = Path(tempfile.mkdtemp(prefix="pytest-db-"))
    template_db_path = temp_dir / f"template-{uuid.uuid4().hex}.sqlite3"
    database_url = f"sqlite:///{template_db_path.as_posix()}"
    os.environ["DATABASE_URL"] = database_url

    from backoffice.core.config import get_settings

    get_settings.cache_clear()
    db_session_module.reset_engine_state()
    _run_alembic_upgrade(backend_dir, database_url)
    verification_engine = create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 30}, poolclass=NullPool)
    try:
        has_approvals = inspect(verification_engine).has_table("campaign_approval_requests")
    finally:
        verification_engine.dispose()
    if not has_approvals:
        raise RuntimeError("Alembic migration parity check failed; missing table: campaign_approval_requests")
    yield template_db_path
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="session", autouse=True)
def bind_module_session_factories(apply_migrations: Path) -> Generator[None, None, None]:
    database_url = f"sqlite:///{apply_migrations.as_posix()}"
    bootstrap_engine = create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 30}, poolclass=NullPool)
    bootstrap_session_local = sessionmaker(bind=bootstrap_engine, autocommit=False, autoflush=False)

    db_session_module.bind_session_factory_for_tests(bootstrap_session_local)

    # Import app after rebinding to avoid stale SessionLocal capture in route modules.
    import backoffice.main  # noqa: F401

    yield
    bootstrap_engine.dispose()


@pytest.fixture()
def db_session(apply_migrations: Path) -> Generator[Session, None, None]:
    test_db_path = apply_migrations.parent / f"{uuid.uuid4().hex}.sqlite3"
    shutil.copy2(apply_migrations, test_db_path)
    database_url = f"sqlite:///{test_db_path.as_posix()}"
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )
    test_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    test_session = test_session_local()
    db_session_module.bind_session_factory_for_tests(test_session_local)

    now = datetime.now(UTC)
    test_session.add_all(
        [
            User(
                id=1,
                email="planner@example.com",
                password_hash=_PASSWORD_HASHES["planner@example.com"],
                name="Planner",
                role="user",
                status="active",
                created_at=now,
                updated_at=now,
            ),
            User(
                id=2,
                email="approver@example.com",
                password_hash=_PASSWORD_HASHES["approver@example.com"],
                name="Approver",
                role="admin",
                status="active",
                created_at=now,
                updated_at=now,
            ),
            User(
                id=3,
                email="other@example.com",
                password_hash=_PASSWORD_HASHES["other@example.com"],
                name="Other",
                role="user",
                status="active",
                created_at=now,
                updated_at=now,
            ),
        ]
    )
    test_session.commit()

    try:
        yield test_session
    finally:
        test_session.close()
        engine.dispose()
        for _ in range(5):
            try:
                test_db_path.unlink(missing_ok=True)
                break
            except PermissionError:
                time.sleep(0.05)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    from backoffice.main import app

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def issue_token(db_session: Session) -> Callable[..., str]:
    def _issue(email: str, kind: str = session_service.PERSISTED) -> str:
        user = db_session.query(User).filter(User.email == email).one()
        token, _expires_at = session_service.open_session(db_session, user, kind=kind)
        db_session.commit()
        return token

    return _issue


@pytest.fixture()
def auth_headers(issue_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _headers(email: str = "planner@example.com", kind: str = session_service.PERSISTED) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(email, kind)}"}

    return _headers
