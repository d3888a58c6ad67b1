import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from backoffice.db.database import Database

_INSERT_NOTICE = (
    "INSERT INTO notices (title, content, type, priority, status, target_audience, is_popup, is_important, "
    "view_count, created_by, created_at, updated_at) "
    "VALUES (:title, 'body', 'general', 'normal', 'draft', 'all', 0, 0, 0, 'tester', "
    "'2026-10-19 09:00:00', '2026-10-19 09:00:00')"
)


@pytest.fixture()
def database(db_session) -> Database:
    return Database(db_session.get_bind())


def test_select_returns_rows_as_dicts(database):
    rows = database.execute("SELECT id, email FROM users WHERE role = :role ORDER BY id", {"role": "user"})
    assert rows == [{"id": 1, "email": "planner@example.com"}, {"id": 3, "email": "other@example.com"}]


def test_write_returns_rowcount_and_lastrowid(database):
    result = database.execute(_INSERT_NOTICE, {"title": "raw"})
    assert result["rowcount"] == 1
    assert result["lastrowid"] is not None
    rows = database.execute("SELECT title FROM notices WHERE id = :id", {"id": result["lastrowid"]})
    assert rows == [{"title": "raw"}]


def test_parameters_are_bound_not_interpolated(database):
    rows = database.execute("SELECT id FROM users WHERE email = :email", {"email": "x' OR '1'='1"})
    assert rows == []


def test_transaction_commits_all_statements(database):
    results = database.execute_transaction(
        [
            (_INSERT_NOTICE, {"title": "first"}),
            (_INSERT_NOTICE, {"title": "second"}),
            ("SELECT COUNT(*) AS total FROM notices", None),
        ]
    )
    assert results[2] == [{"total": 2}]


def test_transaction_rolls_back_on_failure(database):
    with pytest.raises(OperationalError):
        database.execute_transaction(
            [
                (_INSERT_NOTICE, {"title": "lost"}),
                ("INSERT INTO no_such_table (id) VALUES (1)", None),
            ]
        )
    assert database.execute("SELECT COUNT(*) AS total FROM notices") == [{"total": 0}]


def test_ping_and_connection(database):
    assert database.ping() is True
    with database.connection() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM users")).scalar() == 3
