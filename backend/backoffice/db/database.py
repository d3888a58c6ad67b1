from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from backoffice.db.session import get_engine


Statement = tuple[str, Mapping[str, Any] | None]


class Database:
    """Thin parameterized-SQL access layer over the pooled engine.

    Queries always use named bind parameters (``:name``); values are never
    interpolated into the SQL text.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine if self._engine is not None else get_engine()

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        conn = self.engine.connect()
        try:
            yield conn
        finally:
            conn.close()

    def execute(self, query: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]] | dict[str, Any]:
        with self.engine.begin() as conn:
            return _run(conn, query, params)

    def execute_transaction(self, statements: Sequence[Statement]) -> list[list[dict[str, Any]] | dict[str, Any]]:
        results: list[list[dict[str, Any]] | dict[str, Any]] = []
        with self.engine.begin() as conn:
            for query, params in statements:
                results.append(_run(conn, query, params))
        return results

    def ping(self) -> bool:
        with self.connection() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1


def _run(conn: Connection, query: str, params: Mapping[str, Any] | None) -> list[dict[str, Any]] | dict[str, Any]:
    result = conn.execute(text(query), dict(params or {}))
    if result.returns_rows:
        return [dict(row) for row in result.mappings().all()]
    return {"rowcount": result.rowcount, "lastrowid": getattr(result, "lastrowid", None)}
