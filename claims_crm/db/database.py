from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url

from claims_crm.config import settings

log = structlog.get_logger()


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.engine = None
            cls._instance.url = None
        return cls._instance

    def configure(self, url: str):
        """Point the accessor at another database; the engine is rebuilt lazily."""
        self.close()
        self.url = url

    def connect(self) -> Engine:
        if self.engine is None:
            url = make_url(self.url or settings.DATABASE_URL)
            self.engine = create_engine(url, echo=settings.DATABASE_ECHO, pool_pre_ping=True)
            if url.get_backend_name() == "sqlite":
                event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
            log.info("db.connected", url=url.render_as_string(hide_password=True))
        return self.engine

    def close(self):
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            log.info("db.disconnected")

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside one transaction; commit on exit, roll back on error."""
        with self.connect().begin() as conn:
            yield conn

    def execute(self, query: str, parameters: Optional[dict] = None, conn: Optional[Connection] = None) -> list[dict]:
        """Execute a parameterized SQL statement and return its rows as dicts"""
        if conn is not None:
            return _run(conn, query, parameters)
        with self.transaction() as own_conn:
            return _run(own_conn, query, parameters)


def _run(conn: Connection, query: str, parameters: Optional[dict]) -> list[dict]:
    result = conn.execute(text(query), parameters or {})
    if not result.returns_rows:
        return []
    return [dict(row._mapping) for row in result]


# Singleton instance
database = Database()


def execute(query: str, parameters: Optional[dict] = None, conn: Optional[Connection] = None) -> list[dict]:
    return database.execute(query, parameters, conn)


def execute_one(query: str, parameters: Optional[dict] = None, conn: Optional[Connection] = None) -> Optional[dict[str, Any]]:
    rows = database.execute(query, parameters, conn)
    return rows[0] if rows else None


def transaction():
    return database.transaction()


def coerce_bools(row: Optional[dict], *columns: str) -> Optional[dict]:
    """SQLite hands booleans back as 0/1; normalize the named columns."""
    if row is None:
        return None
    for column in columns:
        if row.get(column) is not None:
            row[column] = bool(row[column])
    return row


def contains_pattern(value: str) -> str:
    """LIKE pattern matching ``value`` literally anywhere; pair with ESCAPE '\\'."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
