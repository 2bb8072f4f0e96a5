# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository plumbing shared by every SQL-backed store.
Write methods accept an optional open connection so several stores can
take part in one transaction.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from sqlalchemy.engine import Connection, Engine


def utcnow() -> str:
    """Naive UTC timestamp in ISO form, portable across PostgreSQL and SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat()


def to_db_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat()


def iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class BaseRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Open a unit of work; commits on exit, rolls back on error."""
        with self._engine.begin() as conn:
            yield conn

    @contextmanager
    def _begin(self, conn: Optional[Connection] = None) -> Iterator[Connection]:
        if conn is not None:
            yield conn
            return
        with self._engine.begin() as own:
            yield own

    @contextmanager
    def _read(self, conn: Optional[Connection] = None) -> Iterator[Connection]:
        if conn is not None:
            yield conn
            return
        with self._engine.connect() as own:
            yield own
