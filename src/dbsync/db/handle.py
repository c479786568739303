"""SQLAlchemy Core handle exposing read-all and upsert-by-id per table.

The sync engine never sees SQL: it only calls ``fetch_all()`` and
``upsert()`` through the ``RecordStore`` protocol, so tests can swap in
in-memory fakes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy import MetaData, Table, create_engine, insert, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from dbsync.errors import ConnectionFailedError, ConnectionLostError

logger = logging.getLogger(__name__)

# Dialects with a native INSERT .. ON CONFLICT construct
_NATIVE_UPSERT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class RecordStore(Protocol):
    """What the sync engine needs from one side of a run."""

    label: str

    def fetch_all(self, table: str) -> list[dict[str, Any]]:
        """Return every row of *table* as a plain dict."""
        ...  # pragma: no cover

    def upsert(self, table: str, record: dict[str, Any]) -> None:
        """Create or overwrite the row whose ``id`` matches *record*."""
        ...  # pragma: no cover


class DatabaseHandle:
    """One database instance taking part in a sync run.

    Args:
        url: SQLAlchemy database URL.
        label: Human-readable name used in logs and reports.
    """

    def __init__(self, url: str, label: str) -> None:
        self.url = url
        self.label = label
        self._engine: Engine | None = None
        self._metadata = MetaData()
        self._tables: dict[str, Table] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Create the engine and verify the database answers.

        Raises:
            ConnectionFailedError: If the URL is unusable or the probe
                query fails.
        """
        try:
            engine = create_engine(self.url, pool_pre_ping=True)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise ConnectionFailedError(
                f"Could not connect to {self.label}: {exc}"
            ) from exc
        self._engine = engine
        logger.info("Connected to %s", self.label)

    def disconnect(self) -> None:
        """Dispose the engine. Safe to call when never connected."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._tables.clear()
        self._metadata = MetaData()
        logger.debug("Disconnected from %s", self.label)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError(f"{self.label} is not connected")
        return self._engine

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def fetch_all(self, table: str) -> list[dict[str, Any]]:
        """Select every row of *table*."""
        with self._translate_errors():
            tbl = self._table(table)
            with self.engine.connect() as conn:
                rows = conn.execute(select(tbl)).mappings().all()
        return [dict(row) for row in rows]

    def upsert(self, table: str, record: dict[str, Any]) -> None:
        """Idempotently write *record*, keyed on its ``id`` column.

        PostgreSQL and SQLite use ``INSERT .. ON CONFLICT (id) DO UPDATE``;
        other dialects update first and insert when no row matched, inside
        a single transaction.
        """
        with self._translate_errors():
            tbl = self._table(table)
            with self.engine.begin() as conn:
                native_insert = _NATIVE_UPSERT.get(conn.dialect.name)
                if native_insert is not None:
                    stmt = native_insert(tbl).values(record)
                    changes = {
                        key: stmt.excluded[key]
                        for key in record
                        if key != "id"
                    }
                    if changes:
                        stmt = stmt.on_conflict_do_update(
                            index_elements=[tbl.c.id], set_=changes
                        )
                    else:
                        stmt = stmt.on_conflict_do_nothing(
                            index_elements=[tbl.c.id]
                        )
                    conn.execute(stmt)
                    return

                result = conn.execute(
                    update(tbl)
                    .where(tbl.c.id == record["id"])
                    .values(record)
                )
                if result.rowcount == 0:
                    conn.execute(insert(tbl).values(record))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _table(self, name: str) -> Table:
        """Reflect *name* once per connection and cache it."""
        tbl = self._tables.get(name)
        if tbl is None:
            tbl = Table(name, self._metadata, autoload_with=self.engine)
            self._tables[name] = tbl
        return tbl

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        """Re-raise invalidated-connection errors as ``ConnectionLostError``."""
        try:
            yield
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise ConnectionLostError(
                    f"Connection to {self.label} lost: {exc}"
                ) from exc
            raise


@contextmanager
def open_handles(
    source: DatabaseHandle, target: DatabaseHandle
) -> Iterator[tuple[DatabaseHandle, DatabaseHandle]]:
    """Connect both handles and always disconnect both on exit.

    If the target fails to connect, the already-connected source is
    still released before the error propagates.
    """
    try:
        source.connect()
        target.connect()
        yield source, target
    finally:
        source.disconnect()
        target.disconnect()
