"""Shared pytest fixtures for dbsync tests."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, insert, select

from dbsync.config import Config


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require live PostgreSQL databases",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring live PostgreSQL databases"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class FakeStore:
    """In-memory ``RecordStore`` with fault injection.

    Args:
        label: Display name.
        tables: Table name to list of row dicts.
        fail_ids: Record ids whose upsert raises.
        fail_tables: Tables whose ``fetch_all`` raises.
    """

    def __init__(
        self,
        label: str,
        tables: dict[str, list[dict[str, Any]]] | None = None,
        fail_ids: set | None = None,
        fail_tables: set | None = None,
    ) -> None:
        self.label = label
        self.tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(r) for r in rows]
            for name, rows in (tables or {}).items()
        }
        self.fail_ids = fail_ids or set()
        self.fail_tables = fail_tables or set()
        self.fetch_calls: list[str] = []
        self.upsert_calls: list[tuple[str, Any]] = []

    def fetch_all(self, table: str) -> list[dict[str, Any]]:
        self.fetch_calls.append(table)
        if table in self.fail_tables:
            raise RuntimeError(f"relation \"{table}\" does not exist")
        return [dict(r) for r in self.tables.get(table, [])]

    def upsert(self, table: str, record: dict[str, Any]) -> None:
        self.upsert_calls.append((table, record["id"]))
        if record["id"] in self.fail_ids:
            raise ValueError(f"constraint violation on {record['id']}")
        rows = self.tables.setdefault(table, [])
        for index, row in enumerate(rows):
            if row["id"] == record["id"]:
                rows[index] = dict(record)
                return
        rows.append(dict(record))

    def row(self, table: str, record_id: Any) -> dict[str, Any] | None:
        for row in self.tables.get(table, []):
            if row["id"] == record_id:
                return row
        return None


@pytest.fixture
def make_store():
    """Factory fixture for ``FakeStore`` instances."""
    return FakeStore


# ---------------------------------------------------------------------------
# SQLite databases
# ---------------------------------------------------------------------------


def _define_tables(metadata: MetaData) -> None:
    Table(
        "User",
        metadata,
        Column("id", String, primary_key=True),
        Column("name", String),
        Column("updatedAt", Integer),
    )
    Table(
        "Asset",
        metadata,
        Column("id", String, primary_key=True),
        Column("label", String, nullable=False),
        Column("ownerId", String),
        Column("updatedAt", Integer),
    )


class SqliteDatabase:
    """A file-backed SQLite database with ``User`` and ``Asset`` tables."""

    def __init__(self, path) -> None:
        self.url = f"sqlite:///{path}"
        self.engine = create_engine(self.url)
        self.metadata = MetaData()
        _define_tables(self.metadata)
        self.metadata.create_all(self.engine)

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        with self.engine.begin() as conn:
            conn.execute(insert(self.metadata.tables[table]), list(rows))

    def rows(self, table: str) -> dict[str, dict[str, Any]]:
        tbl = self.metadata.tables[table]
        with self.engine.connect() as conn:
            result = conn.execute(select(tbl)).mappings().all()
        return {row["id"]: dict(row) for row in result}

    def dispose(self) -> None:
        self.engine.dispose()


@pytest.fixture
def sqlite_pair(tmp_path):
    """Two empty SQLite databases playing source and target."""
    source = SqliteDatabase(tmp_path / "neon.db")
    target = SqliteDatabase(tmp_path / "local.db")
    yield source, target
    source.dispose()
    target.dispose()


@pytest.fixture
def sqlite_config(sqlite_pair):
    """Config pointing at the SQLite pair, syncing ``user`` then ``asset``."""
    source, target = sqlite_pair
    return Config(
        source_url=source.url,
        target_url=target.url,
        models=["user", "asset"],
        dependencies={"asset": ["user"]},
    )
