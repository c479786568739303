"""Tests for reading model snapshots from a store."""

from __future__ import annotations

import uuid

import pytest

from dbsync.errors import ConnectionLostError, SnapshotLoadError
from dbsync.sync.loader import load_snapshot
from dbsync.sync.models import ModelDescriptor

USER = ModelDescriptor(name="user", table="User", position=0)


class TestLoadSnapshot:
    def test_loads_records_keyed_by_id(self, make_store):
        store = make_store(
            "Neon",
            {"User": [{"id": "u1", "updatedAt": 5, "name": "Ann"}]},
        )
        snapshot = load_snapshot(store, USER)

        assert snapshot.model == "user"
        assert snapshot.label == "Neon"
        assert snapshot["u1"].updated_at == 5
        assert snapshot["u1"].payload == {"id": "u1", "updatedAt": 5, "name": "Ann"}

    def test_empty_table_is_empty_set(self, make_store):
        snapshot = load_snapshot(make_store("Neon", {"User": []}), USER)
        assert len(snapshot) == 0

    def test_missing_timestamp_is_none(self, make_store):
        store = make_store("Neon", {"User": [{"id": "u1"}]})
        assert load_snapshot(store, USER)["u1"].updated_at is None

    def test_custom_timestamp_field(self, make_store):
        model = ModelDescriptor(
            name="user", table="User", position=0, timestamp_field="modifiedAt"
        )
        store = make_store("Neon", {"User": [{"id": "u1", "modifiedAt": 9}]})
        assert load_snapshot(store, model)["u1"].updated_at == 9

    def test_uuid_ids_keyed_by_text(self, make_store):
        record_id = uuid.uuid4()
        store = make_store("Neon", {"User": [{"id": record_id}]})
        snapshot = load_snapshot(store, USER)
        assert str(record_id) in snapshot
        # Payload is forwarded untouched
        assert snapshot[str(record_id)].payload["id"] == record_id

    def test_fetch_failure_wrapped(self, make_store):
        store = make_store("Local", fail_tables={"User"})
        with pytest.raises(SnapshotLoadError) as excinfo:
            load_snapshot(store, USER)
        assert excinfo.value.model == "user"
        assert excinfo.value.label == "Local"
        assert "does not exist" in str(excinfo.value)

    def test_row_without_id_rejected(self, make_store):
        store = make_store("Neon", {"User": [{"name": "orphan"}]})
        with pytest.raises(SnapshotLoadError, match="has no id"):
            load_snapshot(store, USER)

    def test_connection_loss_not_wrapped(self, make_store):
        store = make_store("Neon")

        def _lost(table):
            raise ConnectionLostError("server closed the connection")

        store.fetch_all = _lost
        with pytest.raises(ConnectionLostError):
            load_snapshot(store, USER)
