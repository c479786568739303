"""Tests for the core sync engine."""

from __future__ import annotations

import copy
import logging

import pytest

from dbsync.errors import ConnectionLostError
from dbsync.sync.engine import SyncEngine
from dbsync.sync.models import SyncDirection, SyncStats
from dbsync.sync.planner import ModelOrderPlanner

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _planner(*names: str) -> ModelOrderPlanner:
    return ModelOrderPlanner.from_names(names or ("user", "asset"))


def _engine(
    source,
    target,
    direction: SyncDirection,
    dry_run: bool = False,
    models: tuple[str, ...] = (),
) -> SyncEngine:
    return SyncEngine(source, target, direction, _planner(*models), dry_run=dry_run)


def _user(record_id: str, updated_at=None, **fields) -> dict:
    return {"id": record_id, "updatedAt": updated_at, **fields}


# ---------------------------------------------------------------------------
# One-directional
# ---------------------------------------------------------------------------


class TestPushToTarget:
    def test_creates_and_updates(self, make_store):
        source = make_store("Neon", {"User": [_user("a", 1), _user("b", 1)]})
        target = make_store("Local", {"User": [_user("a", 1)]})

        report = _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        user = report.model("user")
        assert user.stats == SyncStats(created=1, updated=1)
        assert user.target_writes == 2
        assert target.row("User", "b") is not None
        assert source.upsert_calls == []

    def test_blind_upsert_overwrites_newer_target(self, make_store):
        source = make_store("Neon", {"User": [_user("a1", 1, name="src")]})
        target = make_store("Local", {"User": [_user("a1", 100, name="tgt")]})

        _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        assert target.row("User", "a1") == _user("a1", 1, name="src")

    def test_empty_origin_skips_destination_read(self, make_store):
        source = make_store("Neon", {"User": []})
        target = make_store("Local", {"User": [_user("a", 1)]})

        report = _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        user = report.model("user")
        assert user.stats == SyncStats()
        assert user.source_count == 0
        assert user.target_count is None
        assert "User" not in target.fetch_calls
        assert report.failed_models == []


class TestPullFromSource:
    def test_copies_target_to_source(self, make_store):
        source = make_store("Neon", {"User": [_user("a", 50)]})
        target = make_store("Local", {"User": [_user("a", 1), _user("b", 1)]})

        report = _engine(source, target, SyncDirection.PULL_FROM_SOURCE).run()

        user = report.model("user")
        assert user.stats == SyncStats(created=1, updated=1)
        assert user.source_writes == 2
        assert source.row("User", "a")["updatedAt"] == 1
        assert target.upsert_calls == []


# ---------------------------------------------------------------------------
# Bidirectional
# ---------------------------------------------------------------------------


class TestBidirectionalMerge:
    def test_newer_wins(self, make_store):
        source = make_store("Neon", {"User": [_user("x", 50, name="fresh")]})
        target = make_store("Local", {"User": [_user("x", 10, name="stale")]})

        report = _engine(source, target, SyncDirection.BIDIRECTIONAL_MERGE).run()

        assert target.row("User", "x") == _user("x", 50, name="fresh")
        user = report.model("user")
        assert user.target_writes == 1
        assert user.source_writes == 0
        assert user.stats.updated == 1

    def test_tie_leaves_both_sides(self, make_store):
        source = make_store("Neon", {"User": [_user("y", 5, name="left")]})
        target = make_store("Local", {"User": [_user("y", 5, name="right")]})

        report = _engine(source, target, SyncDirection.BIDIRECTIONAL_MERGE).run()

        assert source.row("User", "y")["name"] == "left"
        assert target.row("User", "y")["name"] == "right"
        assert report.model("user").stats == SyncStats(skipped=1)

    def test_one_sided_records_copied_both_ways(self, make_store):
        source = make_store("Neon", {"User": [_user("s", 1)]})
        target = make_store("Local", {"User": [_user("t", 1)]})

        report = _engine(source, target, SyncDirection.BIDIRECTIONAL_MERGE).run()

        assert source.row("User", "t") is not None
        assert target.row("User", "s") is not None
        assert report.model("user").stats == SyncStats(created=2)

    def test_second_run_is_idempotent(self, make_store):
        source = make_store(
            "Neon", {"User": [_user("a", 5), _user("b", 9)], "Asset": [_user("k", 2)]}
        )
        target = make_store(
            "Local", {"User": [_user("b", 3), _user("c", 7)], "Asset": []}
        )

        first = _engine(source, target, SyncDirection.BIDIRECTIONAL_MERGE).run()
        assert first.stats.created + first.stats.updated > 0

        second = _engine(source, target, SyncDirection.BIDIRECTIONAL_MERGE).run()
        assert second.stats.created == 0
        assert second.stats.updated == 0
        assert second.stats.skipped == 4
        assert second.stats.errors == 0


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class TestDryRun:
    @pytest.mark.parametrize("direction", list(SyncDirection))
    def test_stores_unchanged(self, make_store, direction):
        source = make_store("Neon", {"User": [_user("a", 9), _user("b", 1)]})
        target = make_store("Local", {"User": [_user("b", 5), _user("c", 1)]})
        before = (copy.deepcopy(source.tables), copy.deepcopy(target.tables))

        report = _engine(source, target, direction, dry_run=True).run()

        assert (source.tables, target.tables) == before
        assert source.upsert_calls == [] and target.upsert_calls == []
        assert report.dry_run is True

    def test_same_counts_as_live(self, make_store):
        def _pair():
            return (
                make_store("Neon", {"User": [_user("a", 9), _user("b", 1)]}),
                make_store("Local", {"User": [_user("b", 5), _user("c", 1)]}),
            )

        dry = _engine(*_pair(), SyncDirection.BIDIRECTIONAL_MERGE, dry_run=True).run()
        live = _engine(*_pair(), SyncDirection.BIDIRECTIONAL_MERGE).run()
        assert dry.stats == live.stats

    def test_write_failures_not_reported(self, make_store):
        source = make_store("Neon", {"User": [_user("a", 1)]})
        target = make_store("Local", fail_ids={"a"})

        report = _engine(
            source, target, SyncDirection.PUSH_TO_TARGET, dry_run=True
        ).run()
        assert report.stats.errors == 0


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


class TestErrorIsolation:
    def test_record_failure_isolated(self, make_store):
        source = make_store(
            "Neon", {"User": [_user("r1", 1), _user("r2", 1), _user("r3", 1)]}
        )
        target = make_store("Local", {"User": []}, fail_ids={"r2"})

        report = _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        user = report.model("user")
        assert user.stats.errors == 1
        assert user.stats.created + user.stats.updated == 2
        assert target.row("User", "r1") is not None
        assert target.row("User", "r3") is not None
        assert [call[1] for call in target.upsert_calls] == ["r1", "r2", "r3"]

    def test_model_fetch_failure_skips_model(self, make_store, caplog):
        source = make_store(
            "Neon",
            {"User": [_user("u", 1)], "Asset": [_user("k", 1)]},
            fail_tables={"User"},
        )
        target = make_store("Local")

        with caplog.at_level(logging.ERROR):
            report = _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        user = report.model("user")
        assert user.failed
        assert user.stats.attempted == 0
        assert report.model("asset").stats.created == 1
        assert [m.model for m in report.failed_models] == ["user"]
        assert report.stats.errors == 0
        assert "Error processing user" in caplog.text

    def test_target_fetch_failure_in_merge(self, make_store):
        source = make_store("Neon", {"User": [_user("u", 1)]})
        target = make_store("Local", fail_tables={"User"})

        report = _engine(source, target, SyncDirection.BIDIRECTIONAL_MERGE).run()

        assert report.model("user").failed
        assert target.upsert_calls == []

    def test_connection_loss_aborts_run(self, make_store):
        source = make_store("Neon", {"User": [_user("u", 1)], "Asset": [_user("k", 1)]})
        target = make_store("Local")

        def _lost(table, record):
            raise ConnectionLostError("server closed the connection")

        target.upsert = _lost

        with pytest.raises(ConnectionLostError):
            _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()
        # Asset was never attempted
        assert "Asset" not in source.fetch_calls


# ---------------------------------------------------------------------------
# Ordering and reporting
# ---------------------------------------------------------------------------


class TestOrderingAndReport:
    def test_models_processed_in_order(self, make_store):
        source = make_store("Neon", {"User": [_user("u", 1)], "Asset": [_user("k", 1)]})
        target = make_store("Local")

        report = _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        assert [m.model for m in report.models] == ["user", "asset"]
        assert [call[0] for call in target.upsert_calls] == ["User", "Asset"]

    def test_report_metadata(self, make_store):
        report = _engine(
            make_store("Neon"), make_store("Local"), SyncDirection.BIDIRECTIONAL_MERGE
        ).run()

        assert report.direction is SyncDirection.BIDIRECTIONAL_MERGE
        assert report.source_label == "Neon"
        assert report.target_label == "Local"
        assert report.completed_at is not None
        assert report.duration_seconds >= 0
        assert report.cancelled is False

    def test_totals_match_models(self, make_store):
        source = make_store("Neon", {"User": [_user("u", 1)], "Asset": [_user("k", 2)]})
        target = make_store("Local", {"Asset": [_user("k", 1)]})

        report = _engine(source, target, SyncDirection.PUSH_TO_TARGET).run()

        summed = sum((m.stats for m in report.models), SyncStats())
        assert report.stats == summed == SyncStats(created=1, updated=1)

    def test_progress_logged(self, make_store, caplog):
        source = make_store("Neon", {"User": [_user("u", 1)]})
        target = make_store("Local")

        with caplog.at_level(logging.INFO):
            _engine(source, target, SyncDirection.PUSH_TO_TARGET, models=("user",)).run()

        assert "Syncing from Neon to Local" in caplog.text
        assert "Found 1 records in Neon" in caplog.text
        assert "Created: 1, Updated: 0, Skipped: 0" in caplog.text
