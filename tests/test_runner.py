"""Tests for dbsync.runner: planner validation, confirmation, and run_sync()."""

from unittest.mock import MagicMock

import pytest

from dbsync.config import Config
from dbsync.runner import build_planner, confirmation_message, run_sync
from dbsync.sync.models import SyncDirection, SyncStats


class TestConfirmationMessage:
    def test_merge(self):
        assert confirmation_message(SyncDirection.BIDIRECTIONAL_MERGE) == (
            "This will merge data. Continue?"
        )

    @pytest.mark.parametrize(
        "direction",
        [SyncDirection.PUSH_TO_TARGET, SyncDirection.PULL_FROM_SOURCE],
    )
    def test_one_way(self, direction):
        assert confirmation_message(direction) == "This will copy data. Continue?"


class TestBuildPlanner:
    def test_uses_table_overrides(self):
        config = Config(
            source_url="sqlite:///a.db",
            target_url="sqlite:///b.db",
            models=["user", "auditLog"],
            tables={"user": "users"},
        )
        planner = build_planner(config)
        assert [m.table for m in planner] == ["users", "AuditLog"]

    def test_bad_order_is_runtime_error(self):
        config = Config(
            source_url="sqlite:///a.db",
            target_url="sqlite:///b.db",
            models=["asset", "user"],
            dependencies={"asset": ["user"]},
        )
        with pytest.raises(RuntimeError, match="ordered before its dependency"):
            build_planner(config)


class TestRunSync:
    def test_declined_confirmation_cancels(self, sqlite_pair, sqlite_config):
        source, target = sqlite_pair
        source.seed("User", {"id": "a", "name": "n", "updatedAt": 1})
        confirm = MagicMock(return_value=False)

        report = run_sync(
            sqlite_config, SyncDirection.PUSH_TO_TARGET, confirm=confirm
        )

        confirm.assert_called_once_with("This will copy data. Continue?")
        assert report.cancelled is True
        assert report.models == []
        assert report.stats == SyncStats()
        assert target.rows("User") == {}

    def test_dry_run_never_asks(self, sqlite_pair, sqlite_config):
        source, target = sqlite_pair
        source.seed("User", {"id": "a", "name": "n", "updatedAt": 1})
        confirm = MagicMock(return_value=False)

        report = run_sync(
            sqlite_config,
            SyncDirection.PUSH_TO_TARGET,
            dry_run=True,
            confirm=confirm,
        )

        confirm.assert_not_called()
        assert report.cancelled is False
        assert report.stats == SyncStats(created=1)
        assert target.rows("User") == {}

    def test_accepted_confirmation_runs(self, sqlite_pair, sqlite_config):
        source, target = sqlite_pair
        source.seed("User", {"id": "a", "name": "n", "updatedAt": 1})

        report = run_sync(
            sqlite_config,
            SyncDirection.PUSH_TO_TARGET,
            confirm=lambda message: True,
        )

        assert [m.model for m in report.models] == ["user", "asset"]
        assert target.rows("User")["a"]["name"] == "n"
        assert report.source_label == "Neon"

    def test_invalid_planner_fails_before_connecting(self, tmp_path):
        config = Config(
            source_url=f"sqlite:///{tmp_path / 'never' / 'a.db'}",
            target_url=f"sqlite:///{tmp_path / 'never' / 'b.db'}",
            models=["user", "user"],
        )
        with pytest.raises(RuntimeError, match="Duplicate model"):
            run_sync(config, SyncDirection.PUSH_TO_TARGET)

    def test_connection_failure_is_runtime_error(self, tmp_path):
        config = Config(
            source_url=f"sqlite:///{tmp_path / 'never' / 'a.db'}",
            target_url=f"sqlite:///{tmp_path / 'b.db'}",
            models=["user"],
        )
        with pytest.raises(RuntimeError, match="Database connection failed"):
            run_sync(config, SyncDirection.PUSH_TO_TARGET)
