"""Core sync engine that processes every model in dependency order.

The ``SyncEngine`` ties together planner, loader, resolver, executor,
and stats into a complete run.  For each model it:

1. Reads a fresh snapshot from the side(s) the direction needs.
2. Resolves the snapshots into ``SyncAction`` objects.
3. Applies (or, in dry-run, logs) each action.
4. Records exactly one outcome per action.

Error handling is layered: a failed record is counted and skipped, a
model whose snapshot cannot be read is skipped, and only a lost
connection aborts the run.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from dbsync.db.handle import RecordStore
from dbsync.errors import SnapshotLoadError

from .executor import SyncExecutor
from .loader import load_snapshot
from .models import (
    ModelDescriptor,
    ModelReport,
    Side,
    SnapshotSet,
    SyncDirection,
    SyncReport,
)
from .planner import ModelOrderPlanner
from .reporter import format_model_line
from .resolver import OneWayResolver, create_resolver
from .stats import StatsAggregator

logger = logging.getLogger(__name__)


class SyncEngine:
    """Run one sync between two stores.

    Args:
        source: Store playing the source role.
        target: Store playing the target role.
        direction: Direction for the whole run.
        planner: Ordered models to process.
        dry_run: If ``True``, compute and log actions without writing.
    """

    def __init__(
        self,
        source: RecordStore,
        target: RecordStore,
        direction: SyncDirection,
        planner: ModelOrderPlanner,
        dry_run: bool = False,
    ) -> None:
        self.source = source
        self.target = target
        self.direction = direction
        self.planner = planner
        self.dry_run = dry_run

        self.resolver = create_resolver(direction)
        self.executor = SyncExecutor(source, target)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self) -> SyncReport:
        """Process every model in order.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.

        Raises:
            ConnectionLostError: If either connection drops mid-run.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        started = time.monotonic()
        stats = StatsAggregator()

        if self.direction == SyncDirection.BIDIRECTIONAL_MERGE:
            logger.info(
                "Merging data between %s and %s (using latest timestamps)...",
                self.source.label,
                self.target.label,
            )
        else:
            origin, destination = self._one_way_stores()
            logger.info(
                "Syncing from %s to %s...", origin.label, destination.label
            )

        reports = [self._sync_model(model, stats) for model in self.planner]

        return SyncReport(
            direction=self.direction,
            dry_run=self.dry_run,
            source_label=self.source.label,
            target_label=self.target.label,
            models=reports,
            stats=stats.total,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
            duration_seconds=time.monotonic() - started,
        )

    # ------------------------------------------------------------------
    # Per-model sync
    # ------------------------------------------------------------------

    def _sync_model(
        self, model: ModelDescriptor, stats: StatsAggregator
    ) -> ModelReport:
        """Load, resolve, and apply one model."""
        logger.info("  Processing %s...", model.name)
        stats.start_model(model.name)

        try:
            snapshots = self._load(model)
        except SnapshotLoadError as exc:
            logger.error("    Error processing %s: %s", model.name, exc)
            return ModelReport(model=model.name, error=str(exc))

        if snapshots is None:
            # One-directional run with nothing on the origin side
            report = stats.model_report(
                model.name,
                **self._counts(origin_count=0),
            )
        else:
            source_set, target_set = snapshots
            actions = self.resolver.resolve(model, source_set, target_set)
            for action in actions:
                stats.record(self.executor.apply(action, self.dry_run))
            report = stats.model_report(
                model.name, len(source_set), len(target_set)
            )

        logger.info(
            "    %s",
            format_model_line(
                report, self.direction, self.source.label, self.target.label
            ),
        )
        return report

    def _load(
        self, model: ModelDescriptor
    ) -> tuple[SnapshotSet, SnapshotSet] | None:
        """Read the snapshots the direction needs.

        Returns ``None`` when a one-directional run finds the origin side
        empty; the destination is then not read at all.
        """
        if self.direction == SyncDirection.BIDIRECTIONAL_MERGE:
            source_set = load_snapshot(self.source, model)
            target_set = load_snapshot(self.target, model)
            logger.info(
                "    %s: %d records, %s: %d records",
                self.source.label,
                len(source_set),
                self.target.label,
                len(target_set),
            )
            return source_set, target_set

        origin, destination = self._one_way_stores()
        origin_set = load_snapshot(origin, model)
        logger.info(
            "    Found %d records in %s", len(origin_set), origin.label
        )
        if not origin_set:
            return None
        destination_set = load_snapshot(destination, model)

        if origin is self.source:
            return origin_set, destination_set
        return destination_set, origin_set

    def _one_way_stores(self) -> tuple[RecordStore, RecordStore]:
        """Return ``(origin, destination)`` for a one-directional run."""
        assert isinstance(self.resolver, OneWayResolver)
        return (
            self.executor.store_for(self.resolver.origin),
            self.executor.store_for(self.resolver.destination),
        )

    def _counts(self, origin_count: int) -> dict[str, int | None]:
        """Snapshot sizes for a model whose destination was not read."""
        assert isinstance(self.resolver, OneWayResolver)
        if self.resolver.origin is Side.SOURCE:
            return {"source_count": origin_count, "target_count": None}
        return {"source_count": None, "target_count": origin_count}
