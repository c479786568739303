"""Cross-database sync engine.

Public API for reconciling the records of a fixed, ordered set of models
between a source and a target database.

Architecture
------------
Models are processed one at a time in a declared dependency order, so a
row is never written before the rows it references.  Each model is read
fresh from the side(s) the run needs, resolved into ``SyncAction``
objects, and applied as idempotent upserts.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates a full run.
- ``planner``   -- ``ModelOrderPlanner``: validated model order.
- ``loader``    -- ``load_snapshot``: read one model into a ``SnapshotSet``.
- ``diff``      -- ``diff_snapshots``: source-only / target-only / shared ids.
- ``resolver``  -- Blind-upsert and last-write-wins strategies.
- ``executor``  -- ``SyncExecutor``: apply or simulate one action.
- ``stats``     -- ``StatsAggregator``: per-model and run-wide counters.
- ``models``    -- Core data contracts.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from dbsync.db import DatabaseHandle, open_handles
    from dbsync.sync import (
        ModelOrderPlanner,
        SyncDirection,
        SyncEngine,
        format_sync_report,
    )

    neon = DatabaseHandle(os.environ["NEON_DATABASE_URL"], "Neon")
    local = DatabaseHandle(os.environ["LOCAL_DATABASE_URL"], "Local")

    with open_handles(neon, local):
        engine = SyncEngine(
            neon,
            local,
            SyncDirection.BIDIRECTIONAL_MERGE,
            ModelOrderPlanner.default(),
            dry_run=True,
        )
        print(format_sync_report(engine.run()))
"""

from .diff import SnapshotDiff, diff_snapshots
from .engine import SyncEngine
from .executor import SyncExecutor
from .loader import load_snapshot
from .models import (
    ActionKind,
    ActionOutcome,
    ModelDescriptor,
    ModelReport,
    RecordSnapshot,
    Side,
    SnapshotSet,
    SyncAction,
    SyncDirection,
    SyncReport,
    SyncStats,
)
from .planner import ModelOrderPlanner
from .reporter import format_model_line, format_sync_report, report_to_json
from .resolver import MergeResolver, OneWayResolver, create_resolver
from .stats import StatsAggregator

__all__ = [
    "ActionKind",
    "ActionOutcome",
    "MergeResolver",
    "ModelDescriptor",
    "ModelOrderPlanner",
    "ModelReport",
    "OneWayResolver",
    "RecordSnapshot",
    "Side",
    "SnapshotDiff",
    "SnapshotSet",
    "StatsAggregator",
    "SyncAction",
    "SyncDirection",
    "SyncEngine",
    "SyncExecutor",
    "SyncReport",
    "SyncStats",
    "create_resolver",
    "diff_snapshots",
    "format_model_line",
    "format_sync_report",
    "load_snapshot",
    "report_to_json",
]
