"""Pydantic models for the cross-database sync engine.

Defines the core data contracts used across all sync modules:

- ``SyncDirection``: Which way records flow for a whole run.
- ``Side`` / ``ActionKind``: Where a write goes and what it is.
- ``ModelDescriptor``: One entity type and its place in the order.
- ``RecordSnapshot`` / ``SnapshotSet``: Records read from one side.
- ``SyncAction`` / ``ActionOutcome``: Planned writes and their results.
- ``SyncStats``: created/updated/skipped/errors counters.
- ``ModelReport`` / ``SyncReport``: Results for one model and one run.

All pydantic models are frozen (immutable) for safety.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

RecordId = str | int
Timestamp = datetime | str | int | float


class SyncDirection(str, Enum):
    """Direction of a sync run. Values are the CLI spellings."""

    PUSH_TO_TARGET = "neon-to-local"
    PULL_FROM_SOURCE = "local-to-neon"
    BIDIRECTIONAL_MERGE = "both-ways"


class Side(str, Enum):
    """One of the two databases in a run."""

    SOURCE = "source"
    TARGET = "target"

    @property
    def other(self) -> Side:
        return Side.TARGET if self is Side.SOURCE else Side.SOURCE


class ActionKind(str, Enum):
    """What applying a ``SyncAction`` does to its destination."""

    CREATE = "create"
    UPDATE = "update"
    NOOP_TIE = "noop_tie"


class ModelDescriptor(BaseModel):
    """A synchronised entity type.

    Attributes:
        name: Model name (e.g. ``"auditLog"``).
        table: Database table backing the model.
        position: Zero-based index in the processing order.
        timestamp_field: Column holding the last-modified time.
    """

    name: str
    table: str
    position: int
    timestamp_field: str = "updatedAt"

    model_config = {"frozen": True}


class RecordSnapshot(BaseModel):
    """One row as read from one side.

    ``payload`` is the complete row and is written back verbatim; only
    ``id`` and ``updated_at`` are interpreted by the engine.
    """

    id: RecordId
    updated_at: Timestamp | None = None
    payload: dict[str, Any]

    model_config = {"frozen": True}


class SnapshotSet(Mapping[RecordId, RecordSnapshot]):
    """Read-only, id-keyed view of every record of one model on one side.

    Iteration follows the order in which the rows were read.
    """

    def __init__(
        self,
        model: str,
        label: str,
        records: Iterable[RecordSnapshot] = (),
    ) -> None:
        self.model = model
        self.label = label
        self._records = MappingProxyType({r.id: r for r in records})

    def __getitem__(self, record_id: RecordId) -> RecordSnapshot:
        return self._records[record_id]

    def __iter__(self) -> Iterator[RecordId]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"SnapshotSet({self.model!r}, {self.label!r}, {len(self)} records)"


class SyncAction(BaseModel):
    """A planned write for one record.

    Attributes:
        model: Model name.
        table: Table the write targets.
        record_id: Identifier of the record.
        kind: Create, update, or tie (no write).
        destination: Side that receives the write; ``None`` for ties.
        record: Snapshot whose payload is written; ``None`` for ties.
    """

    model: str
    table: str
    record_id: RecordId
    kind: ActionKind
    destination: Side | None = None
    record: RecordSnapshot | None = None

    model_config = {"frozen": True}


class ActionOutcome(BaseModel):
    """Result of applying (or simulating) one ``SyncAction``."""

    action: SyncAction
    success: bool
    error: str | None = None

    model_config = {"frozen": True}


class SyncStats(BaseModel):
    """created/updated/skipped/errors counters.

    Stats are values: ``record()`` and ``+`` return new instances so
    callers can accumulate without sharing mutable state.
    """

    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    model_config = {"frozen": True}

    def record(self, outcome: ActionOutcome) -> SyncStats:
        """Return a copy with exactly one counter incremented for *outcome*."""
        if not outcome.success:
            return self.model_copy(update={"errors": self.errors + 1})
        kind = outcome.action.kind
        if kind == ActionKind.CREATE:
            return self.model_copy(update={"created": self.created + 1})
        if kind == ActionKind.UPDATE:
            return self.model_copy(update={"updated": self.updated + 1})
        return self.model_copy(update={"skipped": self.skipped + 1})

    def __add__(self, other: SyncStats) -> SyncStats:
        return SyncStats(
            created=self.created + other.created,
            updated=self.updated + other.updated,
            skipped=self.skipped + other.skipped,
            errors=self.errors + other.errors,
        )

    @property
    def attempted(self) -> int:
        return self.created + self.updated + self.skipped + self.errors


class ModelReport(BaseModel):
    """Outcome of processing one model.

    Attributes:
        model: Model name.
        source_count: Records read from the source, ``None`` if not read.
        target_count: Records read from the target, ``None`` if not read.
        stats: Counters for this model.
        source_writes: Successful (or simulated) writes to the source.
        target_writes: Successful (or simulated) writes to the target.
        error: Fetch error that caused the model to be skipped.
    """

    model: str
    source_count: int | None = None
    target_count: int | None = None
    stats: SyncStats = SyncStats()
    source_writes: int = 0
    target_writes: int = 0
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def failed(self) -> bool:
        return self.error is not None


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        direction: Direction of the run.
        dry_run: Whether writes were only simulated.
        source_label: Display name of the source database.
        target_label: Display name of the target database.
        models: Per-model results in processing order.
        stats: Run-wide counters.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run finished.
        duration_seconds: Wall-clock time spent processing models.
        cancelled: True if the operator declined the live run.
    """

    direction: SyncDirection
    dry_run: bool = False
    source_label: str = "source"
    target_label: str = "target"
    models: list[ModelReport] = []
    stats: SyncStats = SyncStats()
    started_at: str
    completed_at: str | None = None
    duration_seconds: float = 0.0
    cancelled: bool = False

    model_config = {"frozen": True}

    @property
    def failed_models(self) -> list[ModelReport]:
        """Models skipped because a snapshot could not be read."""
        return [m for m in self.models if m.failed]

    def model(self, name: str) -> ModelReport:
        """Return the report for model *name*.

        Raises:
            KeyError: If the model was not part of the run.
        """
        for report in self.models:
            if report.model == name:
                return report
        raise KeyError(name)
