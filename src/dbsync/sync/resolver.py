"""Turn snapshots into ``SyncAction`` lists, one strategy per direction.

- ``OneWayResolver``: blind upsert. Every record on the origin side is
  written to the destination, whether or not the destination copy is
  newer.
- ``MergeResolver``: last-write-wins on the ``updatedAt`` timestamp;
  records present on one side only are copied to the other.

The ``create_resolver()`` factory maps a ``SyncDirection`` to a resolver
instance.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from .diff import diff_snapshots
from .models import (
    ActionKind,
    ModelDescriptor,
    RecordSnapshot,
    Side,
    SnapshotSet,
    SyncAction,
    SyncDirection,
    Timestamp,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ActionResolver(Protocol):
    """Protocol that all direction strategies must satisfy."""

    def resolve(
        self,
        model: ModelDescriptor,
        source: SnapshotSet,
        target: SnapshotSet,
    ) -> list[SyncAction]:
        """Decide the writes for one model.

        Args:
            model: The model being processed.
            source: Snapshot read from the source side.
            target: Snapshot read from the target side.

        Returns:
            One action per record that needs a decision. Snapshots are
            never modified.
        """
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def timestamp_value(value: Timestamp | None) -> float:
    """Convert an ``updatedAt`` value to epoch seconds.

    Missing values count as epoch 0.  Naive datetimes are read as UTC.
    Numbers are taken as epoch values as-is.  Strings must be ISO 8601;
    an unparseable string is logged and treated like a missing value.
    """
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, (int, float)):
        return float(value)
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable timestamp %r treated as epoch 0", value)
        return 0.0
    return timestamp_value(parsed)


def _action(
    model: ModelDescriptor,
    record: RecordSnapshot,
    kind: ActionKind,
    destination: Side,
) -> SyncAction:
    return SyncAction(
        model=model.name,
        table=model.table,
        record_id=record.id,
        kind=kind,
        destination=destination,
        record=record,
    )


# ---------------------------------------------------------------------------
# One-directional
# ---------------------------------------------------------------------------


class OneWayResolver:
    """Mirror one side onto the other.

    Args:
        destination: Side that receives every record of the other side.
    """

    def __init__(self, destination: Side) -> None:
        self.destination = destination

    @property
    def origin(self) -> Side:
        return self.destination.other

    def resolve(
        self,
        model: ModelDescriptor,
        source: SnapshotSet,
        target: SnapshotSet,
    ) -> list[SyncAction]:
        """One create-or-update per origin record; timestamps are ignored."""
        if self.destination is Side.TARGET:
            origin_set, destination_set = source, target
        else:
            origin_set, destination_set = target, source

        return [
            _action(
                model,
                record,
                ActionKind.UPDATE
                if record_id in destination_set
                else ActionKind.CREATE,
                self.destination,
            )
            for record_id, record in origin_set.items()
        ]


# ---------------------------------------------------------------------------
# Bidirectional
# ---------------------------------------------------------------------------


class MergeResolver:
    """Reconcile both sides with last-write-wins."""

    def resolve(
        self,
        model: ModelDescriptor,
        source: SnapshotSet,
        target: SnapshotSet,
    ) -> list[SyncAction]:
        diff = diff_snapshots(source, target)
        actions: list[SyncAction] = []

        for record_id in diff.only_in_source:
            actions.append(
                _action(model, source[record_id], ActionKind.CREATE, Side.TARGET)
            )
        for record_id in diff.only_in_target:
            actions.append(
                _action(model, target[record_id], ActionKind.CREATE, Side.SOURCE)
            )
        for record_id in diff.in_both:
            actions.append(
                self.compare(model, source[record_id], target[record_id])
            )
        return actions

    @staticmethod
    def compare(
        model: ModelDescriptor,
        source_record: RecordSnapshot,
        target_record: RecordSnapshot,
    ) -> SyncAction:
        """Pick the newer copy; equal timestamps are a tie and nothing moves.

        Payload differences at equal timestamps are left untouched.
        """
        source_time = timestamp_value(source_record.updated_at)
        target_time = timestamp_value(target_record.updated_at)

        if source_time > target_time:
            return _action(model, source_record, ActionKind.UPDATE, Side.TARGET)
        if target_time > source_time:
            return _action(model, target_record, ActionKind.UPDATE, Side.SOURCE)
        return SyncAction(
            model=model.name,
            table=model.table,
            record_id=source_record.id,
            kind=ActionKind.NOOP_TIE,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_resolver(direction: SyncDirection) -> ActionResolver:
    """Create the resolver for *direction*.

    Raises:
        ValueError: If the direction is not recognised.
    """
    if direction == SyncDirection.PUSH_TO_TARGET:
        return OneWayResolver(Side.TARGET)
    if direction == SyncDirection.PULL_FROM_SOURCE:
        return OneWayResolver(Side.SOURCE)
    if direction == SyncDirection.BIDIRECTIONAL_MERGE:
        return MergeResolver()
    raise ValueError(
        f"Unknown sync direction: '{direction}'. Valid directions: {[d.value for d in SyncDirection]}"
    )
