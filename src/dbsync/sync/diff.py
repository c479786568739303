"""Classify record identifiers across two snapshots of the same model."""

from __future__ import annotations

from pydantic import BaseModel

from .models import RecordId, SnapshotSet


class SnapshotDiff(BaseModel):
    """Identifiers split by which side holds them.

    Each list keeps the read order of the side it came from
    (``in_both`` follows the source side).
    """

    only_in_source: list[RecordId] = []
    only_in_target: list[RecordId] = []
    in_both: list[RecordId] = []

    model_config = {"frozen": True}


def diff_snapshots(source: SnapshotSet, target: SnapshotSet) -> SnapshotDiff:
    """Split the union of ids into source-only, target-only, and shared."""
    only_in_source: list[RecordId] = []
    in_both: list[RecordId] = []
    for record_id in source:
        if record_id in target:
            in_both.append(record_id)
        else:
            only_in_source.append(record_id)

    only_in_target = [rid for rid in target if rid not in source]

    return SnapshotDiff(
        only_in_source=only_in_source,
        only_in_target=only_in_target,
        in_both=in_both,
    )
