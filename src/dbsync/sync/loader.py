"""Read every record of one model from one database into a ``SnapshotSet``."""

from __future__ import annotations

import logging

from dbsync.db.handle import RecordStore
from dbsync.errors import ConnectionLostError, SnapshotLoadError

from .models import ModelDescriptor, RecordSnapshot, SnapshotSet

logger = logging.getLogger(__name__)


def load_snapshot(store: RecordStore, model: ModelDescriptor) -> SnapshotSet:
    """Read all rows of *model* from *store*.

    An empty table yields an empty ``SnapshotSet``.

    Raises:
        SnapshotLoadError: If the rows cannot be read or a row has no
            ``id``.
        ConnectionLostError: If the connection dropped; never wrapped.
    """
    try:
        rows = store.fetch_all(model.table)
        records = [_to_snapshot(row, model) for row in rows]
    except ConnectionLostError:
        raise
    except Exception as exc:
        raise SnapshotLoadError(model.name, store.label, exc) from exc

    logger.debug(
        "Loaded %d %s records from %s", len(records), model.name, store.label
    )
    return SnapshotSet(model.name, store.label, records)


def _to_snapshot(row: dict, model: ModelDescriptor) -> RecordSnapshot:
    record_id = row.get("id")
    if record_id is None:
        raise ValueError(f"row in table '{model.table}' has no id")
    if not isinstance(record_id, (str, int)):
        # UUID and similar driver types key the snapshot by their text form
        record_id = str(record_id)
    return RecordSnapshot(
        id=record_id,
        updated_at=row.get(model.timestamp_field),
        payload=row,
    )
