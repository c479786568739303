"""Apply ``SyncAction`` objects as idempotent upserts.

Failures are isolated per record: a write that raises is logged with the
model and record id and returned as a failed ``ActionOutcome``.  Only a
lost connection escapes, since every later write would fail too.
"""

from __future__ import annotations

import logging

from dbsync.db.handle import RecordStore
from dbsync.errors import ConnectionLostError

from .models import ActionKind, ActionOutcome, Side, SyncAction

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Write actions to the side they name.

    Args:
        source: Store for ``Side.SOURCE``.
        target: Store for ``Side.TARGET``.
    """

    def __init__(self, source: RecordStore, target: RecordStore) -> None:
        self._stores = {Side.SOURCE: source, Side.TARGET: target}

    def store_for(self, side: Side) -> RecordStore:
        return self._stores[side]

    def apply(self, action: SyncAction, dry_run: bool = False) -> ActionOutcome:
        """Apply or simulate *action*.

        Ties never write.  In dry-run mode nothing is written and the
        outcome is always successful.

        Raises:
            ConnectionLostError: If the destination connection dropped.
        """
        if action.kind == ActionKind.NOOP_TIE:
            logger.debug(
                "    Tie for %s %s (equal timestamps), leaving both sides",
                action.model,
                action.record_id,
            )
            return ActionOutcome(action=action, success=True)

        if action.destination is None or action.record is None:
            return ActionOutcome(
                action=action,
                success=False,
                error=f"Incomplete {action.kind.value} action",
            )

        store = self.store_for(action.destination)

        if dry_run:
            origin = self.store_for(action.destination.other)
            logger.info(
                "    [DRY RUN] Would %s %s in %s (from %s)",
                action.kind.value,
                action.record_id,
                store.label,
                origin.label,
            )
            return ActionOutcome(action=action, success=True)

        try:
            store.upsert(action.table, dict(action.record.payload))
        except ConnectionLostError:
            raise
        except Exception as exc:
            logger.error(
                "    Error syncing %s %s: %s",
                action.model,
                action.record_id,
                exc,
            )
            return ActionOutcome(action=action, success=False, error=str(exc))

        logger.debug(
            "    %s %s %s in %s",
            "Created" if action.kind == ActionKind.CREATE else "Updated",
            action.model,
            action.record_id,
            store.label,
        )
        return ActionOutcome(action=action, success=True)
