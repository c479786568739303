"""Run a complete sync from a ``Config``: connect, confirm, sync, disconnect."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from .config import Config
from .lifespan import sync_lifespan
from .sync.engine import SyncEngine
from .sync.models import SyncDirection, SyncReport
from .sync.planner import ModelOrderPlanner

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]


def always_confirm(message: str) -> bool:
    """Confirmation callback used by ``--force`` and tests."""
    return True


def confirmation_message(direction: SyncDirection) -> str:
    verb = "merge" if direction == SyncDirection.BIDIRECTIONAL_MERGE else "copy"
    return f"This will {verb} data. Continue?"


def build_planner(config: Config) -> ModelOrderPlanner:
    """Validate the configured model order before any connection is made.

    Raises:
        RuntimeError: If the order is empty, duplicated, or violates the
            dependency map.
    """
    try:
        return ModelOrderPlanner.from_names(
            config.models, config.tables, config.dependencies
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise RuntimeError(f"Configuration error: {e}") from e


def run_sync(
    config: Config,
    direction: SyncDirection,
    dry_run: bool = False,
    confirm: ConfirmCallback = always_confirm,
) -> SyncReport:
    """Connect to both databases and run one sync.

    Live runs ask *confirm* first; a declined confirmation returns a
    report with ``cancelled=True`` and no models processed.

    Raises:
        RuntimeError: On invalid model order or connection failure.
        ConnectionLostError: If a connection drops mid-run.
    """
    planner = build_planner(config)

    with sync_lifespan(config) as handles:
        if not dry_run and not confirm(confirmation_message(direction)):
            logger.info("Cancelled by user")
            now = datetime.now(timezone.utc).isoformat()
            return SyncReport(
                direction=direction,
                dry_run=dry_run,
                source_label=config.source_label,
                target_label=config.target_label,
                started_at=now,
                completed_at=now,
                cancelled=True,
            )

        engine = SyncEngine(
            handles["source"],
            handles["target"],
            direction,
            planner,
            dry_run=dry_run,
        )
        return engine.run()
