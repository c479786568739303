"""Unified configuration schema for dbsync.

Defines Pydantic models for the YAML config structure with dedicated
sections for database connections, the synced models, and logging.

Usage:
    from dbsync.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    fallbacks = unified.fallbacks()
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class DatabasesConfig(BaseModel):
    """Connection settings for both sides of a run.

    All fields are optional so that env vars and CLI args can supply the
    URLs at runtime instead.
    """

    source_url: str | None = Field(
        default=None, description="Source (cloud) database URL"
    )
    target_url: str | None = Field(
        default=None, description="Target (local) database URL"
    )
    source_label: str | None = Field(
        default=None, description="Display name of the source database"
    )
    target_label: str | None = Field(
        default=None, description="Display name of the target database"
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Models to synchronise.

    Attributes:
        models: Processing order; parents before children.
        tables: Model name to table name overrides.
        dependencies: Model name to the models it references.
        debug: Enable debug logging.
    """

    models: list[str] | None = Field(
        default=None, description="Model names in processing order"
    )
    tables: dict[str, str] = Field(
        default_factory=dict, description="Table name per model"
    )
    dependencies: dict[str, list[str]] | None = Field(
        default=None, description="Models each model references"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    databases: DatabasesConfig = Field(default_factory=DatabasesConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def fallbacks(self) -> dict[str, Any]:
        """Flatten the ``databases`` and ``sync`` sections for ``load_config()``.

        Unset (``None``) values are dropped so they never shadow defaults.
        """
        merged = {**self.databases.model_dump(), **self.sync.model_dump()}
        return {k: v for k, v in merged.items() if v is not None}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
