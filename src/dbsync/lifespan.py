"""Startup and shutdown lifecycle for a sync run."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from dotenv import load_dotenv

from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .db.handle import DatabaseHandle, open_handles
from .errors import ConnectionFailedError

logger = logging.getLogger(__name__)


def load_unified_config() -> UnifiedConfig:
    """Load ``.env`` and the YAML config files.

    ``.env`` is loaded first so ``${VAR}`` interpolation in YAML can use
    its values.
    """
    load_dotenv()

    if not discover_config_files():
        return UnifiedConfig()
    return build_config(load_hierarchical_config())


def resolve_config(
    unified: UnifiedConfig,
    config_overrides: dict[str, Any] | None = None,
) -> Config:
    """Merge CLI overrides, env vars, and YAML values into a ``Config``.

    Args:
        unified: YAML config from ``load_unified_config()``.
        config_overrides: Optional dict of CLI values
            (source_url, target_url, models, debug).

    Raises:
        RuntimeError: If configuration is missing or invalid.
    """
    overrides = config_overrides or {}
    try:
        config = load_config(
            source_url=overrides.get("source_url"),
            target_url=overrides.get("target_url"),
            models=overrides.get("models"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=unified.fallbacks(),
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise RuntimeError(f"Configuration error: {e}") from e

    sources = [f"config file: {p}" for p in discover_config_files()[:1]]
    if overrides:
        sources.append("CLI arguments")
    sources.append("environment variables")
    logger.info("Configuration loaded from: %s", ", ".join(sources))
    return config


@contextmanager
def sync_lifespan(config: Config) -> Iterator[dict[str, DatabaseHandle]]:
    """
    Manage database connections for one run.

    On startup:
    - Build a handle per side and connect both
    - Fail fast if either database is unreachable

    On shutdown (every exit path, including errors):
    - Disconnect both handles

    Args:
        config: Validated configuration.

    Yields:
        Dict with 'source' and 'target' keys holding connected handles.

    Raises:
        RuntimeError: If either connection fails.
    """
    source = DatabaseHandle(config.source_url, config.source_label)
    target = DatabaseHandle(config.target_url, config.target_label)

    logger.info("Connecting to databases...")
    connected = False
    try:
        with open_handles(source, target):
            connected = True
            yield {"source": source, "target": target}
    except ConnectionFailedError as e:
        logger.error("Failed to connect: %s", e)
        raise RuntimeError(f"Database connection failed: {e}") from e
    finally:
        if connected:
            logger.info(
                "Disconnected from %s and %s", source.label, target.label
            )
