"""Connection and model settings for a sync run.

Reads settings from CLI args, environment variables, .env files, and
YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    NEON_DATABASE_URL: Source (cloud) database URL (required)
    LOCAL_DATABASE_URL: Target (local) database URL (required)
    DBSYNC_SOURCE_LABEL: Display name for the source (optional, default: Neon)
    DBSYNC_TARGET_LABEL: Display name for the target (optional, default: Local)
    DBSYNC_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass, field

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .sync.planner import DEFAULT_DEPENDENCIES, DEFAULT_MODELS

logger = logging.getLogger(__name__)


@dataclass
class Config:
    source_url: str
    target_url: str
    source_label: str = "Neon"
    target_label: str = "Local"
    models: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    tables: dict[str, str] = field(default_factory=dict)
    dependencies: dict[str, list[str]] | None = None
    debug: bool = False


def _check_url(url: str, role: str, env_var: str) -> None:
    try:
        make_url(url)
    except ArgumentError:
        raise ValueError(
            f"Invalid {role} database URL: could not parse the value of {env_var}"
        ) from None


def _default_dependencies(models: list[str]) -> dict[str, list[str]]:
    """Built-in dependency map restricted to *models*.

    Entries and parents outside *models* are dropped, so a reordered or
    partial built-in list is still checked against the pairs it contains.
    """
    listed = set(models)
    return {
        model: [p for p in parents if p in listed]
        for model, parents in DEFAULT_DEPENDENCIES.items()
        if model in listed
    }


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If a URL cannot be parsed, both URLs point at the same
            database, labels collide, or the model list is empty.
    """
    config.source_url = config.source_url.strip()
    config.target_url = config.target_url.strip()

    _check_url(config.source_url, "source", "NEON_DATABASE_URL")
    _check_url(config.target_url, "target", "LOCAL_DATABASE_URL")

    if config.source_url == config.target_url:
        raise ValueError(
            "Source and target database URLs are identical; refusing to sync a database with itself."
        )

    if not config.source_label.strip() or not config.target_label.strip():
        raise ValueError("Database labels cannot be empty.")
    if config.source_label == config.target_label:
        raise ValueError(
            f"Source and target labels must differ (both are '{config.source_label}')."
        )

    if not config.models:
        raise ValueError("No models configured for sync.")


def load_config(
    source_url: str | None = None,
    target_url: str | None = None,
    models: list[str] | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        source_url: Override source URL.
        target_url: Override target URL.
        models: Override model list (processing order).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened ``databases`` and ``sync`` values from
            the YAML config. Used when CLI arg and env var are unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a database URL is missing after checking all
            sources, or validation fails.
    """
    fb = yaml_fallbacks or {}

    # --- Connection strings: CLI > env > YAML > error ---

    final_source = source_url or os.getenv("NEON_DATABASE_URL") or fb.get("source_url")
    final_target = target_url or os.getenv("LOCAL_DATABASE_URL") or fb.get("target_url")
    if not final_source or not final_target:
        raise ValueError(
            "NEON_DATABASE_URL and LOCAL_DATABASE_URL must be set "
            "(environment, .env, --source-url/--target-url, or config.yml)."
        )

    # --- Labels: env > YAML > default ---

    source_label = os.getenv("DBSYNC_SOURCE_LABEL") or fb.get("source_label") or "Neon"
    target_label = os.getenv("DBSYNC_TARGET_LABEL") or fb.get("target_label") or "Local"

    # --- Boolean fields: CLI > env > YAML > default ---

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("DBSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Models: CLI > YAML > default ---
    # Built-in dependencies apply to whichever built-in models are listed

    final_models = list(models or fb.get("models") or DEFAULT_MODELS)
    if fb.get("dependencies") is not None:
        final_dependencies = {
            k: list(v) for k, v in fb["dependencies"].items()
        }
    else:
        final_dependencies = _default_dependencies(final_models)

    config = Config(
        source_url=final_source,
        target_url=final_target,
        source_label=source_label.strip(),
        target_label=target_label.strip(),
        models=final_models,
        tables=dict(fb.get("tables") or {}),
        dependencies=final_dependencies,
        debug=final_debug,
    )

    validate_config(config)

    return config
