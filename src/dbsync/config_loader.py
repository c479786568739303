"""
YAML config file discovery and loading for dbsync.

Config files are looked up in a fixed set of places, merged so that
more specific files win, and have ``${VAR}`` references expanded so
connection strings can stay in the environment.

Usage:
    from dbsync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# ${VAR} or ${VAR:-default}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    no default is given. An unterminated ``${`` is kept as written.
    """

    def _expand(match: re.Match) -> str:
        return os.environ.get(match.group(1)) or match.group(2) or ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


def discover_config_files() -> list[Path]:
    """Existing config files, most specific first.

    Looked up, in order:
        1. the file named by ``DBSYNC_CONFIG``
        2. ``.dbsync/config.yml`` under the working directory
        3. ``.dbsync/config.yaml`` under the working directory
        4. ``~/.config/dbsync/config.yml``
    """
    candidates: list[Path] = []

    explicit = os.environ.get("DBSYNC_CONFIG")
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / ".dbsync"
    candidates += [
        project_dir / "config.yml",
        project_dir / "config.yaml",
        Path.home() / ".config" / "dbsync" / "config.yml",
    ]

    return [path for path in candidates if path.exists()]


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one dict.

    Files are applied from least to most specific; a top-level section
    (``databases``, ``sync``, ``logging``) from a more specific file
    replaces the whole section from a less specific one. Env references
    are expanded after merging.

    Returns ``{}`` when there are no config files.

    Raises:
        yaml.YAMLError: If a config file is not valid YAML.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No dbsync config files found")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Reading config file %s", path)
        try:
            data = _read_yaml(path)
        except yaml.YAMLError:
            logger.error("Invalid YAML in config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Ignoring config file %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
