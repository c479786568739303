"""Command-line entry point for dbsync.

Synchronizes records between the cloud (Neon) and local PostgreSQL
databases in either direction, or merges both by latest timestamp.
"""

import argparse
import json
import logging
import sys

from sqlalchemy.engine import make_url

from . import __version__
from .config import Config
from .errors import ConnectionLostError
from .lifespan import load_unified_config, resolve_config
from .logger import setup_logging
from .runner import always_confirm, run_sync
from .sync.models import SyncDirection
from .sync.reporter import format_sync_report, report_to_json

logger = logging.getLogger(__name__)


def prompt_confirm(message: str) -> bool:
    """Ask the operator on the terminal; only ``y``/``yes`` proceed."""
    try:
        answer = input(f"\n{message} (y/n): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def mask_url(url: str) -> str:
    """Render a database URL with its password hidden."""
    return make_url(url).render_as_string(hide_password=True)


def print_banner(config: Config, direction: SyncDirection, dry_run: bool) -> None:
    print("Database Synchronization Tool\n", file=sys.stderr)
    print(f"Direction: {direction.value}", file=sys.stderr)
    print(f"Mode: {'DRY RUN' if dry_run else 'LIVE'}", file=sys.stderr)
    print(f"{config.source_label} URL: {mask_url(config.source_url)}", file=sys.stderr)
    print(f"{config.target_label} URL: {mask_url(config.target_url)}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbsync",
        description="Synchronize data between the Neon (cloud) and local databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Directions:
  neon-to-local  Copy data from Neon to local (default)
  local-to-neon  Copy data from local to Neon
  both-ways      Merge both databases, newest updatedAt wins

Examples:
  dbsync neon-to-local
  dbsync local-to-neon --dry-run
  dbsync both-ways --force

Connection strings are read from NEON_DATABASE_URL and LOCAL_DATABASE_URL
(environment or .env), or from .dbsync/config.yml.
        """,
    )
    parser.add_argument(
        "direction",
        nargs="?",
        default=SyncDirection.PUSH_TO_TARGET.value,
        choices=[d.value for d in SyncDirection],
        help="Sync direction (default: neon-to-local)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be synced without making changes",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompts",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final report as JSON",
    )
    parser.add_argument(
        "--source-url",
        help="Override the source database URL (takes precedence over NEON_DATABASE_URL)",
    )
    parser.add_argument(
        "--target-url",
        help="Override the target database URL (takes precedence over LOCAL_DATABASE_URL)",
    )
    parser.add_argument(
        "--models",
        help="Comma-separated models to sync, in processing order",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Also append log output to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"dbsync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the sync, print the report.

    Returns:
        Process exit code: 0 on completion (including per-record errors
        and cancellation), 1 on configuration or connection failure.
    """
    args = build_parser().parse_args(argv)
    direction = SyncDirection(args.direction)

    config_overrides: dict = {}
    if args.source_url:
        config_overrides["source_url"] = args.source_url
    if args.target_url:
        config_overrides["target_url"] = args.target_url
    if args.models:
        config_overrides["models"] = [
            m.strip() for m in args.models.split(",") if m.strip()
        ]
    if args.debug:
        config_overrides["debug"] = True

    try:
        unified = load_unified_config()
    except Exception as e:
        print(f"ERROR: Could not load config file: {e}", file=sys.stderr)
        return 1

    setup_logging(
        debug=args.debug or unified.sync.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )

    try:
        config = resolve_config(unified, config_overrides)
        if config.debug:
            logging.getLogger().setLevel(logging.DEBUG)
        print_banner(config, direction, args.dry_run)

        confirm = always_confirm if args.force else prompt_confirm
        report = run_sync(config, direction, dry_run=args.dry_run, confirm=confirm)
    except RuntimeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except ConnectionLostError as e:
        logger.error("Synchronization failed: %s", e)
        print(f"ERROR: Synchronization failed: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_sync_report(report))
    return 0


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
