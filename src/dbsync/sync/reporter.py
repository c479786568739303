"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_model_line`` -- one progress line per processed model.
- ``format_sync_report`` -- the final run summary block.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import SyncDirection

if TYPE_CHECKING:
    from .models import ModelReport, SyncReport

RULE = "=" * 50


# ------------------------------------------------------------------
# Progress lines
# ------------------------------------------------------------------


def format_model_line(
    model_report: ModelReport,
    direction: SyncDirection,
    source_label: str = "source",
    target_label: str = "target",
) -> str:
    """Format the per-model result line logged after each model."""
    if model_report.failed:
        return f"Failed: {model_report.error}"

    stats = model_report.stats
    if direction == SyncDirection.BIDIRECTIONAL_MERGE:
        line = (
            f"{source_label} updates: {model_report.source_writes}, "
            f"{target_label} updates: {model_report.target_writes}, "
            f"Skipped: {stats.skipped}"
        )
    else:
        if stats.attempted == 0 and None in (
            model_report.source_count,
            model_report.target_count,
        ):
            return "Skipped (no records)"
        line = (
            f"Created: {stats.created}, Updated: {stats.updated}, "
            f"Skipped: {stats.skipped}"
        )

    if stats.errors:
        line += f", Errors: {stats.errors}"
    return line


def format_direction(report: SyncReport) -> str:
    if report.direction == SyncDirection.PUSH_TO_TARGET:
        arrow = f"{report.source_label} -> {report.target_label}"
    elif report.direction == SyncDirection.PULL_FROM_SOURCE:
        arrow = f"{report.target_label} -> {report.source_label}"
    else:
        arrow = f"{report.source_label} <-> {report.target_label}"
    return f"{report.direction.value} ({arrow})"


# ------------------------------------------------------------------
# Final summary
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format the run summary block.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    if report.cancelled:
        return "Cancelled by user"

    stats = report.stats
    lines = [
        RULE,
        "Synchronization Summary",
        RULE,
        f"Direction: {format_direction(report)}",
        "Mode: DRY RUN (no changes made)" if report.dry_run else "Mode: LIVE",
        f"Created: {stats.created}",
        f"Updated: {stats.updated}",
        f"Skipped: {stats.skipped}",
        f"Errors: {stats.errors}",
    ]

    failed = report.failed_models
    if failed:
        names = ", ".join(m.model for m in failed)
        lines.append(f"Failed models: {len(failed)} ({names})")

    lines.append(f"Duration: {report.duration_seconds:.2f}s")
    lines.append(RULE)
    lines.append("")

    if report.dry_run:
        lines.append("Run without --dry-run to apply changes")
    elif stats.errors or failed:
        lines.append("Synchronization completed with errors")
    else:
        lines.append("Synchronization complete!")

    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with run info, totals, and per-model details.
    """
    models_list = []
    for m in report.models:
        entry: dict = {
            "model": m.model,
            "source_count": m.source_count,
            "target_count": m.target_count,
            "source_writes": m.source_writes,
            "target_writes": m.target_writes,
            "counts": m.stats.model_dump(),
        }
        if m.error:
            entry["error"] = m.error
        models_list.append(entry)

    return {
        "direction": report.direction.value,
        "dry_run": report.dry_run,
        "cancelled": report.cancelled,
        "source": report.source_label,
        "target": report.target_label,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "duration_seconds": round(report.duration_seconds, 3),
        "counts": report.stats.model_dump(),
        "failed_models": [m.model for m in report.failed_models],
        "models": models_list,
    }
