"""Result formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_info_line`` -- one line per pushed file (used by push and watch).
- ``format_push_report`` -- full post-push summary.
- ``format_test_report`` -- validation run summary.
- ``report_to_json`` -- structured dict for MCP tool and ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MacroSyncResult, PushReport, SyncInfo, TestFailure


def format_info_line(info: SyncInfo) -> str:
    """Format one file's outcome.

    Examples::

        foo.js -> alice, bob (123 chars)
        bad.js: FAILED unexpected token
    """
    if info.error is not None and not info.users:
        return f"{info.file}: FAILED {info.error}"
    targets = ", ".join(info.users) if info.users else "no users"
    line = f"{info.file} -> {targets} ({info.min_length} chars)"
    if info.error is not None:
        line += f" [partial: {info.error}]"
    return line


def format_push_report(report: PushReport) -> str:
    """Format a complete push report as human-readable text.

    Failures are listed first; successful files follow in name order.
    """
    lines: list[str] = []
    lines.append(
        f"Pushed {len(report.succeeded)} of {len(report.results)} scripts "
        f"({report.writes} files written, {len(report.failed)} failed)"
    )
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    if report.failed:
        lines.append("Failed:")
        for info in sorted(report.failed, key=lambda i: i.file):
            lines.append(f"  {format_info_line(info)}")
        lines.append("")

    if report.succeeded:
        lines.append("Pushed:")
        for info in sorted(report.succeeded, key=lambda i: i.file):
            lines.append(f"  {format_info_line(info)}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def format_test_report(failures: list[TestFailure]) -> str:
    """Format the result of a validation run."""
    if not failures:
        return "All scripts passed.\n"
    lines = [f"{len(failures)} script(s) failed:"]
    for failure in sorted(failures, key=lambda f: f.file):
        lines.append(f"  {failure.file}: {failure.error}")
    return "\n".join(lines) + "\n"


def format_macro_result(result: MacroSyncResult) -> str:
    return (
        f"Synced {result.merged_count} macros "
        f"to {result.user_count} users\n"
    )


def report_to_json(report: PushReport) -> dict:
    """Convert a ``PushReport`` into a JSON-serialisable dict.

    Returns:
        Dict with ``summary``, ``results``, ``started_at`` and
        ``completed_at``.
    """
    return {
        "summary": {
            "total": len(report.results),
            "pushed": len(report.succeeded),
            "failed": len(report.failed),
            "writes": report.writes,
        },
        "results": [info.model_dump() for info in report.results],
        "started_at": report.started_at,
        "completed_at": report.completed_at,
    }
