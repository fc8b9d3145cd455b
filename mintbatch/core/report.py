"""Batch report formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mintbatch.models.batch_report import BatchReport


def format_batch_report(report: BatchReport, max_failures: int = 10) -> str:
    """Format a batch report as a human-readable summary string."""
    status = "SUCCESS" if report.ok else "FAILED"
    lines = [
        f"[{status}] {report.action}",
        f"  Total: {report.total}",
        f"  Attempted: {report.attempted}",
        f"  Succeeded: {report.succeeded}",
        f"  Failed: {report.failed}",
        f"  Skipped: {report.skipped}",
        f"  Duration: {report.duration_seconds:.2f}s",
    ]

    if report.failures:
        lines.append(f"  Failures ({len(report.failures)}):")
        for failure in report.failures[:max_failures]:
            lines.append(f"    - {failure.target}: {failure.reason}")
        if len(report.failures) > max_failures:
            lines.append(f"    ... and {len(report.failures) - max_failures} more")

    return "\n".join(lines)
