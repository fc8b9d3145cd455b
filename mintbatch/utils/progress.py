"""Progress tracking for batch runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from mintbatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProgressTracker:
    """Track progress of a batch run."""

    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)

    def record_success(self) -> None:
        """Record a target that succeeded."""
        self.processed += 1
        self.successful += 1

    def record_failure(self, target: str, reason: str) -> None:
        """Record a target that failed after its retries."""
        self.processed += 1
        self.failed += 1
        self.failures.append((target, reason))

    def record_skip(self) -> None:
        """Record a target already completed in a prior run."""
        self.processed += 1
        self.skipped += 1

    @property
    def attempted(self) -> int:
        return self.successful + self.failed

    @property
    def elapsed_seconds(self) -> float:
        """Time elapsed since start."""
        return time.monotonic() - self.start_time

    @property
    def progress_percentage(self) -> float:
        """Percentage of total targets processed."""
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100.0

    def log_progress(self, every_n: int = 10) -> None:
        """Log progress every N targets."""
        if self.processed % every_n == 0 or self.processed == self.total:
            logger.info(
                "batch_progress",
                processed=self.processed,
                total=self.total,
                successful=self.successful,
                failed=self.failed,
                skipped=self.skipped,
                percentage=f"{self.progress_percentage:.1f}%",
                elapsed=f"{self.elapsed_seconds:.1f}s",
            )
