"""Aggregate report for a finished batch run."""

from __future__ import annotations

from pydantic import BaseModel


class FailedTarget(BaseModel):
    """A target that failed after exhausting its retries."""

    target: str
    reason: str


class BatchReport(BaseModel):
    """Statistics from a batch run.

    ``attempted`` counts targets dispatched to workers in this run; targets
    already successful in the cache are counted in ``skipped`` instead.
    """

    action: str
    total: int
    attempted: int
    succeeded: int
    failed: int
    skipped: int
    duration_seconds: float
    failures: list[FailedTarget] = []

    @property
    def ok(self) -> bool:
        return self.failed == 0
