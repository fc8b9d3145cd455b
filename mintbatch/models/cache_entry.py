"""Persisted progress cache entry."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from mintbatch.models.new_value import NewValue
from mintbatch.models.outcome import Outcome, OutcomeStatus


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class CacheEntry(BaseModel):
    """Last known outcome for one target. Later writes replace earlier ones."""

    status: OutcomeStatus
    error: str | None = None
    receipt: str | None = None
    new_value: NewValue | None = None
    updated_at: datetime = Field(default_factory=_utc_now)

    @classmethod
    def from_outcome(cls, outcome: Outcome, new_value: NewValue | None = None) -> CacheEntry:
        return cls(
            status=outcome.status,
            error=outcome.error,
            receipt=outcome.receipt,
            new_value=new_value,
        )

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS
