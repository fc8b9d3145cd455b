"""Outcome of running an action against a single target."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator


class OutcomeStatus(StrEnum):
    """Classification of a settled target."""

    SUCCESS = "success"
    FAILURE = "failure"


class Outcome(BaseModel):
    """Result of one target after the retry policy has settled."""

    model_config = ConfigDict(frozen=True)

    target: str
    status: OutcomeStatus
    receipt: str | None = None
    error: str | None = None
    attempts: int = 1

    @model_validator(mode="after")
    def validate_error_present(self) -> Outcome:
        """Failures must carry a reason."""
        if self.status is OutcomeStatus.FAILURE and not self.error:
            msg = "failure outcome requires an error message"
            raise ValueError(msg)
        return self

    @classmethod
    def success(cls, target: str, receipt: str | None = None, attempts: int = 1) -> Outcome:
        return cls(target=target, status=OutcomeStatus.SUCCESS, receipt=receipt, attempts=attempts)

    @classmethod
    def failure(cls, target: str, reason: str, attempts: int = 1) -> Outcome:
        return cls(
            target=target,
            status=OutcomeStatus.FAILURE,
            error=reason or "unknown error",
            attempts=attempts,
        )

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS
