"""Exception hierarchy for batch runs.

Fatal errors (InvalidInputError, CacheCorruptError) abort a run before any
work starts. ActionFailedError is per target and ends up in the BatchReport.
TransientFailureError marks a single attempt as retryable and never escapes
the retry policy.
"""

from __future__ import annotations


class MintBatchError(Exception):
    """Base class for all errors raised by mintbatch."""


class InvalidInputError(MintBatchError):
    """Malformed or empty target list, or invalid run configuration."""


class CacheCorruptError(MintBatchError):
    """The progress cache file exists but cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cache file {path} is corrupt: {reason}")


class ActionFailedError(MintBatchError):
    """An action failed for one target."""

    def __init__(self, target: str, reason: str, attempts: int = 1) -> None:
        self.target = target
        self.reason = reason
        self.attempts = attempts
        super().__init__(f"{target}: {reason}")


class TransientFailureError(MintBatchError):
    """A single attempt failed in a way worth retrying."""
