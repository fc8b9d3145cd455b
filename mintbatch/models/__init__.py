"""Pydantic data models for batch runs."""

from mintbatch.models.action_context import ActionContext
from mintbatch.models.batch_report import BatchReport, FailedTarget
from mintbatch.models.cache_entry import CacheEntry
from mintbatch.models.config import BatchSettings
from mintbatch.models.new_value import NewValue
from mintbatch.models.outcome import Outcome, OutcomeStatus

__all__ = [
    "ActionContext",
    "BatchReport",
    "BatchSettings",
    "CacheEntry",
    "FailedTarget",
    "NewValue",
    "Outcome",
    "OutcomeStatus",
]
