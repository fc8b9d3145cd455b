"""Concurrent, rate-limited, resumable execution of one action over many targets."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING

from mintbatch.core.exceptions import ActionFailedError, InvalidInputError
from mintbatch.core.target_list import dedupe_targets, load_targets
from mintbatch.models.batch_report import BatchReport, FailedTarget
from mintbatch.models.outcome import Outcome
from mintbatch.services.progress_cache import ProgressCache
from mintbatch.services.rate_limiter import RateLimiter
from mintbatch.utils.logger import get_logger
from mintbatch.utils.progress import ProgressTracker
from mintbatch.utils.retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from mintbatch.models.action_context import ActionContext
    from mintbatch.models.config import BatchSettings
    from mintbatch.services.protocols import Action

logger = get_logger(__name__)


class RunState(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TargetState(StrEnum):
    PENDING = "pending"
    SKIPPED = "skipped"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BatchRunner:
    """Apply one action to every target under a concurrency bound and rate limit.

    Targets whose last cached outcome is a success are skipped. Everything
    else goes through a pool of ``concurrency`` workers; each worker takes a
    rate-limiter permit, runs the action under the retry policy and records
    the settled outcome in the cache before taking the next target. A failing
    target never stops the batch.
    """

    def __init__(
        self,
        action: Action,
        context: ActionContext,
        cache: ProgressCache,
        concurrency: int = 5,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        progress_every: int = 10,
    ) -> None:
        if concurrency < 1:
            msg = "concurrency must be at least 1"
            raise InvalidInputError(msg)
        self.action = action
        self.context = context
        self.cache = cache
        self.concurrency = concurrency
        self.rate_limiter = rate_limiter or RateLimiter()
        self.retry_policy = retry_policy or RetryPolicy()
        self.progress_every = max(1, progress_every)
        self.state = RunState.NOT_STARTED
        self.target_states: dict[str, TargetState] = {}
        self.outcomes: dict[str, Outcome] = {}

    async def run(self, targets: Iterable[str]) -> BatchReport:
        """Process every target and return the aggregate report."""
        if self.state is not RunState.NOT_STARTED:
            msg = "a BatchRunner can only be run once"
            raise InvalidInputError(msg)
        target_list = dedupe_targets(targets)
        if not target_list:
            msg = "target list is empty"
            raise InvalidInputError(msg)

        tracker = ProgressTracker(total=len(target_list))
        snapshot = self.cache.snapshot()
        queue: asyncio.Queue[str] = asyncio.Queue()
        for target in target_list:
            entry = snapshot.get(target)
            if entry is not None and entry.succeeded:
                self.target_states[target] = TargetState.SKIPPED
                tracker.record_skip()
                logger.debug("target_skipped", action=self.action.name, target=target)
            else:
                self.target_states[target] = TargetState.PENDING
                queue.put_nowait(target)

        pending = queue.qsize()
        logger.info(
            "batch_started",
            action=self.action.name,
            total=len(target_list),
            pending=pending,
            skipped=tracker.skipped,
            concurrency=self.concurrency,
        )

        self.state = RunState.IN_PROGRESS
        workers = [
            asyncio.create_task(self._worker(queue, tracker))
            for _ in range(min(self.concurrency, pending))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        self.state = RunState.COMPLETED
        report = self._build_report(target_list, tracker)
        logger.info(
            "batch_completed",
            action=report.action,
            attempted=report.attempted,
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            duration_seconds=report.duration_seconds,
        )
        return report

    async def _worker(self, queue: asyncio.Queue[str], tracker: ProgressTracker) -> None:
        while True:
            try:
                target = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self._process(target, tracker)
            queue.task_done()

    async def _process(self, target: str, tracker: ProgressTracker) -> None:
        await self.rate_limiter.acquire()
        self.target_states[target] = TargetState.RUNNING
        try:
            receipt, attempts = await self.retry_policy.run(
                target, self.action.execute, self.context, target
            )
        except ActionFailedError as exc:
            outcome = Outcome.failure(target, exc.reason, attempts=exc.attempts)
        else:
            outcome = Outcome.success(
                target, None if receipt is None else str(receipt), attempts=attempts
            )

        await self.cache.record(target, outcome, new_value=self.context.new_value)
        self.outcomes[target] = outcome

        if outcome.succeeded:
            self.target_states[target] = TargetState.SUCCEEDED
            tracker.record_success()
            logger.info(
                "target_succeeded",
                action=self.action.name,
                target=target,
                receipt=outcome.receipt,
                attempts=outcome.attempts,
            )
        else:
            self.target_states[target] = TargetState.FAILED
            tracker.record_failure(target, outcome.error or "unknown error")
            logger.error(
                "target_failed",
                action=self.action.name,
                target=target,
                error=outcome.error,
                attempts=outcome.attempts,
            )
        tracker.log_progress(every_n=self.progress_every)

    def _build_report(self, target_list: list[str], tracker: ProgressTracker) -> BatchReport:
        order = {target: index for index, target in enumerate(target_list)}
        failures = sorted(tracker.failures, key=lambda item: order[item[0]])
        return BatchReport(
            action=self.action.name,
            total=len(target_list),
            attempted=tracker.attempted,
            succeeded=tracker.successful,
            failed=tracker.failed,
            skipped=tracker.skipped,
            duration_seconds=round(tracker.elapsed_seconds, 2),
            failures=[FailedTarget(target=target, reason=reason) for target, reason in failures],
        )


async def run_batch(
    action: Action,
    context: ActionContext,
    settings: BatchSettings,
    targets: Iterable[str] | None = None,
    target_file: str | Path | None = None,
    failed_only: bool = False,
) -> BatchReport:
    """Load targets and cache per ``settings`` and run ``action`` over them.

    With neither ``targets`` nor ``target_file`` the targets are read back
    from the cache file itself. Invalid input and a corrupt cache raise before
    any action is attempted.
    """
    cache = ProgressCache.load(settings.cache_file)
    target_list = load_targets(
        targets=targets,
        target_file=target_file,
        cache_file=settings.cache_file,
        failed_only=failed_only,
    )
    runner = BatchRunner(
        action=action,
        context=context,
        cache=cache,
        concurrency=settings.concurrency,
        rate_limiter=RateLimiter(max_calls=settings.rate_limit, period=settings.rate_period),
        retry_policy=RetryPolicy(
            max_attempts=settings.retries,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
        ),
    )
    return await runner.run(target_list)
