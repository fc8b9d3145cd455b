"""Bounded exponential-backoff retries using tenacity."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mintbatch.core.exceptions import ActionFailedError, InvalidInputError
from mintbatch.utils.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = get_logger(__name__)


def _log_retry(target: str) -> Callable[[RetryCallState], None]:
    """Build a before_sleep hook that logs the retry with structured context."""

    def _log(retry_state: RetryCallState) -> None:
        logger.warning(
            "retrying_operation",
            target=target,
            attempt=retry_state.attempt_number,
            sleep=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else "unknown",
        )

    return _log


class RetryPolicy:
    """Retry one target's operation with delay ``base_delay * backoff_factor**(n-1)``.

    Every ``Exception`` counts as a failed attempt. Cancellation is not an
    ``Exception`` and passes straight through. Budgets are per call to
    :meth:`run`, so one target never consumes another target's attempts.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.25,
        backoff_factor: float = 2.0,
        max_delay: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise InvalidInputError(msg)
        if base_delay < 0 or backoff_factor < 1:
            msg = "base_delay must be >= 0 and backoff_factor >= 1"
            raise InvalidInputError(msg)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self._sleep = sleep

    def delays(self) -> list[float]:
        """Delays slept between attempts, in order."""
        planned = [
            self.base_delay * self.backoff_factor ** (attempt - 1)
            for attempt in range(1, self.max_attempts)
        ]
        if self.max_delay is not None:
            planned = [min(delay, self.max_delay) for delay in planned]
        return planned

    def _retrying(self, target: str) -> AsyncRetrying:
        wait = wait_exponential(
            multiplier=self.base_delay,
            exp_base=self.backoff_factor,
            min=0,
            max=self.max_delay if self.max_delay is not None else float("inf"),
        )
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait,
            retry=retry_if_exception_type(Exception),
            before_sleep=_log_retry(target),
            sleep=self._sleep,
            reraise=False,
        )

    async def run(
        self,
        target: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> tuple[T, int]:
        """Await ``fn(*args)`` until it succeeds or attempts run out.

        Returns ``(result, attempts)``. Raises ActionFailedError carrying the
        last error once attempts are exhausted.
        """
        attempts = 0

        async def _attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await fn(*args)

        try:
            result = await self._retrying(target)(_attempt)
        except RetryError as exc:
            last = exc.last_attempt.exception()
            raise ActionFailedError(target, _reason(last), attempts=attempts) from last
        return result, attempts


def _reason(error: BaseException | None) -> str:
    """Human-readable reason for the last failed attempt."""
    if error is None:
        return "unknown error"
    if isinstance(error, ActionFailedError):
        return error.reason
    text = str(error)
    return text if text else type(error).__name__
