"""Shared test fixtures for mintbatch."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from mintbatch.models.action_context import ActionContext
from mintbatch.models.config import BatchSettings
from mintbatch.services.rate_limiter import RateLimiter
from mintbatch.utils.retry import RetryPolicy
from tests.fakes import ScriptedAction

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    """Provide a progress cache path that does not exist yet."""
    return tmp_path / "cache" / "progress.json"


@pytest.fixture
def context() -> ActionContext:
    """Provide an action context with opaque client and keypair handles."""
    return ActionContext(client="http://localhost:8899", keypair="/tmp/id.json")


@pytest.fixture
def make_action() -> Callable[..., ScriptedAction]:
    """Factory for scripted actions."""

    def _make(**kwargs: Any) -> ScriptedAction:
        return ScriptedAction(**kwargs)

    return _make


@pytest.fixture
def recorded_sleeps() -> list[float]:
    """Delays requested by retry policies built with fast_retry_policy."""
    return []


@pytest.fixture
def fast_retry_policy(recorded_sleeps: list[float]) -> Callable[..., RetryPolicy]:
    """Factory for retry policies that record delays instead of sleeping."""

    async def _sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    def _make(
        max_attempts: int = 3,
        base_delay: float = 0.25,
        backoff_factor: float = 2.0,
    ) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=max_attempts,
            base_delay=base_delay,
            backoff_factor=backoff_factor,
            sleep=_sleep,
        )

    return _make


@pytest.fixture
def open_limiter() -> RateLimiter:
    """A rate limiter generous enough never to delay a test batch."""
    return RateLimiter(max_calls=10_000, period=1.0)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run with no MINTBATCH_* variables and no .env file in the working directory."""
    import os

    for key in list(os.environ):
        if key.startswith("MINTBATCH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings(cache_path: Path, clean_env: None) -> BatchSettings:
    """Settings pointing at a temporary cache with near-instant retries."""
    return BatchSettings(
        cache_file=str(cache_path),
        concurrency=3,
        rate_limit=1000,
        retries=2,
        retry_base_delay=0.001,
        retry_backoff_factor=1.0,
    )
