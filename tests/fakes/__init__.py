"""Shared test doubles for actions and time."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mintbatch.models.action_context import ActionContext


class ScriptedAction:
    """Action double whose per-target behavior is scripted up front.

    ``fail_times`` maps target -> number of leading attempts that raise;
    a negative count means every attempt raises.
    """

    def __init__(
        self,
        name: str = "set-token-standard",
        fail_times: dict[str, int] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.fail_times = dict(fail_times or {})
        self.delay = delay
        self.calls: list[str] = []
        self.contexts: list[ActionContext] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._running_targets: set[str] = set()
        self.overlapping_target = False

    async def execute(self, context: ActionContext, target: str) -> str:
        if target in self._running_targets:
            self.overlapping_target = True
        self._running_targets.add(target)
        self.calls.append(target)
        self.contexts.append(context)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            remaining = self.fail_times.get(target, 0)
            if remaining != 0:
                self.fail_times[target] = remaining - 1 if remaining > 0 else remaining
                msg = f"transaction for {target} was not confirmed"
                raise ConnectionError(msg)
            return f"sig-{target}"
        finally:
            self.in_flight -= 1
            self._running_targets.discard(target)

    def attempts_for(self, target: str) -> int:
        return self.calls.count(target)


__all__ = ["ScriptedAction"]


class FakeClock:
    """Monotonic clock that only advances when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
