"""Service protocols defining interfaces for dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mintbatch.models.action_context import ActionContext


@runtime_checkable
class Action(Protocol):
    """One named mutation applied to one target per call.

    ``execute`` makes exactly one attempt and returns a receipt such as a
    transaction signature, or raises. It must not retry and must not touch
    the progress cache.
    """

    name: str

    async def execute(self, context: ActionContext, target: str) -> str: ...
