"""Shared, read-only data handed to every action invocation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from mintbatch.models.new_value import NewValue


class ActionContext(BaseModel):
    """Built once per run and shared by reference across all workers.

    ``client`` and ``keypair`` are opaque handles owned by the caller, e.g. an
    RPC client and a signing keypair. The engine never looks inside them.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    client: Any
    keypair: Any
    payer: Any | None = None
    new_value: NewValue | None = None
