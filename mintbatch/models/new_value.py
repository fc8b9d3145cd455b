"""New value payload applied uniformly to every target of a batch."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class NewValue(BaseModel):
    """What an action changes, e.g. ``NewValue(kind="uri", value="https://...")``."""

    model_config = ConfigDict(frozen=True)

    kind: str
    value: Any = None

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, value: str) -> str:
        """Kind must be a non-empty lowercase identifier."""
        stripped = value.strip().lower()
        if not stripped:
            msg = "kind must not be empty"
            raise ValueError(msg)
        return stripped

    @classmethod
    def parse(cls, text: str) -> NewValue:
        """Parse ``KIND=VALUE`` as given on the command line."""
        kind, sep, value = text.partition("=")
        if not sep:
            msg = f"new value must look like KIND=VALUE, got {text!r}"
            raise ValueError(msg)
        return cls(kind=kind, value=value)
