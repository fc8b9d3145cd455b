"""Lookup of actions by registered name or import path."""

from __future__ import annotations

import importlib
from typing import Any

from mintbatch.core.exceptions import InvalidInputError
from mintbatch.services.protocols import Action
from mintbatch.utils.logger import get_logger

logger = get_logger(__name__)

_REGISTRY: dict[str, Action] = {}


def register_action(action: Action) -> Action:
    """Register an action instance under its name. Re-registering replaces it."""
    if not isinstance(action, Action):
        msg = f"{action!r} does not implement the Action protocol"
        raise InvalidInputError(msg)
    _REGISTRY[action.name] = action
    logger.debug("action_registered", action=action.name)
    return action


def unregister_action(name: str) -> None:
    _REGISTRY.pop(name, None)


def available_actions() -> list[str]:
    return sorted(_REGISTRY)


def get_action(name: str) -> Action:
    try:
        return _REGISTRY[name]
    except KeyError:
        known = ", ".join(available_actions()) or "none"
        msg = f"unknown action {name!r} (registered: {known})"
        raise InvalidInputError(msg) from None


def _instantiate(obj: Any, ref: str) -> Action:
    if isinstance(obj, type):
        obj = obj()
    if not isinstance(obj, Action):
        msg = f"{ref} does not resolve to an Action"
        raise InvalidInputError(msg)
    return obj


def resolve_action(ref: str) -> Action:
    """Resolve a registered name or a ``package.module:attribute`` path.

    The attribute may be an Action instance or a class taking no arguments.
    """
    if ":" not in ref:
        return get_action(ref)

    module_name, _, attr = ref.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"cannot import action module {module_name!r}: {exc}"
        raise InvalidInputError(msg) from exc
    try:
        obj = getattr(module, attr)
    except AttributeError:
        msg = f"module {module_name!r} has no attribute {attr!r}"
        raise InvalidInputError(msg) from None
    return _instantiate(obj, ref)
