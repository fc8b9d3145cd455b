"""Target list loading.

A target list comes from exactly one source, in priority order: an explicit
collection, a JSON target list file (an array of account addresses), or the
keys of a prior progress cache file, optionally only its failures. The result
is stripped, de-duplicated and keeps first-seen order. Skip decisions are not
made here.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mintbatch.core.exceptions import InvalidInputError

if TYPE_CHECKING:
    from collections.abc import Iterable

_SEPARATORS = re.compile(r"[\s,]+")


def dedupe_targets(targets: Iterable[Any]) -> list[str]:
    """Strip, drop blanks and duplicates, preserving first occurrence order."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in targets:
        if not isinstance(raw, str):
            msg = f"target ids must be strings, got {type(raw).__name__}"
            raise InvalidInputError(msg)
        target = raw.strip()
        if target and target not in seen:
            seen.add(target)
            result.append(target)
    return result


def parse_target_text(text: str) -> list[str]:
    """Split comma, space or newline separated ids."""
    return dedupe_targets(_SEPARATORS.split(text))


def _read_json(path: Path, what: str) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        msg = f"{what} {path} does not exist"
        raise InvalidInputError(msg) from None
    except OSError as exc:
        msg = f"cannot read {what} {path}: {exc}"
        raise InvalidInputError(msg) from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"{what} {path} is not valid JSON: {exc.msg}"
        raise InvalidInputError(msg) from exc


def read_target_file(path: str | Path) -> list[str]:
    """Read a JSON array of target ids."""
    data = _read_json(Path(path), "target list")
    if not isinstance(data, list):
        msg = f"target list {path} must be a JSON array of strings"
        raise InvalidInputError(msg)
    return dedupe_targets(data)


def read_cache_targets(path: str | Path, failed_only: bool = False) -> list[str]:
    """Read the target ids recorded in a progress cache file."""
    data = _read_json(Path(path), "cache file")
    if not isinstance(data, dict):
        msg = f"cache file {path} is not a recognized target list"
        raise InvalidInputError(msg)
    if failed_only:
        return dedupe_targets(
            target
            for target, entry in data.items()
            if not (isinstance(entry, dict) and entry.get("status") == "success")
        )
    return dedupe_targets(data.keys())


def load_targets(
    targets: Iterable[str] | None = None,
    target_file: str | Path | None = None,
    cache_file: str | Path | None = None,
    failed_only: bool = False,
) -> list[str]:
    """Resolve the ordered, de-duplicated, non-empty list of targets to process."""
    if failed_only and (targets is not None or target_file is not None):
        msg = "failed_only reads targets from the cache file; drop the explicit targets"
        raise InvalidInputError(msg)
    if targets is not None:
        if isinstance(targets, str):
            resolved = parse_target_text(targets)
        else:
            resolved = dedupe_targets(targets)
        source = "explicit list"
    elif target_file is not None:
        resolved = read_target_file(target_file)
        source = str(target_file)
    elif cache_file is not None:
        resolved = read_cache_targets(cache_file, failed_only=failed_only)
        source = str(cache_file)
    else:
        msg = "no targets supplied: pass a target list, a target file or a cache file"
        raise InvalidInputError(msg)

    if not resolved:
        msg = f"target list from {source} is empty"
        raise InvalidInputError(msg)
    return resolved
