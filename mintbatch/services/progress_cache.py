"""Durable per-target outcome ledger that makes batch runs resumable.

The cache file is a JSON object mapping each target id to its last
CacheEntry. Every record() rewrites the whole file through a temporary file
and os.replace, so readers only ever see a complete file.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from mintbatch.core.exceptions import CacheCorruptError
from mintbatch.models.cache_entry import CacheEntry
from mintbatch.models.outcome import OutcomeStatus
from mintbatch.utils.logger import get_logger

if TYPE_CHECKING:
    from mintbatch.models.new_value import NewValue
    from mintbatch.models.outcome import Outcome

logger = get_logger(__name__)


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to ``path`` via a temp file in the same directory and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, sort_keys=True)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class ProgressCache:
    """Mapping of target id to its last recorded outcome.

    Writes are serialized by an asyncio lock; the Batch Runner is the only
    writer. Reads for skip decisions should use :meth:`snapshot`.
    """

    def __init__(self, path: str | Path, entries: dict[str, CacheEntry] | None = None) -> None:
        self.path = Path(path)
        self._entries: dict[str, CacheEntry] = dict(entries or {})
        self._lock = asyncio.Lock()

    @classmethod
    def load(cls, path: str | Path) -> ProgressCache:
        """Load the cache at ``path``. A missing file yields an empty cache."""
        cache_path = Path(path)
        try:
            raw = cache_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("cache_not_found", path=str(cache_path))
            return cls(cache_path)
        except OSError as exc:
            raise CacheCorruptError(str(cache_path), str(exc)) from exc

        if not raw.strip():
            raise CacheCorruptError(str(cache_path), "file is empty")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CacheCorruptError(str(cache_path), f"invalid JSON: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise CacheCorruptError(str(cache_path), "top level must be a JSON object")

        entries: dict[str, CacheEntry] = {}
        for target, value in data.items():
            try:
                entries[target] = CacheEntry.model_validate(value)
            except ValidationError as exc:
                raise CacheCorruptError(
                    str(cache_path), f"invalid entry for {target}: {exc.error_count()} error(s)"
                ) from exc

        logger.info("cache_loaded", path=str(cache_path), entries=len(entries))
        return cls(cache_path, entries)

    def get(self, target: str) -> CacheEntry | None:
        return self._entries.get(target)

    def is_complete(self, target: str) -> bool:
        """True when the last recorded outcome for ``target`` was a success."""
        entry = self._entries.get(target)
        return entry is not None and entry.succeeded

    def snapshot(self) -> dict[str, CacheEntry]:
        """Shallow copy of the current entries; entries themselves are never mutated."""
        return dict(self._entries)

    def targets(self, status: OutcomeStatus | None = None) -> list[str]:
        if status is None:
            return list(self._entries)
        return [target for target, entry in self._entries.items() if entry.status is status]

    def summary(self) -> dict[str, int]:
        succeeded = len(self.targets(OutcomeStatus.SUCCESS))
        return {
            "entries": len(self._entries),
            "succeeded": succeeded,
            "failed": len(self._entries) - succeeded,
        }

    def to_dict(self) -> dict[str, Any]:
        return _dump(self._entries)

    async def record(
        self,
        target: str,
        outcome: Outcome,
        new_value: NewValue | None = None,
    ) -> CacheEntry:
        """Replace the entry for ``target`` and persist the whole cache.

        The in-memory entries only change once the new mapping is on disk.
        """
        entry = CacheEntry.from_outcome(outcome, new_value=new_value)
        async with self._lock:
            entries = {**self._entries, target: entry}
            await self.persist(entries)
            self._entries = entries
        return entry

    async def persist(self, entries: dict[str, CacheEntry] | None = None) -> None:
        """Write ``entries`` (the current entries by default) from a worker thread."""
        entries = self._entries if entries is None else entries
        data = _dump(entries)
        await asyncio.to_thread(atomic_write_json, self.path, data)
        logger.debug("cache_persisted", path=str(self.path), entries=len(entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, target: object) -> bool:
        return target in self._entries


def _dump(entries: dict[str, CacheEntry]) -> dict[str, Any]:
    return {target: entry.model_dump(mode="json") for target, entry in entries.items()}
