"""Persisted state store collaborators (internal).

The engine only needs async get/set of opaque text by key. Values are never
interpreted here.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from ranksync._internal.canonical_json import canonical_dumps

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the storage collaborator rejects a read or a write."""
    pass


class StateStorage(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...


class InMemoryStorage:
    """Dict-backed storage.

    fail_reads / fail_writes simulate an unavailable store.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None, *, fail_reads: bool = False, fail_writes: bool = False):
        self.values: Dict[str, str] = dict(initial or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.writes: list[tuple[str, str]] = []

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StorageError(f"Storage unavailable reading {key!r}")
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"Storage unavailable writing {key!r}")
        self.values[key] = value
        self.writes.append((key, value))


class JsonFileStorage:
    """One JSON document of key -> text on disk.

    A missing file reads as empty. Every write rewrites the whole document
    through a temporary file swapped into place, and writes are applied one
    at a time in the order they were issued.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"State file {self.path} does not hold a JSON object")
        return data

    def _store(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(canonical_dumps(data), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write state file {self.path}: {e}") from e
        logger.debug(f"Wrote {len(value)} chars for key {key!r} to {self.path}")

    def _write_lock(self) -> asyncio.Lock:
        # asyncio locks belong to one loop; each asyncio.run gets its own
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._load)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        async with self._write_lock():
            await asyncio.to_thread(self._store, key, value)
