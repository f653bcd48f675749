"""Persistence controller: decides when the view-model dump is written.

States: AWAITING_RESTORE -> ACTIVE -> (transiently) SAVING -> ACTIVE.

- Before the one-time restore completes every mutation event is a no-op.
- While ACTIVE, an event from the persisted catalog serializes the full dump
  and hands it to storage (fire-and-forget, last write wins).
- During the synchronous extent of a save, re-entrant events are dropped,
  except allow-listed kinds, which are deferred and handled exactly once
  after the running save returns.
- Each save asks the host loop to skip its next update cycle (the echo of the
  write), unless the triggering event is allow-listed.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from ranksync._internal.canonical_json import canonical_dumps
from ranksync._internal.io.storage import StateStorage
from ranksync.codes import ALLOWED_DURING_SAVE, PERSISTED_EVENTS, EventKind

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "dump"


class PersistenceState(str, Enum):
    AWAITING_RESTORE = "awaiting_restore"
    ACTIVE = "active"
    SAVING = "saving"


class PersistenceController:
    """Guards write access to the serialized dump."""

    def __init__(
        self,
        storage: StateStorage,
        key: str = DEFAULT_STORAGE_KEY,
        *,
        dump_source: Optional[Callable[[], Dict[str, Any]]] = None,
        on_persisted: Optional[Callable[[str], None]] = None,
    ):
        self.storage = storage
        self.key = key
        self._dump_source = dump_source
        self._on_persisted = on_persisted

        self.state = PersistenceState.AWAITING_RESTORE
        self.suppress_next_update = False
        self.last_event: Optional[EventKind] = None
        self.last_payload: Optional[str] = None
        self.save_count = 0

        self._deferred: List[EventKind] = []
        self._pending: Set["asyncio.Task[None]"] = set()

    @property
    def restore_complete(self) -> bool:
        return self.state != PersistenceState.AWAITING_RESTORE

    @property
    def save_in_progress(self) -> bool:
        return self.state == PersistenceState.SAVING

    def bind(self, dump_source: Callable[[], Dict[str, Any]]) -> None:
        self._dump_source = dump_source

    def mark_restored(self) -> None:
        """Open the guard. Fires once; later calls are ignored."""
        if self.state == PersistenceState.AWAITING_RESTORE:
            self.state = PersistenceState.ACTIVE
            logger.debug("Restore complete, persistence enabled")

    # -- events -----------------------------------------------------------

    def notify(self, kind: EventKind) -> bool:
        """Handle one mutation event. Returns True if a save ran."""
        if kind not in PERSISTED_EVENTS:
            return False

        if self.state == PersistenceState.AWAITING_RESTORE:
            logger.debug(f"Ignoring {kind.value}: restore not complete")
            return False

        if self.state == PersistenceState.SAVING:
            if kind in ALLOWED_DURING_SAVE:
                self._deferred.append(kind)
            else:
                logger.debug(f"Dropping re-entrant {kind.value} during save")
            return False

        saved = self._save(kind)
        while self._deferred:
            saved = self._save(self._deferred.pop(0)) or saved
        return saved

    def should_skip_update(self) -> bool:
        """Consume the update suppression flag.

        True means the caller should skip this update cycle.
        """
        if not self.suppress_next_update:
            return False
        self.suppress_next_update = False
        return self.last_event not in ALLOWED_DURING_SAVE

    def clear_update_suppression(self) -> None:
        self.suppress_next_update = False

    # -- saving -----------------------------------------------------------

    def _save(self, kind: EventKind) -> bool:
        if self._dump_source is None:
            logger.debug(f"No view model bound, nothing to save for {kind.value}")
            return False

        self.last_event = kind
        self.state = PersistenceState.SAVING
        try:
            payload = canonical_dumps(self._dump_source())
        except Exception as e:
            logger.warning(f"Could not serialize view state on {kind.value}: {e}")
            return False
        finally:
            self.state = PersistenceState.ACTIVE

        self.suppress_next_update = True
        self.last_payload = payload
        self.save_count += 1
        logger.debug(f"Saving view state on {kind.value} ({len(payload)} chars)")

        if self._on_persisted is not None:
            self._on_persisted(payload)
        self._enqueue_write(payload)
        return True

    def _enqueue_write(self, payload: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._write(payload))
            return

        task = loop.create_task(self._write(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, payload: str) -> None:
        try:
            await self.storage.set(self.key, payload)
        except Exception as e:
            logger.warning(f"Dropping view state write for key {self.key!r}: {e}")

    async def flush(self) -> None:
        """Wait until every scheduled write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
