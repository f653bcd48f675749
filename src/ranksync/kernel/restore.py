"""One-time restore of a previously persisted ranking dump.

fetch -> sanitize -> placeholder check -> parse -> replay. Whatever happens
(nothing stored, storage down, broken dump, failed replay) the persistence
guard is opened at the end, so a bad dump can never block future saves.
"""

import json
import logging
from typing import Callable, Optional, Tuple

from pydantic import ValidationError

from ranksync._internal.io.storage import StateStorage
from ranksync._internal.sanitize import is_placeholder, sanitize_dump_text
from ranksync.codes import RestoreOutcome
from ranksync.kernel.dump import PersistedDump
from ranksync.kernel.persistence import DEFAULT_STORAGE_KEY, PersistenceController

logger = logging.getLogger(__name__)


class DumpParseError(ValueError):
    """Raised when a sanitized payload is not a valid persisted dump."""
    pass


def parse_dump(text: str) -> PersistedDump:
    """Parse sanitized text into a PersistedDump.

    Raises:
        DumpParseError: If the text is not JSON, not an object, or has the wrong shape
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DumpParseError(f"Dump is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DumpParseError(f"Dump must be a JSON object, got {type(data).__name__}")

    try:
        return PersistedDump.model_validate(data)
    except ValidationError as e:
        raise DumpParseError(f"Dump has an incompatible shape: {e}") from e


def load_dump(raw: Optional[str]) -> Optional[PersistedDump]:
    """Sanitize and parse raw stored text. None means nothing to restore."""
    if raw is None:
        return None
    text = sanitize_dump_text(raw)
    if is_placeholder(text):
        return None
    return parse_dump(text)


class RestorePipeline:
    """Fetches the stored dump once and replays it onto the view model.

    When no data has arrived yet the parsed dump is held as ``pending`` and
    replayed by the first update that carries a table.
    """

    def __init__(self, storage: StateStorage, key: str = DEFAULT_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.outcome: Optional[RestoreOutcome] = None
        self.pending: Optional[PersistedDump] = None

    async def fetch(self) -> Tuple[Optional[str], bool]:
        """Read the stored value. Returns (value, storage_available)."""
        try:
            value = await self.storage.get(self.key)
        except Exception as e:
            logger.warning(f"State storage unavailable, starting without saved view: {e}")
            return None, False
        return value, True

    def prepare(self, raw: Optional[str]) -> Tuple[Optional[PersistedDump], RestoreOutcome]:
        """Sanitize and parse raw. A None dump comes with a final outcome."""
        try:
            dump = load_dump(raw)
        except DumpParseError as e:
            logger.warning(f"Error parsing last view state, using default ranking: {e}")
            return None, RestoreOutcome.FAILED
        if dump is None:
            return None, RestoreOutcome.EMPTY
        return dump, RestoreOutcome.RESTORED

    def finish(self, outcome: RestoreOutcome, persistence: PersistenceController) -> RestoreOutcome:
        self.pending = None
        self.outcome = outcome
        persistence.mark_restored()
        logger.info(f"View state restore finished: {outcome.value}")
        return outcome

    def replay(
        self,
        dump: PersistedDump,
        replay: Callable[[PersistedDump], None],
        persistence: PersistenceController,
    ) -> RestoreOutcome:
        """Replay dump onto the view model, then open the persistence guard."""
        outcome = RestoreOutcome.FAILED
        try:
            replay(dump)
            outcome = RestoreOutcome.RESTORED
        except Exception as e:
            logger.warning(f"Error restoring last view state, using default ranking: {e}")
        finally:
            self.finish(outcome, persistence)
        return outcome

    def replay_pending(
        self,
        replay: Callable[[PersistedDump], None],
        persistence: PersistenceController,
    ) -> RestoreOutcome:
        if self.pending is None:
            raise RuntimeError("No deferred dump to replay")
        return self.replay(self.pending, replay, persistence)

    async def restore(
        self,
        replay: Callable[[PersistedDump], None],
        persistence: PersistenceController,
        *,
        defer: bool = False,
    ) -> RestoreOutcome:
        """Run the whole restore. With defer=True a valid dump is kept pending."""
        raw, available = await self.fetch()
        if not available:
            return self.finish(RestoreOutcome.UNAVAILABLE, persistence)

        dump, outcome = self.prepare(raw)
        if dump is None:
            return self.finish(outcome, persistence)

        if defer:
            self.pending = dump
            self.outcome = RestoreOutcome.DEFERRED
            logger.debug("Stored view state parsed; replay deferred until data arrives")
            return self.outcome
        return self.replay(dump, replay, persistence)
