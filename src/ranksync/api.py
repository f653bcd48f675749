"""Public API for ranksync package.

RankingSync is the engine a host visual drives: call start() once, then
update() for every host refresh. Hosts should use this class instead of
importing from kernel or _internal.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ranksync._internal.io.storage import InMemoryStorage, StateStorage
from ranksync.adapters.memory import create_provider, create_view
from ranksync.codes import RestoreOutcome, UpdateKind
from ranksync.contracts import CycleReport, EngineStatus
from ranksync.kernel.controller import ReconciliationController
from ranksync.kernel.dump import PersistedDump
from ranksync.kernel.extract import extract
from ranksync.kernel.palette import Palette
from ranksync.kernel.persistence import DEFAULT_STORAGE_KEY, PersistenceController
from ranksync.kernel.restore import RestorePipeline
from ranksync.kernel.store import STRUCTURAL_COLUMN_COUNT, ViewStateStore
from ranksync.kernel.table import DataTable
from ranksync.kernel.view_model import ProviderFactory, ViewFactory
from ranksync.settings import VisualSettings

logger = logging.getLogger(__name__)


class UpdateOptions(BaseModel):
    """One host refresh: what kind it is, the table and the property objects."""
    kind: UpdateKind = UpdateKind.DATA
    table: Optional[DataTable] = None
    objects: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class RankingSync:
    """Keeps a ranking view model in sync with host data and persisted state."""

    def __init__(
        self,
        storage: Optional[StateStorage] = None,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        palette: Optional[Palette] = None,
        provider_factory: ProviderFactory = create_provider,
        view_factory: ViewFactory = create_view,
        structural_count: int = STRUCTURAL_COLUMN_COUNT,
    ):
        self.storage = storage if storage is not None else InMemoryStorage()
        self.palette = palette or Palette()
        self.color_cursor = 0
        self.settings = VisualSettings()

        self.store = ViewStateStore(structural_count)
        self.persistence = PersistenceController(self.storage, storage_key, on_persisted=self._remember_dump)
        self.controller = ReconciliationController(
            self.store,
            self.persistence,
            provider_factory=provider_factory,
            view_factory=view_factory,
        )
        self.restorer = RestorePipeline(self.storage, storage_key)
        self._restore_task: Optional[asyncio.Future] = None

    @property
    def provider(self):
        return self.controller.provider

    @property
    def view(self):
        return self.controller.view

    @property
    def restore_outcome(self) -> Optional[RestoreOutcome]:
        return self.restorer.outcome

    async def start(self) -> RestoreOutcome:
        """Run the one-time restore. Later calls wait for and return the first outcome."""
        if self._restore_task is None:
            self._restore_task = asyncio.ensure_future(self.restorer.restore(
                self._replay,
                self.persistence,
                defer=self.controller.provider is None,
            ))
        return await self._restore_task

    def update(self, options: UpdateOptions) -> CycleReport:
        """Handle one host refresh."""
        if options.table is None:
            self.persistence.clear_update_suppression()
            return CycleReport(skipped=True, skip_reason="no_table")

        if self.persistence.should_skip_update():
            logger.debug(f"Skipping {options.kind.value} update echoed by the last save")
            return CycleReport(skipped=True, skip_reason="save_echo")

        settings = VisualSettings.parse(options.objects)
        if not settings.dump.dump:
            settings.dump = self.settings.dump
        self.settings = settings

        extracted = extract(options.table, self.color_cursor, self.palette)
        self.color_cursor = extracted.next_cursor

        if self.restorer.pending is not None:
            self.controller.rows, self.controller.cols = extracted.rows, extracted.cols
            outcome = self.restorer.replay_pending(lambda dump: self._replay(dump, settings), self.persistence)
            return CycleReport(restored=outcome == RestoreOutcome.RESTORED, data_changed=True)

        return self.controller.run_cycle(extracted, settings, options.kind)

    def _replay(self, dump: PersistedDump, settings: Optional[VisualSettings] = None) -> None:
        self.controller.replay(dump, settings or self.settings)

    def _remember_dump(self, payload: str) -> None:
        self.settings.dump.dump = payload

    async def flush(self) -> None:
        """Wait for scheduled storage writes."""
        await self.persistence.flush()

    def destroy(self) -> None:
        """Detach every listener from the view model."""
        self.controller.unsubscribe()

    def status(self) -> EngineStatus:
        return EngineStatus(
            restore_outcome=self.restorer.outcome,
            restore_complete=self.persistence.restore_complete,
            persistence_state=self.persistence.state.value,
            save_in_progress=self.persistence.save_in_progress,
            suppress_next_update=self.persistence.suppress_next_update,
            active_labels=self.store.active_labels(),
            save_count=self.persistence.save_count,
        )
