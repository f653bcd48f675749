"""Public result models for ranksync package."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ranksync.codes import RestoreOutcome


class CycleReport(BaseModel):
    """What one invocation of the update entry point did."""
    skipped: bool = False
    skip_reason: Optional[str] = None  # "no_table" | "save_echo"
    restored: bool = False  # Cycle was consumed by a deferred restore
    data_changed: bool = False
    provider_action: Optional[Literal["rebuilt", "patched", "unchanged"]] = None
    view_action: Optional[Literal["created", "reattached", "refreshed"]] = None
    reconcile_mode: Optional[Literal["grow", "shrink"]] = None
    added_labels: List[str] = Field(default_factory=list)
    removed_labels: List[str] = Field(default_factory=list)
    save_requested: bool = False


class EngineStatus(BaseModel):
    """Snapshot of the engine's guards and remembered columns."""
    restore_outcome: Optional[RestoreOutcome] = None
    restore_complete: bool
    persistence_state: str
    save_in_progress: bool
    suppress_next_update: bool
    active_labels: List[str]
    save_count: int
