from __future__ import annotations
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from .config import Settings
from .modal_state import Modal
from .models import ActionKind, DashboardStats, PackageRecord, RankedPackage, ViewMode
from .scheduler import DetailState, QuerySession, SearchState
from .selection import PanelState, Selection

LIST_MODES = (ViewMode.INSTALL, ViewMode.REMOVE)

@dataclass(frozen=True)
class Model:
    """Everything the renderer reads. Replaced, never mutated, by the dispatcher."""
    settings: Settings = field(default_factory=Settings)
    mode: ViewMode = ViewMode.INSTALL
    query: QuerySession = field(default_factory=QuerySession)
    input_focused: bool = False

    index_pool: Tuple[PackageRecord, ...] = ()
    installed_pool: Tuple[PackageRecord, ...] = ()
    installed_names: FrozenSet[str] = frozenset()
    ranked: Tuple[RankedPackage, ...] = ()
    cursor: int = 0

    selection: Selection = field(default_factory=Selection)
    panel: PanelState = field(default_factory=PanelState)
    detail: DetailState = field(default_factory=DetailState)
    search: SearchState = field(default_factory=SearchState)
    modal: Modal = None

    dashboard: Optional[DashboardStats] = None
    updates: Tuple[PackageRecord, ...] = ()
    update_note: str = ""

    status: str = "Loading package database..."
    last_completed: str = ""
    loading: bool = True
    listing_failed: bool = False
    action: Optional[ActionKind] = None

    @property
    def current(self) -> Optional[RankedPackage]:
        if 0 <= self.cursor < len(self.ranked):
            return self.ranked[self.cursor]
        return None

    @property
    def is_list_mode(self) -> bool:
        return self.mode in LIST_MODES

def initial_model(settings: Optional[Settings] = None) -> Model:
    return Model(settings=settings or Settings())
