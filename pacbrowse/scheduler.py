"""
Staleness guards for the two query classes that race with the user: the
debounced per-package detail fetch and the remote (AUR) search.

Nothing here cancels work. Old requests run to completion and their answers
are compared against the current state on arrival.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Callable, FrozenSet, Optional, Tuple

from .events import DetailLoaded, DetailTick, RemoteSearchDone
from .models import PackageRecord
from .requests import FetchDetail, ScheduleDetail, SearchRemote

DETAIL_PLACEHOLDER = "Failed to load package info"

@dataclass(frozen=True)
class QuerySession:
    raw: str = ""
    filters: FrozenSet[str] = frozenset()
    text: str = ""
    generation: int = 0

    def edited(self, raw: str, parser: Callable[[str], Tuple[FrozenSet[str], str]]) -> "QuerySession":
        if raw == self.raw:
            return self
        filters, text = parser(raw)
        return QuerySession(raw=raw, filters=filters, text=text, generation=self.generation + 1)

# ---------- detail fetch ----------

@dataclass(frozen=True)
class DetailState:
    pending: Optional[str] = None  # waiting for the quiet window to pass
    ticket: int = 0
    target: Optional[str] = None  # fetch issued, answer not yet applied
    shown: Optional[str] = None  # package the text belongs to
    text: str = ""
    loading: bool = False

def schedule_detail(state: DetailState, name: str, delay: float) -> Tuple[DetailState, ScheduleDetail]:
    ticket = state.ticket + 1
    new = replace(state, pending=name, ticket=ticket, target=None, loading=True)
    return new, ScheduleDetail(name=name, ticket=ticket, delay=delay)

def detail_due(state: DetailState, tick: DetailTick) -> Tuple[DetailState, Optional[FetchDetail]]:
    if tick.ticket != state.ticket or tick.name != state.pending:
        return state, None
    return replace(state, pending=None, target=tick.name), FetchDetail(tick.name)

def detail_arrived(state: DetailState, msg: DetailLoaded) -> Tuple[DetailState, bool]:
    if state.pending is not None or msg.name != state.target:
        return state, False
    text = DETAIL_PLACEHOLDER if msg.error is not None else msg.text
    return replace(state, target=None, shown=msg.name, text=text, loading=False), True

def clear_detail(state: DetailState) -> DetailState:
    return replace(state, pending=None, target=None, shown=None, text="", loading=False)

# ---------- remote search ----------

@dataclass(frozen=True)
class SearchState:
    last_query: str = ""  # one-entry cache: text of the last issued search
    last_generation: int = 0
    searching: bool = False
    results: Tuple[PackageRecord, ...] = ()
    results_query: str = ""
    results_generation: int = 0
    exact: bool = False

def extends(live: str, older: str) -> bool:
    return live.lower().startswith(older.lower())

def wants_search(state: SearchState, text: str, min_len: int) -> bool:
    return len(text) >= min_len and text != state.last_query

def issue_search(state: SearchState, text: str, generation: int) -> Tuple[SearchState, SearchRemote]:
    results, results_query = state.results, state.results_query
    if results and not extends(text, results_query):
        results, results_query = (), ""
    new = replace(
        state,
        last_query=text,
        last_generation=generation,
        searching=True,
        results=results,
        results_query=results_query,
        exact=False,
    )
    return new, SearchRemote(query=text, generation=generation)

def search_arrived(state: SearchState, msg: RemoteSearchDone, live_text: str) -> Tuple[SearchState, bool]:
    """
    Exact answers (to the last issued search) always replace what is shown.
    An answer for a shorter prefix of the live text only fills an empty pool.
    """
    if msg.generation < state.results_generation:
        return state, False
    if msg.query == state.last_query and msg.generation == state.last_generation:
        records = () if msg.error is not None else tuple(msg.records)
        return replace(
            state,
            searching=False,
            results=records,
            results_query=msg.query,
            results_generation=msg.generation,
            exact=True,
        ), True
    if msg.error is None and msg.records and not state.results and extends(live_text, msg.query):
        return replace(
            state,
            results=tuple(msg.records),
            results_query=msg.query,
            results_generation=msg.generation,
            exact=False,
        ), True
    return state, False

def reset_search() -> SearchState:
    return SearchState()
