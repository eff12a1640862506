"""
The control loop's transition function.

``update(model, event)`` returns the next model plus the requests the host
must perform. It never touches processes, timers or the terminal itself, so
every completion (success or failure) is an ordinary event handled here.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type

from .events import (
    ActionDone,
    DashboardLoaded,
    DetailLoaded,
    DetailTick,
    IndexLoaded,
    InstalledLoaded,
    KeyPress,
    RemoteSearchDone,
    UpdatesChecked,
)
from .filters import (
    apply_installed_filter,
    format_installed_filters,
    format_repo_filters,
    includes_aur,
    parse_installed_filter,
    parse_repo_filter,
)
from .modal_state import (
    CANCEL_KEYS,
    CONFIRM_KEYS,
    DISMISS_KEYS,
    SCROLL_DOWN_KEYS,
    SCROLL_UP_KEYS,
    Confirmation,
    ErrorOverlay,
    action_failure_overlay,
)
from .models import ACTION_TITLES, ActionKind, ViewMode
from .ranking import merge
from .requests import (
    CheckUpdates,
    LoadDashboard,
    LoadIndex,
    LoadInstalled,
    Quit,
    RunAction,
)
from .scheduler import (
    clear_detail,
    detail_arrived,
    detail_due,
    issue_search,
    reset_search,
    schedule_detail,
    search_arrived,
    wants_search,
)
from .selection import PanelState, panel_max_index
from .state import Model

logger = logging.getLogger(__name__)

Requests = List[object]
Result = Tuple[Model, Requests]

INSTALL_HINT = "c: e: m: a:"
REMOVE_HINT = "t: total  e: explicit  f: foreign  o: orphan"
PANEL_HELP = "Selection panel: [up/down] navigate  [tab] deselect  [enter] confirm  [*] close"

def initial_requests(model: Model) -> Requests:
    return [LoadIndex()]

def update(model: Model, event: object) -> Result:
    handler = HANDLERS.get(type(event))
    if handler is None:
        logger.debug("Ignoring unknown event %r", event)
        return model, []
    return handler(model, event)

# ---------- helpers ----------

def _with_status(m: Model, status: str) -> Model:
    if m.last_completed:
        status = f"{m.last_completed} | {status}"
    return replace(m, status=status)

def _marked_status(m: Model) -> str:
    return f"{len(m.selection)} packages marked"

def _parser(mode: ViewMode):
    return parse_installed_filter if mode == ViewMode.REMOVE else parse_repo_filter

def _schedule(m: Model, name: str) -> Result:
    if m.listing_failed:
        return replace(m, detail=clear_detail(m.detail)), []
    detail, req = schedule_detail(m.detail, name, m.settings.detail_debounce)
    return replace(m, detail=detail), [req]

def _select(m: Model, index: int) -> Result:
    m = replace(m, cursor=index)
    cur = m.current
    if cur is None:
        return replace(m, detail=clear_detail(m.detail)), []
    return _schedule(m, cur.name)

def _refresh_detail(m: Model) -> Result:
    """Schedule a fetch for the cursor item unless it is already shown or on its way."""
    cur = m.current
    if cur is None:
        return replace(m, detail=clear_detail(m.detail)), []
    d = m.detail
    if cur.name in (d.shown, d.pending, d.target):
        return m, []
    return _schedule(m, cur.name)

def _open_confirmation(m: Model, kind: ActionKind, targets: Sequence[str], lines: Sequence[str] = ()) -> Model:
    if m.action is not None:
        return replace(m, status=f"{ACTION_TITLES[m.action]} still running")
    status = {
        ActionKind.INSTALL: "Confirm installation",
        ActionKind.UNINSTALL: "Confirm removal",
        ActionKind.UPDATE: "Confirm system update",
        ActionKind.CLEAN_CACHE: "Confirm cache cleaning",
        ActionKind.REMOVE_ORPHANS: "Confirm orphan removal",
    }[kind]
    modal = Confirmation(kind=kind, targets=tuple(targets), lines=tuple(lines))
    return replace(m, modal=modal, input_focused=False, panel=PanelState(), status=status)

def _refresh_request(kind: ActionKind) -> object:
    if kind in (ActionKind.INSTALL, ActionKind.UPDATE):
        return LoadIndex()
    if kind == ActionKind.UNINSTALL:
        return LoadInstalled()
    return LoadDashboard()

# ---------- list filtering ----------

def _install_active(m: Model) -> bool:
    return len(m.query.text) >= m.settings.min_query_len or bool(m.query.filters)

def _install_status(m: Model) -> str:
    q = m.query
    n = len(m.ranked)
    if n:
        status = f"Found {n} packages"
        if q.filters:
            status = f"Found {n} {format_repo_filters(q.filters)} packages"
        if m.search.searching:
            status += " (searching AUR...)"
        return status
    if m.search.searching:
        return "Searching AUR..."
    if q.filters and not q.text:
        return f"No packages in {format_repo_filters(q.filters)}"
    return f"No matches for '{q.raw}'"

def _install_idle_status(m: Model) -> str:
    if m.index_pool:
        return f"Type at least {m.settings.min_query_len} chars or use a prefix ({INSTALL_HINT}) to filter ({len(m.index_pool)} repo packages)"
    return "Loading package database..." if m.loading else "No package database loaded - press [ctrl+r] to retry"

def _refilter_install(m: Model, keep_selection: bool = False) -> Result:
    if not _install_active(m):
        m = replace(
            m,
            ranked=(),
            cursor=0,
            search=reset_search(),
            detail=clear_detail(m.detail),
            status=_install_idle_status(m),
        )
        return m, []

    reqs: Requests = []
    q = m.query
    if includes_aur(q.filters) and not m.listing_failed and wants_search(m.search, q.text, m.settings.min_query_len):
        search, req = issue_search(m.search, q.text, q.generation)
        m = replace(m, search=search)
        reqs.append(req)

    prev = m.current.name if keep_selection and m.cursor > 0 and m.current else None
    ranked = merge(m.index_pool + m.search.results, q.filters, q.text)
    cursor = 0
    if prev is not None:
        cursor = next((i for i, r in enumerate(ranked) if r.name == prev), 0)
    m = replace(m, ranked=ranked, cursor=cursor)
    m = replace(m, status=_install_status(m))
    m, more = _refresh_detail(m)
    return m, reqs + more

def _refilter_remove(m: Model) -> Result:
    q = m.query
    base = apply_installed_filter(m.installed_pool, q.filters)
    ranked = merge(base, frozenset(), q.text)
    m = replace(m, ranked=ranked, cursor=0)
    if q.filters:
        status = f"Found {len(ranked)} {format_installed_filters(q.filters)} packages"
    elif q.text:
        status = f"Showing {len(ranked)} of {len(m.installed_pool)} packages"
    else:
        status = f"{len(ranked)} packages - Press [/] to filter"
    return _refresh_detail(replace(m, status=status))

def _edit_query(m: Model, raw: str) -> Result:
    if len(raw) > m.settings.query_char_limit:
        return m, []
    query = m.query.edited(raw, _parser(m.mode))
    if query is m.query:
        return m, []
    m = replace(m, query=query)
    if m.mode == ViewMode.INSTALL:
        return _refilter_install(m)
    if m.mode == ViewMode.REMOVE:
        return _refilter_remove(m)
    return m, []

# ---------- selection ----------

def _toggle_mark(m: Model) -> Result:
    cur = m.current
    if not m.is_list_mode or cur is None:
        return m, []
    m = replace(m, selection=m.selection.toggle(cur.name))
    if m.selection:
        return replace(m, status=_marked_status(m)), []
    if m.mode == ViewMode.INSTALL:
        return replace(m, status=f"Found {len(m.ranked)} packages"), []
    return replace(m, status=f"{len(m.installed_pool)} installed packages"), []

def _confirm_bulk(m: Model) -> Result:
    if not m.selection:
        return m, []
    if m.mode == ViewMode.INSTALL:
        installed = m.installed_names | {r.name for r in m.search.results if r.installed}
        installed |= {rp.name for rp in m.ranked if rp.record.installed}
        targets = m.selection.bulk_targets(exclude=installed)
        if not targets:
            return replace(m, status="All marked packages are already installed"), []
        return _open_confirmation(m, ActionKind.INSTALL, targets), []
    if m.mode == ViewMode.REMOVE:
        return _open_confirmation(m, ActionKind.UNINSTALL, m.selection.sorted()), []
    return m, []

def _toggle_panel(m: Model) -> Result:
    if not m.selection:
        return m, []
    if m.panel.focused:
        return replace(m, panel=PanelState(), status=_marked_status(m)), []
    return replace(m, panel=PanelState(focused=True, index=0), input_focused=False, status=PANEL_HELP), []

def _panel_key(m: Model, key: str) -> Result:
    names = m.selection.sorted()
    top = panel_max_index(m.selection, m.settings.panel_max)
    idx = m.panel.index
    if key == "escape":
        return replace(m, panel=PanelState(), status=_marked_status(m)), []
    if key in ("up", "k"):
        return replace(m, panel=PanelState(True, max(0, idx - 1))), []
    if key in ("down", "j"):
        return replace(m, panel=PanelState(True, min(top, idx + 1))), []
    if key == "tab":
        if idx >= len(names):
            return m, []
        selection = m.selection.unmark(names[idx])
        if not selection:
            return replace(m, selection=selection, panel=PanelState(), status="All selections cleared"), []
        if idx >= len(selection) and idx > 0:
            idx -= 1
        m = replace(m, selection=selection, panel=PanelState(True, idx))
        return replace(m, status=f"{len(selection)} packages marked - [tab] to deselect"), []
    if key == "enter":
        return _confirm_bulk(replace(m, panel=PanelState()))
    return m, []

# ---------- modals ----------

def _modal_key(m: Model, key: str) -> Result:
    modal = m.modal
    if isinstance(modal, ErrorOverlay):
        if key in DISMISS_KEYS:
            return replace(m, modal=None), []
        return m, []
    if not isinstance(modal, Confirmation):
        return m, []
    window = m.settings.confirm_window
    if key in CONFIRM_KEYS:
        return _run_confirmed(m, modal)
    if key in CANCEL_KEYS:
        return replace(m, modal=None, status="Operation cancelled"), []
    if key in SCROLL_DOWN_KEYS:
        return replace(m, modal=modal.scrolled(1, window)), []
    if key in SCROLL_UP_KEYS:
        return replace(m, modal=modal.scrolled(-1, window)), []
    return m, []

def _run_confirmed(m: Model, c: Confirmation) -> Result:
    n = len(c.targets)
    status = {
        ActionKind.INSTALL: f"Installing {n} package(s)...",
        ActionKind.UNINSTALL: f"Removing {n} package(s)...",
        ActionKind.UPDATE: "Running system update...",
        ActionKind.CLEAN_CACHE: "Cleaning package cache...",
        ActionKind.REMOVE_ORPHANS: f"Removing {n} orphan package(s)...",
    }[c.kind]
    m = replace(m, modal=None, selection=m.selection.clear(), panel=PanelState(), action=c.kind, status=status)
    return m, [RunAction(kind=c.kind, targets=c.targets)]

# ---------- keys ----------

def _move(m: Model, delta: int) -> Result:
    if not m.is_list_mode or not m.ranked:
        return m, []
    index = min(max(0, m.cursor + delta), len(m.ranked) - 1)
    if index == m.cursor:
        return m, []
    return _select(m, index)

def _enter(m: Model) -> Result:
    cur = m.current
    if m.mode == ViewMode.INSTALL and cur is not None:
        if m.selection:
            return _confirm_bulk(m)
        if cur.record.installed or cur.name in m.installed_names:
            return replace(m, status=f"{cur.name} is already installed"), []
        return _open_confirmation(m, ActionKind.INSTALL, [cur.name]), []
    if m.mode == ViewMode.REMOVE and cur is not None:
        if m.selection:
            return _confirm_bulk(m)
        return _open_confirmation(m, ActionKind.UNINSTALL, [cur.name]), []
    if m.mode == ViewMode.UPDATE and m.updates:
        return _open_update_confirmation(m), []
    return m, []

def _open_update_confirmation(m: Model) -> Model:
    names = [r.name for r in m.updates]
    lines = [f"{r.name} {r.version}".strip() for r in m.updates]
    return _open_confirmation(m, ActionKind.UPDATE, names, lines)

def _switch_to_remove(m: Model, prefill: str, status: str) -> Result:
    query = m.query.edited(prefill, parse_installed_filter)
    m = replace(
        m,
        mode=ViewMode.REMOVE,
        query=query,
        input_focused=False,
        ranked=(),
        cursor=0,
        detail=clear_detail(m.detail),
        loading=True,
        status=status,
    )
    return m, [LoadInstalled()]

def _switch_mode(m: Model, key: str) -> Optional[Result]:
    if key == "i" and m.mode != ViewMode.INSTALL:
        query = m.query.edited("", parse_repo_filter)
        m = replace(
            m,
            mode=ViewMode.INSTALL,
            query=query,
            ranked=(),
            cursor=0,
            search=reset_search(),
            detail=clear_detail(m.detail),
            status="Press [/] to search packages",
        )
        return m, []
    if key == "n" and m.mode != ViewMode.INFO:
        m = replace(m, mode=ViewMode.INFO, ranked=(), cursor=0, detail=clear_detail(m.detail), loading=True,
                    status="Loading system statistics...")
        return m, [LoadDashboard()]
    if key == "r" and m.mode != ViewMode.REMOVE:
        return _switch_to_remove(m, "", "Loading installed packages...")
    if key == "u":
        m = replace(m, mode=ViewMode.UPDATE, ranked=(), cursor=0, detail=clear_detail(m.detail), loading=True,
                    updates=(), update_note="", status="Checking for updates...")
        return m, [CheckUpdates()]
    return None

_DASHBOARD_FILTERS = {
    "t": "Loading all packages...",
    "e": "Loading explicit packages...",
    "f": "Loading foreign packages...",
    "o": "Loading orphan packages...",
}

def _dashboard_key(m: Model, key: str) -> Optional[Result]:
    if m.mode != ViewMode.INFO or m.loading:
        return None
    if key == "c":
        return _open_confirmation(m, ActionKind.CLEAN_CACHE, []), []
    if key == "R":
        orphans = m.dashboard.orphan_names if m.dashboard else ()
        if not orphans:
            return replace(m, status="No orphans to remove"), []
        return _open_confirmation(m, ActionKind.REMOVE_ORPHANS, orphans), []
    if key in _DASHBOARD_FILTERS:
        return _switch_to_remove(m, f"{key}:", _DASHBOARD_FILTERS[key])
    return None

def _manual_refresh(m: Model) -> Result:
    m = replace(m, listing_failed=False, loading=True)
    if m.mode == ViewMode.INSTALL:
        return replace(m, status="Reloading package database..."), [LoadIndex()]
    if m.mode == ViewMode.REMOVE:
        return replace(m, status="Reloading installed packages..."), [LoadInstalled()]
    if m.mode == ViewMode.INFO:
        return replace(m, status="Reloading system statistics..."), [LoadDashboard()]
    return replace(m, updates=(), status="Checking for updates..."), [CheckUpdates()]

def _focus_input(m: Model) -> Result:
    if not m.is_list_mode:
        return m, []
    m = replace(m, input_focused=True)
    if m.query.raw:
        return m, []
    if m.mode == ViewMode.INSTALL and m.index_pool:
        return replace(m, status=_install_idle_status(m)), []
    if m.mode == ViewMode.REMOVE and m.installed_pool:
        return replace(m, status=f"Filter: {REMOVE_HINT} ({len(m.installed_pool)} installed)"), []
    return m, []

def _input_key(m: Model, key: str) -> Result:
    if key == "escape":
        return replace(m, input_focused=False), []
    if key == "up":
        return _move(m, -1)
    if key == "down":
        return _move(m, 1)
    if key == "enter":
        return _enter(m)
    if key == "tab":
        return _toggle_mark(m)
    if key == "backspace":
        return _edit_query(m, m.query.raw[:-1])
    if len(key) == 1 and key.isprintable():
        return _edit_query(m, m.query.raw + key)
    return m, []

def _browse_key(m: Model, key: str) -> Result:
    if key == "q":
        return m, [Quit()]
    if key == "escape":
        if m.selection:
            return replace(m, selection=m.selection.clear(), status="Selections cleared"), []
        return m, []
    if key == "/":
        return _focus_input(m)
    dash = _dashboard_key(m, key)
    if dash is not None:
        return dash
    switched = _switch_mode(m, key)
    if switched is not None:
        return switched
    if key in ("up", "k"):
        return _move(m, -1)
    if key in ("down", "j"):
        return _move(m, 1)
    if key == "enter":
        return _enter(m)
    if key == "tab":
        return _toggle_mark(m)
    return m, []

def on_key(m: Model, ev: KeyPress) -> Result:
    key = ev.key
    if not key:
        return m, []
    if key == "ctrl+c":
        return m, [Quit()]
    if m.modal is not None:
        return _modal_key(m, key)
    if key == "ctrl+r":
        return _manual_refresh(m)
    if key == "*":
        return _toggle_panel(m)
    if m.panel.focused:
        return _panel_key(m, key)
    if m.input_focused:
        return _input_key(m, key)
    return _browse_key(m, key)

# ---------- completions ----------

def on_index_loaded(m: Model, msg: IndexLoaded) -> Result:
    m = replace(m, loading=False)
    if msg.error is not None:
        return replace(m, listing_failed=True, status=f"Failed to load packages: {msg.error}"), []
    installed = frozenset(r.name for r in msg.records if r.installed)
    m = replace(m, index_pool=tuple(msg.records), installed_names=installed, listing_failed=False)
    if m.mode == ViewMode.INSTALL and _install_active(m):
        m, reqs = _refilter_install(m)
        return _with_status(m, m.status), reqs
    if m.last_completed:
        return replace(m, status=m.last_completed), []
    if m.mode == ViewMode.INSTALL:
        return replace(m, status=f"Loaded {len(m.index_pool)} repo packages - press [/] to search"), []
    return m, []

def on_installed_loaded(m: Model, msg: InstalledLoaded) -> Result:
    m = replace(m, loading=False)
    if msg.error is not None:
        return replace(m, listing_failed=True, status=f"Error loading packages: {msg.error}"), []
    names = frozenset(r.name for r in msg.records)
    index_pool = tuple(replace(r, installed=r.name in names) if r.installed != (r.name in names) else r for r in m.index_pool)
    m = replace(m, installed_pool=tuple(msg.records), installed_names=names, index_pool=index_pool, listing_failed=False)
    if m.mode == ViewMode.REMOVE:
        m, reqs = _refilter_remove(m)
        return _with_status(m, m.status), reqs
    return m, []

def on_search_done(m: Model, msg: RemoteSearchDone) -> Result:
    search, applied = search_arrived(m.search, msg, m.query.text)
    m = replace(m, search=search)
    if not applied:
        logger.debug("Discarding remote results for %r (generation %d)", msg.query, msg.generation)
        return m, []
    if msg.error is not None:
        logger.info("Remote search for %r failed: %s", msg.query, msg.error)
    if m.mode != ViewMode.INSTALL or not _install_active(m):
        return m, []
    m, reqs = _refilter_install(m, keep_selection=True)
    if m.ranked:
        m = replace(m, status=f"Found {len(m.ranked)} packages ({len(m.search.results)} from AUR)")
    return m, reqs

def on_detail_tick(m: Model, msg: DetailTick) -> Result:
    detail, req = detail_due(m.detail, msg)
    if req is None:
        return m, []
    if not any(r.name == req.name for r in m.ranked):
        return replace(m, detail=clear_detail(detail)), []
    return replace(m, detail=detail), [req]

def on_detail_loaded(m: Model, msg: DetailLoaded) -> Result:
    detail, applied = detail_arrived(m.detail, msg)
    if not applied:
        logger.debug("Discarding stale detail for %s", msg.name)
        return m, []
    return replace(m, detail=detail), []

def on_dashboard_loaded(m: Model, msg: DashboardLoaded) -> Result:
    m = replace(m, loading=False)
    if msg.error is not None or msg.stats is None:
        return replace(m, status=f"Error loading dashboard: {msg.error}"), []
    return replace(m, dashboard=msg.stats, status=m.last_completed or "Dashboard loaded"), []

def on_updates_checked(m: Model, msg: UpdatesChecked) -> Result:
    m = replace(m, loading=False)
    if msg.error is not None:
        return replace(m, status=f"Error checking updates: {msg.error}"), []
    if not msg.records:
        return replace(m, updates=(), status="System is up to date!", update_note="No updates available."), []
    m = replace(m, updates=tuple(msg.records), update_note="")
    if m.mode != ViewMode.UPDATE or m.modal is not None:
        return m, []
    m = _open_update_confirmation(m)
    if m.modal is None:
        return m, []
    return replace(m, status=f"{len(m.updates)} update(s) available"), []

def _completed_text(msg: ActionDone) -> str:
    n = len(msg.targets)
    if msg.kind == ActionKind.INSTALL:
        return f"Installed: {msg.targets[0]}" if n == 1 else f"Installed {n} packages"
    if msg.kind == ActionKind.UNINSTALL:
        return f"Removed: {msg.targets[0]}" if n == 1 else f"Removed {n} packages"
    if msg.kind == ActionKind.REMOVE_ORPHANS:
        return f"Removed orphan: {msg.targets[0]}" if n == 1 else f"Removed {n} orphan packages"
    if msg.kind == ActionKind.UPDATE:
        return "System update completed"
    return "Cache cleaned successfully"

def on_action_done(m: Model, msg: ActionDone) -> Result:
    refresh = _refresh_request(msg.kind)
    m = replace(m, action=None, loading=True)
    if msg.error is not None or msg.exit_code is not None:
        overlay = action_failure_overlay(msg.kind, msg.error or "", msg.exit_code)
        modal = overlay if m.modal is None else m.modal
        m = replace(m, modal=modal, last_completed="", status=f"{ACTION_TITLES[msg.kind]} failed")
        return m, [refresh]
    text = _completed_text(msg)
    if msg.kind == ActionKind.UPDATE:
        m = replace(m, updates=())
    return replace(m, last_completed=text, status=text), [refresh]

HANDLERS: Dict[Type, Callable[[Model, object], Result]] = {
    KeyPress: on_key,
    IndexLoaded: on_index_loaded,
    InstalledLoaded: on_installed_loaded,
    RemoteSearchDone: on_search_done,
    DetailTick: on_detail_tick,
    DetailLoaded: on_detail_loaded,
    DashboardLoaded: on_dashboard_loaded,
    UpdatesChecked: on_updates_checked,
    ActionDone: on_action_done,
}
