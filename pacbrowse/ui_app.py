from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple

from rich.text import Text
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.events import Key
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Header, Static, TabbedContent, TabPane, Tabs

from .arch import (
    action_argv,
    check_updates,
    dashboard_stats,
    fetch_detail,
    list_index,
    list_installed,
    resolve_helper,
    run_action,
    run_interactive,
    search_remote,
)
from .config import Settings
from .dispatcher import initial_requests, update
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
    key_from_event,
)
from .modal_state import Confirmation, ErrorOverlay
from .modals import ConfirmModal, ErrorModal, confirmation_text, error_text
from .models import ACTION_TITLES, ViewMode
from .requests import (
    CheckUpdates,
    FetchDetail,
    LoadDashboard,
    LoadIndex,
    LoadInstalled,
    Quit,
    RunAction,
    ScheduleDetail,
    SearchRemote,
)
from .state import initial_model
from .themes import Theme
from .tabs import dashboard_tab, packages_tab, update_tab

APP_NAME = "pacbrowse"

logger = logging.getLogger(__name__)

def guarded(fn: Callable[..., Tuple[Any, Optional[str]]], *args: Any) -> Tuple[Any, Optional[str]]:
    """Backend calls return (value, error); an unexpected exception becomes the error."""
    try:
        return fn(*args)
    except Exception as e:
        logger.exception("%s failed", getattr(fn, "__name__", fn))
        return None, f"{type(e).__name__}: {e}"

class PacBrowseApp(App):
    TITLE = APP_NAME
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen { background: $background; }
    Header { background: $panel; }
    Footer { background: $panel; }

    .pkg_row { height: 1fr; }
    .pkg_list { width: 3fr; height: 1fr; }
    .pkg_info { width: 2fr; min-width: 40; height: 1fr; overflow: auto; }

    #dash_row { height: 1fr; }
    #dash_stats { width: 3fr; height: 1fr; }
    #dash_top { width: 2fr; }

    #statusbar { height: auto; border: round $primary; background: $boost; padding: 0 2; margin: 0 1 1 1; }
    #searchbar { height: 3; border: round $surface; background: $panel; padding: 0 1; margin: 0 1; }
    #selection { height: auto; max-height: 14; border: round $secondary; background: $boost; padding: 0 2; margin: 0 1 1 1; }
    #searchbar.focused, #selection.focused { border: round $accent; }

    .topcard { height: auto; border: round $primary; background: $panel; padding: 0 2; margin: 0 1 1 1; }
    .infobox { border: round $primary; background: $boost; padding: 1 2; margin: 0 1 1 1; }

    DataTable { height: 1fr; border: round $surface; background: $panel; margin: 0 1 1 1; }

    #modal { width: 80%; max-width: 120; height: auto; padding: 1 2; border: round $primary; background: $panel; }
    ConfirmModal, ErrorModal { align: center middle; }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True),
        Binding("tab", "press_tab", "Mark", show=False, priority=True),
    ]

    def __init__(self, settings: Settings, theme: Theme):
        super().__init__()
        self.settings = settings
        self.ui_theme = theme
        self.helper = resolve_helper(settings.aur_helper)
        self.model = initial_model(settings)
        self._detail_timer: Optional[Timer] = None
        self._modal_screen: Optional[Any] = None
        # last rendered (ranked, window start, marks, installed) per table
        self.rendered_tables: Dict[str, Tuple] = {}

    # ---------- layout ----------
    def mount_topcard(self, pane: TabPane, title: str, subtitle: str = "", keys: str = "") -> None:
        lines = [f"[b]{title}[/b]"]
        if subtitle:
            lines.append(f"[dim]{subtitle}[/dim]")
        if keys:
            lines.append(f"[dim]{keys}[/dim]")
        pane.mount(Static("\n".join(lines), classes="topcard"))

    @staticmethod
    def safe_cursor_row(tbl: DataTable) -> None:
        try:
            tbl.cursor_type = "row"  # type: ignore[attr-defined]
        except Exception:
            pass

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="statusbar")
        yield Static("", id="searchbar")
        with TabbedContent(id="tabs"):
            yield TabPane("Install [i]", id="tab_install")
            yield TabPane("Info [n]", id="tab_info")
            yield TabPane("Remove [r]", id="tab_remove")
            yield TabPane("Update [u]", id="tab_update")
        yield Static("", id="selection")
        yield Footer()

    def on_mount(self) -> None:
        for tabs in self.query(Tabs):
            tabs.can_focus = False
        packages_tab.build(self, self.query_one("#tab_install", TabPane), ViewMode.INSTALL)
        dashboard_tab.build(self, self.query_one("#tab_info", TabPane))
        packages_tab.build(self, self.query_one("#tab_remove", TabPane), ViewMode.REMOVE)
        update_tab.build(self, self.query_one("#tab_update", TabPane))
        logger.info("pacbrowse started (helper=%s, theme=%s)", self.helper, self.ui_theme.name)
        self.call_after_refresh(self._start)

    def _start(self) -> None:
        self.render_model()
        for req in initial_requests(self.model):
            self.perform(req)

    # ---------- control loop ----------
    def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        self.deliver(KeyPress(key_from_event(event.key, event.character)))

    def action_quit(self) -> None:
        self.deliver(KeyPress("ctrl+c"))

    def action_press_tab(self) -> None:
        self.deliver(KeyPress("tab"))

    def deliver(self, event: object) -> None:
        self.model, requests = update(self.model, event)
        self.sync_modal()
        self.render_model()
        for req in requests:
            self.perform(req)

    def _post(self, msg: object) -> None:
        try:
            self.call_from_thread(self.deliver, msg)
        except RuntimeError:
            logger.debug("App gone, dropping %r", type(msg).__name__)

    def _in_thread(self, name: str, job: Callable[[], object]) -> None:
        def worker() -> None:
            self._post(job())
        threading.Thread(target=worker, name=name, daemon=True).start()

    def perform(self, req: object) -> None:
        logger.debug("request %r", req)
        helper = self.helper
        if isinstance(req, LoadIndex):
            def job():
                records, err = guarded(list_index)
                return IndexLoaded(tuple(records or ()), err)
            self._in_thread("index", job)
        elif isinstance(req, LoadInstalled):
            def job():
                records, err = guarded(list_installed)
                return InstalledLoaded(tuple(records or ()), err)
            self._in_thread("installed", job)
        elif isinstance(req, SearchRemote):
            def job(q=req.query, gen=req.generation):
                records, err = guarded(search_remote, q, helper)
                return RemoteSearchDone(q, gen, tuple(records or ()), err)
            self._in_thread("search", job)
        elif isinstance(req, ScheduleDetail):
            old = self._detail_timer
            if old is not None:
                old.stop()
            self._detail_timer = self.set_timer(req.delay, partial(self.deliver, DetailTick(req.name, req.ticket)))
        elif isinstance(req, FetchDetail):
            def job(name=req.name):
                text, err = guarded(fetch_detail, name, helper)
                return DetailLoaded(name, text or "", err)
            self._in_thread("detail", job)
        elif isinstance(req, LoadDashboard):
            def job():
                stats, err = guarded(dashboard_stats, helper)
                return DashboardLoaded(stats, err)
            self._in_thread("dashboard", job)
        elif isinstance(req, CheckUpdates):
            def job():
                records, err = guarded(check_updates, helper)
                return UpdatesChecked(tuple(records or ()), err)
            self._in_thread("updates", job)
        elif isinstance(req, RunAction):
            if self.settings.interactive_actions:
                self.call_later(self._run_in_terminal, req)
            else:
                self._run_batch(req)
        elif isinstance(req, Quit):
            self.exit()
        else:
            logger.warning("Unhandled request %r", req)

    def _run_batch(self, req: RunAction) -> None:
        def job():
            result = guarded(run_action, req.kind, req.targets, self.helper)
            code, err = result
            return ActionDone(req.kind, req.targets, err, code)
        self._in_thread("action", job)

    def _run_in_terminal(self, req: RunAction) -> None:
        argv = action_argv(req.kind, req.targets, self.helper)
        logger.info("running %s", " ".join(argv))
        try:
            with self.suspend():
                print(f"\n:: {ACTION_TITLES[req.kind]}: {' '.join(argv)}\n", flush=True)
                code, err = run_interactive(argv)
        except SuspendNotSupported:
            logger.info("Terminal suspend not supported, running without a terminal")
            self._run_batch(req)
            return
        self.deliver(ActionDone(req.kind, req.targets, err, code))

    # ---------- rendering ----------
    def sync_modal(self) -> None:
        modal = self.model.modal
        screen = self._modal_screen
        wanted = ConfirmModal if isinstance(modal, Confirmation) else ErrorModal if isinstance(modal, ErrorOverlay) else None
        if screen is not None and (wanted is None or not isinstance(screen, wanted)):
            self._modal_screen = None
            if self.screen is screen:
                self.pop_screen()
            screen = None
        if wanted is None:
            return
        body = self._modal_body(modal)
        if screen is None:
            self._modal_screen = wanted(body)
            self.push_screen(self._modal_screen)
        else:
            screen.show(body)

    def _modal_body(self, modal) -> str:
        if isinstance(modal, Confirmation):
            return confirmation_text(modal, self.settings.confirm_window, self.ui_theme)
        return error_text(modal, self.ui_theme)

    def render_model(self) -> None:
        m = self.model
        theme = self.ui_theme
        try:
            tabs = self.query_one("#tabs", TabbedContent)
        except NoMatches:
            return
        pane_id = f"tab_{m.mode.value}"
        if tabs.active != pane_id:
            tabs.active = pane_id

        status = Text(m.status, style=theme.text)
        if m.action is not None:
            status = Text(f"{ACTION_TITLES[m.action]} running... ", style=theme.warning) + status
        self.query_one("#statusbar", Static).update(status)

        search = self.query_one("#searchbar", Static)
        search.display = m.is_list_mode
        if m.is_list_mode:
            search.update(self._search_text())
            search.set_class(m.input_focused, "focused")

        try:
            if m.mode in (ViewMode.INSTALL, ViewMode.REMOVE):
                packages_tab.refresh(self, m, m.mode)
            elif m.mode == ViewMode.INFO:
                dashboard_tab.refresh(self, m)
            else:
                update_tab.refresh(self, m)
        except NoMatches:
            logger.debug("%s pane not mounted yet", m.mode.value)

        panel = self.query_one("#selection", Static)
        panel.display = bool(m.selection)
        if m.selection:
            panel.update(packages_tab.selection_text(m, theme))
            panel.set_class(m.panel.focused, "focused")

    def _search_text(self) -> Text:
        m = self.model
        theme = self.ui_theme
        out = Text()
        out.append(f" {m.mode.value.upper()} ", style=f"bold reverse {theme.mode_color(m.mode.value)}")
        out.append(" > ", style=theme.subtle)
        if m.query.raw:
            out.append(m.query.raw, style=theme.text)
        elif not m.input_focused:
            hint = "Press / to search" if m.mode == ViewMode.INSTALL else "Press / to filter"
            out.append(hint, style=theme.subtle)
        if m.input_focused:
            out.append("█", style=theme.selected)
        return out
