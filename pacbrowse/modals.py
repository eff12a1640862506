from __future__ import annotations
from typing import List

from rich.markup import escape
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from .events import KeyPress, key_from_event
from .modal_state import Confirmation, ErrorOverlay
from .models import ACTION_TITLES, ActionKind
from .themes import Theme

_PROMPTS = {
    ActionKind.INSTALL: "The following packages will be installed:",
    ActionKind.UNINSTALL: "The following packages will be removed (with unneeded dependencies):",
    ActionKind.UPDATE: "The following packages will be upgraded:",
    ActionKind.REMOVE_ORPHANS: "The following orphan packages will be removed:",
}

def confirmation_text(c: Confirmation, window: int, theme: Theme) -> str:
    if c.kind == ActionKind.CLEAN_CACHE:
        return (
            f"[b {theme.title}]Clean Package Cache?[/]\n\n"
            "Removes cached package files that are no longer installed.\n\n"
            f"[{theme.subtle}][y/enter] confirm   [n/esc] cancel[/]"
        )
    rows = c.rows
    lines: List[str] = [
        f"[b {theme.title}]Confirm {ACTION_TITLES[c.kind]}[/]",
        "",
        _PROMPTS[c.kind],
        "",
    ]
    shown = rows[c.scroll:c.scroll + window]
    for r in shown:
        lines.append(f"  [{theme.selected}]*[/] {escape(r)}")
    hidden_above = c.scroll
    hidden_below = len(rows) - c.scroll - len(shown)
    if hidden_above or hidden_below:
        lines.append(f"[{theme.subtle}]  ({hidden_above} above, {hidden_below} below - [up/down] scroll)[/]")
    lines.append("")
    lines.append(f"Total: {len(rows)} package(s)")
    lines.append(f"[{theme.subtle}][y/enter] confirm   [n/esc] cancel[/]")
    return "\n".join(lines)

def error_text(e: ErrorOverlay, theme: Theme) -> str:
    lines = [f"[b {theme.error}]{escape(e.title)}[/]", "", escape(e.message)]
    if e.detail:
        lines += ["", f"[{theme.subtle}]{escape(e.detail)}[/]"]
    lines += ["", f"[{theme.subtle}][esc/enter/q] dismiss[/]"]
    return "\n".join(lines)

class _ModelModal(ModalScreen[None]):
    """Shows one overlay of the model; every key goes back to the dispatcher."""

    def __init__(self, body: str):
        super().__init__()
        self._body = body

    def compose(self) -> ComposeResult:
        yield Container(Static(self._body, id="modal_body"), id="modal")

    def show(self, body: str) -> None:
        self._body = body
        try:
            self.query_one("#modal_body", Static).update(body)
        except Exception:
            pass

    def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        self.app.deliver(KeyPress(key_from_event(event.key, event.character)))

class ConfirmModal(_ModelModal):
    pass

class ErrorModal(_ModelModal):
    pass
