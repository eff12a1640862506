from __future__ import annotations
from rich.text import Text
from textual.widgets import DataTable, Static

def build(app, pane):
    app.mount_topcard(pane, "Update", "Pending upgrades from the repositories and the AUR", "Enter Review & upgrade · u Check again")
    pane.mount(Static("", id="update_note", classes="infobox"))
    tbl = DataTable(id="update_tbl")
    tbl.can_focus = False
    app.safe_cursor_row(tbl)
    tbl.add_columns("Src", "Package", "Version")
    pane.mount(tbl)

def refresh(app, model):
    theme = app.ui_theme
    note = app.query_one("#update_note", Static)
    if model.loading and not model.updates:
        note.update(Text("Checking for updates...", style=theme.subtle))
    elif model.updates:
        note.update(Text(f"{len(model.updates)} update(s) available", style=f"bold {theme.update}"))
    else:
        note.update(Text(model.update_note or "Press [u] to check for updates", style=theme.success))

    tbl = app.query_one("#update_tbl", DataTable)
    tbl.clear()
    for r in model.updates:
        tbl.add_row(Text(r.source, style=theme.source_color(r.source) or theme.subtle), r.name, r.version, key=r.name)
