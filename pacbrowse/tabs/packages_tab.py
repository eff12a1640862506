from __future__ import annotations

from rich.text import Text
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Static

from ..models import RankedPackage, ViewMode
from ..selection import panel_max_index

MAX_ROWS = 500

KEYS = {
    ViewMode.INSTALL: "/ Search · Tab Mark · Enter Install · * Marked · c: e: m: a: Repo filter · ctrl+r Reload",
    ViewMode.REMOVE: "/ Filter · Tab Mark · Enter Remove · * Marked · t: e: f: o: Filter · ctrl+r Reload",
}

TITLES = {
    ViewMode.INSTALL: ("Install", "Repositories and AUR, ranked as you type"),
    ViewMode.REMOVE: ("Remove", "Installed packages"),
}

def build(app, pane, mode: ViewMode):
    title, subtitle = TITLES[mode]
    app.mount_topcard(pane, title, subtitle, KEYS[mode])

    row = Horizontal(id=f"{mode.value}_row", classes="pkg_row")
    pane.mount(row)

    tbl = DataTable(id=f"{mode.value}_tbl")
    app.rendered_tables.pop(tbl.id, None)
    tbl.can_focus = False
    app.safe_cursor_row(tbl)
    tbl.add_columns(" ", "Src", "Package", "Version", "Description")

    info = Static("", id=f"{mode.value}_info", classes="infobox pkg_info")

    row.mount(Container(tbl, classes="pkg_list"))
    row.mount(info)

def _window(cursor: int, total: int) -> int:
    if total <= MAX_ROWS:
        return 0
    start = max(0, cursor - MAX_ROWS // 2)
    return min(start, total - MAX_ROWS)

def _name_cell(rp: RankedPackage, theme) -> Text:
    cell = Text(rp.name)
    for i in rp.matches:
        cell.stylize(f"bold {theme.highlight}", i, i + 1)
    return cell

def _source_cell(rp: RankedPackage, theme) -> Text:
    color = theme.source_color(rp.record.source)
    return Text(rp.record.source, style=color or theme.subtle)

def _populate(app, tbl: DataTable, model, start: int) -> None:
    theme = app.ui_theme
    tbl.clear()
    for i, rp in enumerate(model.ranked[start:start + MAX_ROWS]):
        mark = Text("✔", style=theme.selected) if rp.name in model.selection else ""
        version = Text(rp.record.version)
        if model.mode == ViewMode.INSTALL and (rp.record.installed or rp.name in model.installed_names):
            version.append(" [installed]", style=theme.subtle)
        desc = rp.record.description
        if len(desc) > 60:
            desc = desc[:57] + "..."
        tbl.add_row(mark, _source_cell(rp, theme), _name_cell(rp, theme), version, desc, key=f"{start + i}")

def refresh(app, model, mode: ViewMode):
    tbl = app.query_one(f"#{mode.value}_tbl", DataTable)
    start = _window(model.cursor, len(model.ranked))
    stamp = (model.ranked, start, model.selection, model.installed_names)
    last = app.rendered_tables.get(tbl.id)
    if last is None or last[0] is not model.ranked or last[1:] != stamp[1:]:
        _populate(app, tbl, model, start)
        app.rendered_tables[tbl.id] = stamp
    if model.ranked:
        try:
            tbl.move_cursor(row=model.cursor - start, column=0)
        except Exception:
            pass
    _detail(app, model, mode)

def _detail(app, model, mode: ViewMode):
    box = app.query_one(f"#{mode.value}_info", Static)
    theme = app.ui_theme
    cur = model.current
    if cur is None:
        box.update(Text("No package selected", style=theme.subtle))
        return
    body = Text()
    body.append(cur.name, style=f"bold {theme.title}")
    body.append(f"  {cur.record.source}\n\n", style=theme.subtle)
    d = model.detail
    if d.shown == cur.name and d.text:
        body.append(d.text.rstrip())
    elif d.loading:
        body.append("Loading package info...", style=theme.subtle)
    elif cur.record.description:
        body.append(cur.record.description)
    box.update(body)

def selection_text(model, theme) -> Text:
    names = model.selection.sorted()
    limit = model.settings.panel_max
    out = Text()
    out.append(f"Marked ({len(names)})", style=f"bold {theme.title}")
    if model.panel.focused:
        out.append("  [up/down] navigate  [tab] deselect  [enter] confirm  [*] close", style=theme.subtle)
    top = panel_max_index(model.selection, limit)
    for i, name in enumerate(names[:limit]):
        pointer = "> " if model.panel.focused and i == min(model.panel.index, top) else "  "
        style = f"bold {theme.selected}" if pointer.strip() else theme.text
        out.append(f"\n{pointer}{name}", style=style)
    if len(names) > limit:
        out.append(f"\n  ... and {len(names) - limit} more", style=theme.subtle)
    return out