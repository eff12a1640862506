from __future__ import annotations
from rich.text import Text
from textual.containers import Horizontal
from textual.widgets import DataTable, Static

from ..arch import format_bytes

def build(app, pane):
    app.mount_topcard(
        pane,
        "System Info",
        "Installed packages, sizes and caches",
        "c Clean cache · R Remove orphans · t e f o Browse total/explicit/foreign/orphans · ctrl+r Reload",
    )
    row = Horizontal(id="dash_row")
    pane.mount(row)

    stats = Static("", id="dash_stats", classes="infobox")
    top = DataTable(id="dash_top")
    top.can_focus = False
    top.add_columns("Package", "Size")

    row.mount(stats)
    row.mount(top)

def _line(out: Text, theme, label: str, value: str, warn: bool = False, key: str = "") -> None:
    out.append(f"{label:<22}", style=theme.dash_label)
    out.append(value, style=theme.dash_warning if warn else theme.dash_value)
    if key:
        out.append(f"  [{key}]", style=theme.dash_desc)
    out.append("\n")

def refresh(app, model):
    theme = app.ui_theme
    box = app.query_one("#dash_stats", Static)
    top = app.query_one("#dash_top", DataTable)
    s = model.dashboard
    if s is None:
        box.update(Text("Loading system statistics..." if model.loading else "No statistics loaded", style=theme.subtle))
        top.clear()
        return

    out = Text()
    out.append("Packages\n", style=f"bold {theme.title}")
    _line(out, theme, "Total installed", str(s.total), key="t")
    _line(out, theme, "Explicitly installed", str(s.explicit), key="e")
    _line(out, theme, "Foreign (AUR)", str(s.foreign), key="f")
    _line(out, theme, "Orphans", str(s.orphans), warn=s.orphans > 0, key="o")
    if s.missing_from_aur:
        _line(out, theme, "Missing from AUR", str(s.missing_from_aur), warn=True)
    if s.total_size:
        _line(out, theme, "Total size", s.total_size)

    out.append("\nCaches\n", style=f"bold {theme.title}")
    _line(out, theme, "pacman", f"{format_bytes(s.pacman_cache_bytes)}  {s.pacman_cache_path}")
    _line(out, theme, "AUR helper", f"{format_bytes(s.helper_cache_bytes)}  {s.helper_cache_path}")
    _line(out, theme, "Total", format_bytes(s.cache_bytes), key="c")
    box.update(out)

    top.clear()
    for p in s.top_packages:
        top.add_row(p.name, p.size, key=p.name)
