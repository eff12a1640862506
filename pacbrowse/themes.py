from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

@dataclass(frozen=True)
class Theme:
    name: str
    border: str
    selected: str
    text: str
    subtle: str
    title: str
    install: str
    info: str
    remove: str
    update: str
    core: str
    extra: str
    multilib: str
    aur: str
    success: str
    warning: str
    error: str
    highlight: str
    dash_label: str
    dash_value: str
    dash_warning: str
    dash_desc: str

    def mode_color(self, mode: str) -> str:
        return {"install": self.install, "info": self.info, "remove": self.remove, "update": self.update}.get(mode, self.border)

    def source_color(self, source: str) -> Optional[str]:
        return {"core": self.core, "extra": self.extra, "multilib": self.multilib, "aur": self.aur}.get(source)

def _c(n: int) -> str:
    return f"color({n})"

BASIC = Theme(
    name="Basic",
    border=_c(62), selected=_c(170), text=_c(252), subtle=_c(241), title=_c(229),
    install=_c(39), info=_c(213), remove=_c(196), update=_c(46),
    core=_c(46), extra=_c(39), multilib=_c(214), aur=_c(201),
    success=_c(46), warning=_c(226), error=_c(196), highlight=_c(226),
    dash_label=_c(252), dash_value=_c(39), dash_warning=_c(196), dash_desc=_c(241),
)

CATPPUCCIN_MOCHA = Theme(
    name="Catppuccin Mocha",
    border="#6c7086", selected="#cba6f7", text="#cdd6f4", subtle="#6c7086", title="#f9e2af",
    install="#89b4fa", info="#f5c2e7", remove="#f38ba8", update="#a6e3a1",
    core="#a6e3a1", extra="#89b4fa", multilib="#fab387", aur="#cba6f7",
    success="#a6e3a1", warning="#f9e2af", error="#f38ba8", highlight="#f9e2af",
    dash_label="#cdd6f4", dash_value="#89dceb", dash_warning="#f38ba8", dash_desc="#a6adc8",
)

THEMES: Dict[str, Theme] = {t.name: t for t in (BASIC, CATPPUCCIN_MOCHA)}

DEFAULT_THEME = CATPPUCCIN_MOCHA

def _variants(name: str) -> List[str]:
    low = name.lower()
    return [low, low.replace(" ", "-"), low.replace(" ", "")]

def theme_by_name(name: str) -> Optional[Theme]:
    """Case-insensitive lookup; "Catppuccin Mocha", "catppuccin-mocha" and "catppuccinmocha" all match."""
    wanted = name.strip().lower()
    for t in THEMES.values():
        if wanted in _variants(t.name):
            return t
    return None

def list_themes() -> List[str]:
    return sorted(THEMES)
