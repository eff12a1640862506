from __future__ import annotations
from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, List

@dataclass(frozen=True)
class Selection:
    """Marked package names. Keyed by name so marks survive list refreshes."""
    names: FrozenSet[str] = frozenset()

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def mark(self, name: str) -> "Selection":
        return Selection(self.names | {name})

    def unmark(self, name: str) -> "Selection":
        return Selection(self.names - {name})

    def toggle(self, name: str) -> "Selection":
        return self.unmark(name) if name in self.names else self.mark(name)

    def clear(self) -> "Selection":
        return Selection()

    def sorted(self) -> List[str]:
        return sorted(self.names)

    def bulk_targets(self, exclude: AbstractSet[str] = frozenset()) -> List[str]:
        return [n for n in self.sorted() if n not in exclude]

@dataclass(frozen=True)
class PanelState:
    """Keyboard focus inside the marked-packages panel."""
    focused: bool = False
    index: int = 0

def panel_max_index(selection: Selection, panel_max: int) -> int:
    return max(0, min(len(selection), panel_max) - 1)
