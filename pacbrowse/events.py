"""
Messages handled by the dispatcher: one key-press event plus one completion
message per kind of backend request. All are immutable.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

from .models import ActionKind, DashboardStats, PackageRecord

NAMED_KEYS = frozenset({"escape", "enter", "tab", "up", "down", "backspace", "ctrl+c", "ctrl+r"})

@dataclass(frozen=True)
class KeyPress:
    key: str  # printable character, or a key name such as "escape", "up", "ctrl+r"

def key_from_event(key: str, character: Optional[str]) -> str:
    """Textual names punctuation ("slash", "asterisk"); the dispatcher wants the character."""
    if key in NAMED_KEYS:
        return key
    if character and len(character) == 1 and character.isprintable():
        return character
    return key

@dataclass(frozen=True)
class IndexLoaded:
    records: Tuple[PackageRecord, ...] = ()
    error: Optional[str] = None

@dataclass(frozen=True)
class InstalledLoaded:
    records: Tuple[PackageRecord, ...] = ()
    error: Optional[str] = None

@dataclass(frozen=True)
class RemoteSearchDone:
    query: str
    generation: int
    records: Tuple[PackageRecord, ...] = ()
    error: Optional[str] = None

@dataclass(frozen=True)
class DetailTick:
    name: str
    ticket: int

@dataclass(frozen=True)
class DetailLoaded:
    name: str
    text: str = ""
    error: Optional[str] = None

@dataclass(frozen=True)
class DashboardLoaded:
    stats: Optional[DashboardStats] = None
    error: Optional[str] = None

@dataclass(frozen=True)
class UpdatesChecked:
    records: Tuple[PackageRecord, ...] = ()
    error: Optional[str] = None

@dataclass(frozen=True)
class ActionDone:
    kind: ActionKind
    targets: Tuple[str, ...] = ()
    error: Optional[str] = None
    exit_code: Optional[int] = None

COMPLETIONS = (
    IndexLoaded,
    InstalledLoaded,
    RemoteSearchDone,
    DetailTick,
    DetailLoaded,
    DashboardLoaded,
    UpdatesChecked,
    ActionDone,
)
