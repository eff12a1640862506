"""
Side effects the dispatcher asks the host to perform. The dispatcher only
returns these; the Textual app executes them.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from .models import ActionKind

@dataclass(frozen=True)
class LoadIndex:
    pass

@dataclass(frozen=True)
class LoadInstalled:
    pass

@dataclass(frozen=True)
class SearchRemote:
    query: str
    generation: int

@dataclass(frozen=True)
class ScheduleDetail:
    name: str
    ticket: int
    delay: float

@dataclass(frozen=True)
class FetchDetail:
    name: str

@dataclass(frozen=True)
class LoadDashboard:
    pass

@dataclass(frozen=True)
class CheckUpdates:
    pass

@dataclass(frozen=True)
class RunAction:
    kind: ActionKind
    targets: Tuple[str, ...] = ()

@dataclass(frozen=True)
class Quit:
    pass
