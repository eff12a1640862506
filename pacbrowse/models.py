from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

class ViewMode(Enum):
    INSTALL = "install"
    INFO = "info"
    REMOVE = "remove"
    UPDATE = "update"

class ActionKind(Enum):
    INSTALL = "install"
    UNINSTALL = "uninstall"
    UPDATE = "update"
    CLEAN_CACHE = "clean_cache"
    REMOVE_ORPHANS = "remove_orphans"

ACTION_TITLES = {
    ActionKind.INSTALL: "Installation",
    ActionKind.UNINSTALL: "Removal",
    ActionKind.UPDATE: "System Update",
    ActionKind.CLEAN_CACHE: "Cache Cleaning",
    ActionKind.REMOVE_ORPHANS: "Orphan Removal",
}

@dataclass(frozen=True)
class PackageRecord:
    source: str  # core|extra|multilib|aur|local|repo
    name: str
    version: str = ""
    description: str = ""
    installed: bool = False
    explicit: bool = False
    orphan: bool = False

    def __str__(self) -> str:
        return f"{self.source}/{self.name}"

@dataclass(frozen=True)
class RankedPackage:
    record: PackageRecord
    matches: Tuple[int, ...] = ()  # highlighted indices into record.name

    @property
    def name(self) -> str:
        return self.record.name

@dataclass(frozen=True)
class PackageSize:
    name: str
    size: str

@dataclass(frozen=True)
class DashboardStats:
    total: int = 0
    explicit: int = 0
    foreign: int = 0
    orphans: int = 0
    missing_from_aur: int = 0
    total_size: str = ""
    total_size_bytes: int = 0
    pacman_cache_path: str = ""
    pacman_cache_bytes: int = 0
    helper_cache_path: str = ""
    helper_cache_bytes: int = 0
    top_packages: Tuple[PackageSize, ...] = ()
    orphan_names: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def cache_bytes(self) -> int:
        return self.pacman_cache_bytes + self.helper_cache_bytes
