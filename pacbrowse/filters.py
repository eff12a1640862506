"""
Letter-coded filter prefixes typed in front of a query, e.g. ``ae:fire``.

Each letter before the first colon selects one tag. A prefix without any
known letter is not a filter and the whole input stays search text.
"""
from __future__ import annotations
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from .models import PackageRecord

REPO_FILTER_CHARS: Dict[str, str] = {
    "c": "core",
    "e": "extra",
    "m": "multilib",
    "a": "aur",
}
REPO_ORDER = ("core", "extra", "multilib", "aur")

INSTALLED_FILTER_CHARS: Dict[str, str] = {
    "t": "total",
    "e": "explicit",
    "f": "foreign",
    "o": "orphan",
}
INSTALLED_ORDER = ("total", "explicit", "foreign", "orphan")

def _parse_prefix(text: str, chars: Dict[str, str]) -> Tuple[FrozenSet[str], str]:
    text = text.strip()
    idx = text.find(":")
    if idx == -1:
        return frozenset(), text
    tags = frozenset(chars[ch] for ch in text[:idx].lower() if ch in chars)
    if not tags:
        return frozenset(), text
    return tags, text[idx + 1:].strip()

def parse_repo_filter(text: str) -> Tuple[FrozenSet[str], str]:
    return _parse_prefix(text, REPO_FILTER_CHARS)

def parse_installed_filter(text: str) -> Tuple[FrozenSet[str], str]:
    return _parse_prefix(text, INSTALLED_FILTER_CHARS)

def _format(tags: Iterable[str], order: Sequence[str]) -> str:
    tags = set(tags)
    return "+".join(t for t in order if t in tags)

def format_repo_filters(tags: Iterable[str]) -> str:
    return _format(tags, REPO_ORDER)

def format_installed_filters(tags: Iterable[str]) -> str:
    return _format(tags, INSTALLED_ORDER)

def includes_aur(tags: FrozenSet[str]) -> bool:
    return not tags or "aur" in tags

def apply_installed_filter(records: Sequence[PackageRecord], tags: FrozenSet[str]) -> List[PackageRecord]:
    """Union of the selected categories; ``total`` keeps everything."""
    if not tags or "total" in tags:
        return list(records)
    out: List[PackageRecord] = []
    for r in records:
        if ("explicit" in tags and r.explicit) or ("foreign" in tags and r.source == "aur") or ("orphan" in tags and r.orphan):
            out.append(r)
    return out
