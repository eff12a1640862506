"""
Relevance ranking of package pools against a typed query.

``merge`` is a pure function of its arguments: it is recomputed whenever the
local pool, the remote pool or the query changes.
"""
from __future__ import annotations
from typing import AbstractSet, Iterable, List, Optional, Sequence, Tuple

from .models import PackageRecord, RankedPackage

def match_indices(name: str, query: str) -> Tuple[int, ...]:
    """
    Characters of ``name`` to highlight for ``query`` (case-insensitive).

    A contiguous substring wins; otherwise each query character is matched
    greedily left to right and the matched prefix of the query is reported.
    """
    if not query:
        return ()
    low = name.lower()
    q = query.lower()
    pos = low.find(q)
    if pos != -1:
        return tuple(range(pos, pos + len(q)))
    out: List[int] = []
    i = 0
    for ch in q:
        i = low.find(ch, i)
        if i == -1:
            break
        out.append(i)
        i += 1
    return tuple(out)

def _rank_key(rec: PackageRecord, q: str) -> Optional[tuple]:
    low = rec.name.lower()
    pos = low.find(q)
    if pos != -1:
        return (0, pos, len(low), rec.name, rec.source)
    start = -1
    i = 0
    for ch in q:
        i = low.find(ch, i)
        if i == -1:
            return None
        if start == -1:
            start = i
        i += 1
    return (1, start, len(low), rec.name, rec.source)

def rank(pool: Iterable[PackageRecord], query: str) -> List[PackageRecord]:
    q = query.lower()
    keyed = []
    for rec in pool:
        key = _rank_key(rec, q)
        if key is not None:
            keyed.append((key, rec))
    keyed.sort(key=lambda kv: kv[0])
    return [rec for _, rec in keyed]

def substring_filter(pool: Iterable[PackageRecord], query: str) -> List[PackageRecord]:
    q = query.lower()
    return [rec for rec in pool if q in rec.name.lower()]

def merge(pool: Sequence[PackageRecord], repo_filters: AbstractSet[str], query: str) -> Tuple[RankedPackage, ...]:
    candidates: Sequence[PackageRecord] = pool
    if repo_filters:
        candidates = [rec for rec in pool if rec.source in repo_filters]
    if not query:
        return tuple(RankedPackage(rec) for rec in candidates)
    ranked = rank(candidates, query)
    if not ranked:
        ranked = substring_filter(candidates, query)
    return tuple(RankedPackage(rec, match_indices(rec.name, query)) for rec in ranked)
