"""Turn raw together/apart pairs into together-groups and an apart lookup."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .models import RuleSet, Student

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


def pair_key(a: str, b: str) -> str:
    """Canonical ``min|max`` key so lookups ignore argument order."""
    return f"{a}|{b}" if a <= b else f"{b}|{a}"


@dataclass
class ResolvedConstraints:
    groups: List[List[str]] = field(default_factory=list)
    apart_keys: Set[str] = field(default_factory=set)
    apart_partners: Dict[str, Set[str]] = field(default_factory=dict)
    together: List[Pair] = field(default_factory=list)
    apart: List[Pair] = field(default_factory=list)
    dropped: List[Pair] = field(default_factory=list)

    def is_apart(self, a: str, b: str) -> bool:
        return pair_key(a, b) in self.apart_keys

    def partners_of(self, student_id: str) -> Set[str]:
        return self.apart_partners.get(student_id, set())

    def degree(self, student_id: str) -> int:
        return len(self.partners_of(student_id))


def filter_pairs(pairs: Iterable[Pair], present: Set[str], kind: str) -> Tuple[List[Pair], List[Pair]]:
    """Split pairs into (kept, dropped). Unknown ids and self pairs are dropped."""
    kept: List[Pair] = []
    dropped: List[Pair] = []
    seen: Set[str] = set()
    for a, b in pairs:
        a, b = str(a), str(b)
        if a not in present or b not in present:
            missing = [x for x in (a, b) if x not in present]
            logger.warning("Dropping %s rule %s/%s: unknown student %s", kind, a, b, ", ".join(missing))
            dropped.append((a, b))
            continue
        if a == b:
            logger.warning("Dropping %s rule %s/%s: a student cannot pair with themselves", kind, a, b)
            dropped.append((a, b))
            continue
        key = pair_key(a, b)
        if key in seen:
            continue
        seen.add(key)
        kept.append((a, b))
    return kept, dropped


def resolve_constraints(students: Sequence[Student], rules: RuleSet) -> ResolvedConstraints:
    """Union together pairs into groups and index apart pairs.

    Group members and groups follow the order of ``students``, so callers
    control tie-breaks by ordering the roster.
    """
    order = [s.id for s in students]
    present = set(order)
    together, dropped_t = filter_pairs(rules.together, present, "together")
    apart, dropped_a = filter_pairs(rules.apart, present, "apart")

    parent: Dict[str, str] = {sid: sid for sid in order}

    def find(x: str) -> str:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    def union(a: str, b: str) -> None:
        pa, pb = find(a), find(b)
        if pa != pb:
            parent[pa] = pb

    for a, b in together:
        union(a, b)

    classes: Dict[str, List[str]] = {}
    for sid in order:
        classes.setdefault(find(sid), []).append(sid)

    groups: List[List[str]] = []
    for members in classes.values():
        if len(members) < 2:
            continue
        member_set = set(members)
        # Only keep classes backed by at least one real rule edge.
        if any(a in member_set and b in member_set for a, b in together):
            groups.append(members)

    partners: Dict[str, Set[str]] = {}
    for a, b in apart:
        partners.setdefault(a, set()).add(b)
        partners.setdefault(b, set()).add(a)

    return ResolvedConstraints(
        groups=groups,
        apart_keys={pair_key(a, b) for a, b in apart},
        apart_partners=partners,
        together=together,
        apart=apart,
        dropped=dropped_t + dropped_a,
    )
