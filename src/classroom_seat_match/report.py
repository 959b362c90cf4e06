"""
Audit of a seating result against its rules.

Grade scale on the share of satisfied rules (together pairs seated side by
side plus apart pairs not side by side):
    A: >= 0.95, B: >= 0.85, C: >= 0.70, D: >= 0.50, F: below
Unseated students count against every rule they take part in.
"""
from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

import networkx as nx

from .adjacency import Y_TOLERANCE, Adjacency, group_rows
from .constraints import pair_key
from .models import AssignmentResult, Layout, RuleSet


def build_seat_graph(layout: Layout, adjacency: Adjacency) -> nx.Graph:
    """Seat neighbor graph. Nodes carry position, tags and the excluded flag."""
    G = nx.Graph()
    for seat in layout.seats:
        G.add_node(
            seat.id,
            x=seat.x,
            y=seat.y,
            tags=sorted(seat.tags),
            excluded=seat.id in layout.excluded,
        )
    for a, neighbors in adjacency.items():
        for b in neighbors:
            G.add_edge(a, b)
    return G


def _adjacent(G: nx.Graph, a: Optional[str], b: Optional[str]) -> bool:
    return a is not None and b is not None and G.has_edge(a, b)


def compute_rule_stats(
    result: AssignmentResult,
    rules: RuleSet,
    G: nx.Graph,
    student_ids: Optional[Iterable[str]] = None,
) -> Dict[str, int | float]:
    """Count satisfied and violated rules plus seating and conflict totals.

    With ``student_ids`` rules naming anyone outside the roster are ignored.
    """
    seat_of = result.seat_of
    known = set(student_ids) if student_ids is not None else None
    together = [p for p in rules.together if known is None or (p[0] in known and p[1] in known)]
    apart = [p for p in rules.apart if known is None or (p[0] in known and p[1] in known)]
    together_ok = together_bad = apart_ok = apart_bad = 0

    seen = set()
    for a, b in together:
        key = pair_key(a, b)
        if key in seen:
            continue
        seen.add(key)
        if _adjacent(G, seat_of.get(a), seat_of.get(b)):
            together_ok += 1
        else:
            together_bad += 1

    seen = set()
    for a, b in apart:
        key = pair_key(a, b)
        if key in seen:
            continue
        seen.add(key)
        sa, sb = seat_of.get(a), seat_of.get(b)
        if sa is not None and sb is not None and not G.has_edge(sa, sb):
            apart_ok += 1
        else:
            apart_bad += 1

    # Together-groups whose members all sit in one connected block
    rule_graph = nx.Graph()
    rule_graph.add_edges_from(together)
    groups_total = groups_connected = 0
    for members in nx.connected_components(rule_graph):
        groups_total += 1
        seats = [seat_of.get(m) for m in members]
        if all(s is not None for s in seats) and nx.is_connected(G.subgraph(seats)):
            groups_connected += 1

    rules_total = together_ok + together_bad + apart_ok + apart_bad
    satisfied = together_ok + apart_ok
    kinds = Counter(c.kind.value for c in result.conflicts)
    return {
        "together_satisfied": together_ok,
        "together_violated": together_bad,
        "apart_satisfied": apart_ok,
        "apart_violated": apart_bad,
        "groups_total": groups_total,
        "groups_connected": groups_connected,
        "seated": len(seat_of),
        "unseated": len(result.unseated),
        "conflicts": len(result.conflicts),
        "group_unseatable": kinds.get("group-unseatable", 0),
        "apart_violation": kinds.get("apart-violation", 0),
        "tag_infeasible": kinds.get("tag-infeasible", 0),
        "capacity_exhausted": kinds.get("capacity-exhausted", 0),
        "satisfied_share": satisfied / rules_total if rules_total else 1.0,
    }


def grade_result(stats: Dict[str, int | float]) -> str:
    """Assign A to F based on the satisfied rule share."""
    share = stats["satisfied_share"]
    if share >= 0.95:
        return "A"
    if share >= 0.85:
        return "B"
    if share >= 0.70:
        return "C"
    if share >= 0.50:
        return "D"
    return "F"


def row_occupancy(layout: Layout, result: AssignmentResult, y_tolerance: float = Y_TOLERANCE) -> List[Dict[str, int | str]]:
    """Seated, open and excluded counts per row, front row first."""
    taken = set(result.seat_of.values())
    out: List[Dict[str, int | str]] = []
    for i, row in enumerate(group_rows(layout.seats, y_tolerance), start=1):
        ids: Sequence[str] = [s.id for s in row]
        excluded = sum(1 for sid in ids if sid in layout.excluded)
        seated = sum(1 for sid in ids if sid in taken)
        out.append(
            {
                "row": i,
                "seats": len(ids),
                "seated": seated,
                "open": len(ids) - seated - excluded,
                "excluded": excluded,
                "occupied": "|".join(sid for sid in ids if sid in taken),
            }
        )
    return out
