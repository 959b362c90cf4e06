"""
Connected seat clusters for together-groups.

A cluster is grown breadth first from every open seat over the adjacency
graph, restricted to open seats, until it holds exactly as many seats as the
group has members. Clusters with the same seat set are kept once. A cluster
is kept only if its seats can be matched one to one with the members so that
every together pair lands on neighboring seats and, when tags are enforced,
every member gets a seat carrying their tags.

``greedy_cluster`` is the fallback once the search budget is gone: the first
block a single pass can fill, with no backtracking.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .adjacency import Adjacency, are_adjacent
from .models import Seat, Student, tags_compatible
from .search import SearchBudget

Pair = Tuple[str, str]


@dataclass(frozen=True)
class Cluster:
    seats: Tuple[str, ...]
    placement: Tuple[Tuple[str, str], ...]  # (student id, seat id)

    @property
    def seat_set(self) -> FrozenSet[str]:
        return frozenset(self.seats)


def match_members(
    members: Sequence[Student],
    seats: Sequence[Seat],
    adjacency: Optional[Adjacency] = None,
    edges: Sequence[Pair] = (),
    use_tags: bool = True,
    budget: Optional[SearchBudget] = None,
    max_depth: Optional[int] = None,
) -> Optional[Dict[str, str]]:
    """Find a member -> seat bijection.

    With ``use_tags`` every member gets a seat carrying their tags. Every pair
    in ``edges`` must end up on adjacent seats. Most tag-constrained members
    are matched first. Returns None when no bijection exists, the budget
    runs out or the group is deeper than ``max_depth``.
    """
    if len(members) != len(seats):
        return None
    if max_depth is not None and len(members) > max_depth:
        return None
    order = sorted(members, key=lambda m: -len(m.tags)) if use_tags else list(members)
    linked: Dict[str, List[str]] = {}
    for a, b in edges:
        linked.setdefault(a, []).append(b)
        linked.setdefault(b, []).append(a)
    taken: Set[str] = set()
    chosen: Dict[str, str] = {}

    def fits(member: Student, seat: Seat) -> bool:
        if seat.id in taken:
            return False
        if use_tags and not tags_compatible(member, seat):
            return False
        for other in linked.get(member.id, ()):
            if other in chosen and not are_adjacent(adjacency or {}, seat.id, chosen[other]):
                return False
        return True

    def assign(i: int) -> bool:
        if i == len(order):
            return True
        if budget is not None and budget.tick():
            return False
        member = order[i]
        for seat in seats:
            if not fits(member, seat):
                continue
            taken.add(seat.id)
            chosen[member.id] = seat.id
            if assign(i + 1):
                return True
            taken.discard(seat.id)
            del chosen[member.id]
        return False

    return dict(chosen) if assign(0) else None


def grow_cluster(start: str, size: int, adjacency: Adjacency, position: Dict[str, int]) -> List[str]:
    """BFS from ``start`` over seats in ``position`` until ``size`` seats are collected."""
    cluster = [start]
    visited = {start}
    queue = deque([start])
    while queue and len(cluster) < size:
        current = queue.popleft()
        for nb in sorted(adjacency.get(current, ()), key=lambda s: position.get(s, -1)):
            if nb in visited or nb not in position:
                continue
            visited.add(nb)
            cluster.append(nb)
            queue.append(nb)
            if len(cluster) == size:
                break
    return cluster


def find_clusters(
    members: Sequence[Student],
    open_seats: Sequence[Seat],
    adjacency: Adjacency,
    budget: Optional[SearchBudget] = None,
    strict_tags: bool = True,
    edges: Sequence[Pair] = (),
    max_depth: Optional[int] = None,
) -> List[Cluster]:
    """Enumerate distinct connected clusters sized to ``members``.

    ``open_seats`` order decides BFS start order and the seat order inside
    each cluster. Without strict tags a cluster that cannot honor tags is
    still kept with a tag-blind placement.
    """
    size = len(members)
    position = {s.id: i for i, s in enumerate(open_seats)}
    seat_by_id = {s.id: s for s in open_seats}
    has_tags = any(m.tags for m in members)

    clusters: List[Cluster] = []
    seen: Set[FrozenSet[str]] = set()
    for seat in open_seats:
        if budget is not None and budget.tick():
            break
        ids = grow_cluster(seat.id, size, adjacency, position)
        if len(ids) != size:
            continue
        key = frozenset(ids)
        if key in seen:
            continue
        seen.add(key)
        ordered = tuple(sorted(ids, key=position.__getitem__))
        block = [seat_by_id[i] for i in ordered]
        match = match_members(members, block, adjacency, edges, use_tags=has_tags, budget=budget,
                               max_depth=max_depth)
        if match is None and has_tags and not strict_tags:
            match = match_members(members, block, adjacency, edges, use_tags=False, budget=budget,
                                   max_depth=max_depth)
        if match is None:
            continue
        placement = tuple((m.id, match[m.id]) for m in members)
        clusters.append(Cluster(seats=ordered, placement=placement))
    return clusters


def chain_order(members: Sequence[Student], edges: Sequence[Pair]) -> List[Student]:
    """Members in BFS order over ``edges``, starting from a least linked member."""
    by_id = {m.id: m for m in members}
    linked: Dict[str, List[str]] = {m.id: [] for m in members}
    for a, b in edges:
        if a in linked and b in linked:
            linked[a].append(b)
            linked[b].append(a)
    order: List[Student] = []
    visited: Set[str] = set()
    for root in sorted(members, key=lambda m: len(linked[m.id])):
        if root.id in visited:
            continue
        visited.add(root.id)
        queue = deque([root.id])
        while queue:
            current = queue.popleft()
            order.append(by_id[current])
            for nb in linked[current]:
                if nb not in visited:
                    visited.add(nb)
                    queue.append(nb)
    return order


def first_fit(
    members: Sequence[Student],
    seats: Sequence[Seat],
    adjacency: Adjacency,
    edges: Sequence[Pair] = (),
    use_tags: bool = True,
) -> Optional[Dict[str, str]]:
    """Single pass member -> seat match, no backtracking."""
    if len(members) != len(seats):
        return None
    linked: Dict[str, List[str]] = {}
    for a, b in edges:
        linked.setdefault(a, []).append(b)
        linked.setdefault(b, []).append(a)
    chosen: Dict[str, str] = {}
    taken: Set[str] = set()
    for member in chain_order(members, edges):
        for seat in seats:
            if seat.id in taken or (use_tags and not tags_compatible(member, seat)):
                continue
            if any(
                other in chosen and not are_adjacent(adjacency, seat.id, chosen[other])
                for other in linked.get(member.id, ())
            ):
                continue
            chosen[member.id] = seat.id
            taken.add(seat.id)
            break
        else:
            return None
    return chosen


def greedy_cluster(
    members: Sequence[Student],
    open_seats: Sequence[Seat],
    adjacency: Adjacency,
    strict_tags: bool = True,
    edges: Sequence[Pair] = (),
) -> Optional[Cluster]:
    """First BFS cluster that ``first_fit`` can fill. Ignores any search budget."""
    size = len(members)
    position = {s.id: i for i, s in enumerate(open_seats)}
    seat_by_id = {s.id: s for s in open_seats}
    seen: Set[FrozenSet[str]] = set()
    for seat in open_seats:
        ids = grow_cluster(seat.id, size, adjacency, position)
        key = frozenset(ids)
        if len(ids) != size or key in seen:
            continue
        seen.add(key)
        ordered = tuple(sorted(ids, key=position.__getitem__))
        block = [seat_by_id[i] for i in ordered]
        match = first_fit(members, block, adjacency, edges)
        if match is None and not strict_tags:
            match = first_fit(members, block, adjacency, edges, use_tags=False)
        if match is not None:
            return Cluster(seats=ordered, placement=tuple((m.id, match[m.id]) for m in members))
    return None
