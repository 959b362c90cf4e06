"""
Constraint aware classroom seating solver.

Placement order for one solve:
    1. together-groups into non-overlapping connected clusters (backtracking),
    2. students with apart rules, kept off their partners' neighboring seats
       (backtracking, greedy fallback),
    3. everyone else, tag compatible seats first.
Failures never raise. Each one becomes a ConflictRecord in the result, and the
result always holds the best assignment found.
"""
from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .adjacency import AUTO_GAP, X_TOLERANCE, Y_TOLERANCE, Adjacency, MaxGap, are_adjacent, build_adjacency
from .clusters import Cluster, find_clusters, greedy_cluster
from .constraints import ResolvedConstraints, resolve_constraints
from .models import (
    COMBINATORIAL,
    SEARCH_LIMIT,
    STRUCTURAL,
    AssignmentResult,
    ConflictKind,
    ConflictRecord,
    Layout,
    RuleSet,
    Seat,
    Strategy,
    Student,
    tags_compatible,
)
from .search import DEFAULT_NODE_LIMIT, DEFAULT_TIME_LIMIT_SEC, SearchBudget

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 400


def _ensure_unique(ids: Iterable[str], what: str) -> None:
    seen: Set[str] = set()
    for i in ids:
        if i in seen:
            raise ValueError(f"Duplicate {what} id: {i}")
        seen.add(i)


def order_roster(students: Sequence[Student], strategy: Strategy, rng: random.Random) -> List[Student]:
    """Alphabetical by display name under ``alpha``, shuffled under ``random``."""
    if strategy is Strategy.RANDOM:
        shuffled = list(students)
        rng.shuffle(shuffled)
        return shuffled
    return sorted(students, key=lambda s: (s.label.casefold(), s.id))


# ----------------------------- per solve state -----------------------------
class _Run:
    """Working state of a single solve. Discarded when the result is built."""

    def __init__(
        self,
        roster: List[Student],
        open_seats: List[Seat],
        adjacency: Adjacency,
        constraints: ResolvedConstraints,
        strategy: Strategy,
        rng: random.Random,
        budget: SearchBudget,
        strict_tags: bool,
    ) -> None:
        self.roster = roster
        self.open_seats = open_seats
        self.adjacency = adjacency
        self.constraints = constraints
        self.strategy = strategy
        self.rng = rng
        self.budget = budget
        self.strict_tags = strict_tags
        self.student_by_id = {s.id: s for s in roster}
        self.seat_by_id = {s.id: s for s in open_seats}
        self.rank = {s.id: i for i, s in enumerate(roster)}
        self.seat_of: Dict[str, str] = {}
        self.used: Set[str] = set()
        self.conflicts: List[ConflictRecord] = []

    def free_seats(self) -> List[Seat]:
        """Open seats nobody sits in yet, in seat order."""
        return [s for s in self.open_seats if s.id not in self.used]

    def candidates(self, student: Student) -> List[Seat]:
        """Usable free seats. Seats carrying tags the student does not need go last."""
        free = self.free_seats()
        compatible = [seat for seat in free if tags_compatible(student, seat)]
        if not compatible and not self.strict_tags:
            compatible = free
        return sorted(compatible, key=lambda seat: self.spares(student, seat))

    @staticmethod
    def spares(student: Student, seat: Seat) -> bool:
        return bool(seat.tags - student.tags)

    def cluster_spares(self, cluster: Cluster) -> int:
        return sum(
            self.spares(self.student_by_id[student_id], self.seat_by_id[seat_id])
            for student_id, seat_id in cluster.placement
        )

    def violations(self, student_id: str, seat_id: str, placed: Optional[Dict[str, str]] = None) -> List[str]:
        """Apart partners already seated next to ``seat_id``."""
        hits = []
        for partner in self.constraints.partners_of(student_id):
            partner_seat = self.seat_of.get(partner)
            if partner_seat is None and placed is not None:
                partner_seat = placed.get(partner)
            if are_adjacent(self.adjacency, seat_id, partner_seat):
                hits.append(partner)
        return sorted(hits, key=self.rank.__getitem__)

    def seat(self, student_id: str, seat_id: str) -> None:
        hits = self.violations(student_id, seat_id)
        self.seat_of[student_id] = seat_id
        self.used.add(seat_id)
        if hits:
            self.conflicts.append(
                ConflictRecord(
                    kind=ConflictKind.APART_VIOLATION,
                    students=(student_id,),
                    partners=tuple(hits),
                    message=f"{self.student_by_id[student_id].label} sits next to "
                    + ", ".join(self.student_by_id[p].label for p in hits),
                )
            )


# ----------------------------- model -----------------------------
class SeatingSolver:
    """Backtracking seat assignment with together, apart and tag constraints.

    The solver keeps only configuration. ``solve`` is safe to call repeatedly
    and never mutates its inputs.
    """

    def __init__(
        self,
        y_tolerance: float = Y_TOLERANCE,
        front_back: bool = False,
        x_tolerance: float = X_TOLERANCE,
        max_gap: MaxGap = AUTO_GAP,
        strict_tags: bool = True,
        node_limit: int = DEFAULT_NODE_LIMIT,
        time_limit_sec: float = DEFAULT_TIME_LIMIT_SEC,
        max_depth: int = DEFAULT_MAX_DEPTH,
        rng: Optional[random.Random] = None,
    ) -> None:
        # Adjacency
        self.y_tolerance = y_tolerance
        self.front_back = front_back
        self.x_tolerance = x_tolerance
        self.max_gap = max_gap
        # Tag policy
        self.strict_tags = strict_tags
        # Search effort cap
        self.node_limit = node_limit
        self.time_limit_sec = time_limit_sec
        self.max_depth = max_depth
        self.rng = rng

    def adjacency_for(self, layout: Layout) -> Adjacency:
        return build_adjacency(
            layout.seats,
            y_tolerance=self.y_tolerance,
            front_back=self.front_back,
            x_tolerance=self.x_tolerance,
            max_gap=self.max_gap,
        )

    # ----------------------------- together-groups -----------------------------
    def _place_groups(self, run: _Run) -> None:
        position = {s.id: i for i, s in enumerate(run.open_seats)}
        candidates: List[Tuple[List[str], List[Cluster]]] = []
        for group in run.constraints.groups:
            members = [run.student_by_id[sid] for sid in group]
            in_group = set(group)
            edges = [(a, b) for a, b in run.constraints.together if a in in_group and b in in_group]
            too_deep = len(group) > self.max_depth
            clusters = [] if too_deep else find_clusters(
                members, run.open_seats, run.adjacency, run.budget, self.strict_tags, edges, self.max_depth
            )
            limited = too_deep or run.budget.exhausted
            if not clusters and limited:
                fallback = greedy_cluster(members, run.open_seats, run.adjacency, self.strict_tags, edges)
                if fallback is not None:
                    logger.debug("Group %s: search cut short, using greedy block", "+".join(group))
                    clusters = [fallback]
            logger.debug("Group %s: %d candidate clusters", "+".join(group), len(clusters))
            if not clusters:
                run.conflicts.append(
                    ConflictRecord(
                        kind=ConflictKind.GROUP_UNSEATABLE,
                        students=tuple(group),
                        cause=SEARCH_LIMIT if limited else STRUCTURAL,
                        message=f"No block of {len(group)} adjacent open seats "
                        + ("found within the search limit for " if limited else "fits ")
                        + ", ".join(m.label for m in members),
                    )
                )
                continue
            # Blocks that use up tagged seats nobody in the group needs go last.
            if run.strategy is Strategy.RANDOM:
                run.rng.shuffle(clusters)
                clusters.sort(key=run.cluster_spares)
            else:
                clusters.sort(key=lambda c: (run.cluster_spares(c), tuple(position[s] for s in c.seats)))
            candidates.append((group, clusters))

        # Most constrained group first
        candidates.sort(key=lambda gc: len(gc[1]))
        chosen = self._choose_clusters(candidates, run)

        for (group, _), cluster in zip(candidates, chosen):
            if cluster is None:
                run.conflicts.append(
                    ConflictRecord(
                        kind=ConflictKind.GROUP_UNSEATABLE,
                        students=tuple(group),
                        cause=COMBINATORIAL,
                        message="Seat blocks for "
                        + ", ".join(run.student_by_id[sid].label for sid in group)
                        + " collide with other groups",
                    )
                )
                continue
            for student_id, seat_id in cluster.placement:
                run.seat(student_id, seat_id)

    def _choose_clusters(
        self, candidates: List[Tuple[List[str], List[Cluster]]], run: _Run
    ) -> List[Optional[Cluster]]:
        """Pick one cluster per group with no shared seat.

        Falls back to the deepest partial selection found, completed greedily,
        when no full selection exists or the budget runs out.
        """
        n = len(candidates)
        chosen: List[Optional[Cluster]] = [None] * n
        best: List[Optional[Cluster]] = [None] * n
        best_count = 0
        used: Set[str] = set()

        def backtrack(i: int) -> bool:
            nonlocal best, best_count
            if i > best_count:
                best, best_count = list(chosen), i
            if i == n:
                return True
            if run.budget.tick():
                return False
            for cluster in candidates[i][1]:
                if not used.isdisjoint(cluster.seats):
                    continue
                chosen[i] = cluster
                used.update(cluster.seats)
                if backtrack(i + 1):
                    return True
                used.difference_update(cluster.seats)
                chosen[i] = None
                if run.budget.exhausted:
                    break
            return False

        if n == 0:
            return []
        if n <= self.max_depth and backtrack(0):
            return chosen

        logger.debug("Group backtracking incomplete (%d/%d placed), completing greedily", best_count, n)
        result = list(best)
        taken: Set[str] = set()
        for cluster in result:
            if cluster is not None:
                taken.update(cluster.seats)
        for i in range(n):
            if result[i] is not None:
                continue
            for cluster in candidates[i][1]:
                if taken.isdisjoint(cluster.seats):
                    result[i] = cluster
                    taken.update(cluster.seats)
                    break
        return result

    # ----------------------------- apart rules -----------------------------
    def _place_apart(self, run: _Run) -> None:
        pending = [
            s for s in run.roster if run.constraints.degree(s.id) and s.id not in run.seat_of
        ]
        pending.sort(key=lambda s: -run.constraints.degree(s.id))
        # Students with no usable seat are left to the fill pass, which reports them.
        movable = [s for s in pending if run.candidates(s)]
        if not movable:
            return

        plan = None
        if len(movable) <= min(self.max_depth, len(run.free_seats())):
            plan = self._backtrack_apart(movable, run)
        if plan is None:
            logger.debug("Apart backtracking failed for %d students, using greedy pass", len(movable))
            self._greedy_apart(movable, run)
            return
        for student in movable:
            run.seat(student.id, plan[student.id])

    def _backtrack_apart(self, students: List[Student], run: _Run) -> Optional[Dict[str, str]]:
        options = {s.id: run.candidates(s) for s in students}
        placed: Dict[str, str] = {}
        taken: Set[str] = set()

        def backtrack(i: int) -> bool:
            if i == len(students):
                return True
            if run.budget.tick():
                return False
            student = students[i]
            for seat in options[student.id]:
                if seat.id in taken or run.violations(student.id, seat.id, placed):
                    continue
                placed[student.id] = seat.id
                taken.add(seat.id)
                if backtrack(i + 1):
                    return True
                del placed[student.id]
                taken.discard(seat.id)
                if run.budget.exhausted:
                    break
            return False

        return placed if backtrack(0) else None

    def _greedy_apart(self, students: List[Student], run: _Run) -> None:
        for student in students:
            options = run.candidates(student)
            if not options:
                continue
            seat = next((s for s in options if not run.violations(student.id, s.id)), options[0])
            run.seat(student.id, seat.id)

    # ----------------------------- fill -----------------------------
    def _fill(self, run: _Run) -> None:
        remaining = [s for s in run.roster if s.id not in run.seat_of]
        # Tag-declaring students go first while their seats are still open.
        remaining.sort(key=lambda s: 0 if s.tags else 1)
        for student in remaining:
            free = run.free_seats()
            if not free:
                run.conflicts.append(
                    ConflictRecord(
                        kind=ConflictKind.CAPACITY_EXHAUSTED,
                        students=(student.id,),
                        message=f"No open seat left for {student.label}",
                    )
                )
                continue
            options = run.candidates(student)
            if not options:
                run.conflicts.append(
                    ConflictRecord(
                        kind=ConflictKind.TAG_INFEASIBLE,
                        students=(student.id,),
                        message=f"No open seat tagged {', '.join(sorted(student.tags))} for {student.label}",
                    )
                )
                continue
            clean = [s for s in options if not run.violations(student.id, s.id)]
            if not clean:
                seat = options[0]
            elif run.strategy is Strategy.RANDOM:
                seat = run.rng.choice([s for s in clean if not run.spares(student, s)] or clean)
            else:
                seat = clean[0]
            run.seat(student.id, seat.id)

    # ----------------------------- solve -----------------------------
    def solve(
        self,
        layout: Layout,
        students: Sequence[Student],
        rules: Optional[RuleSet] = None,
        strategy: Strategy | str = Strategy.ALPHA,
    ) -> AssignmentResult:
        """Assign students to seats. Constraint failures land in ``conflicts``."""
        strategy = Strategy.parse(strategy)
        rules = rules if rules is not None else RuleSet()
        _ensure_unique(layout.seat_ids(), "seat")
        _ensure_unique((s.id for s in students), "student")

        rng = self.rng if self.rng is not None else random.Random()
        budget = SearchBudget(self.node_limit, self.time_limit_sec)
        roster = order_roster(students, strategy, rng)
        open_seats = layout.open_seats()
        if strategy is Strategy.RANDOM:
            rng.shuffle(open_seats)

        run = _Run(
            roster=roster,
            open_seats=open_seats,
            adjacency=self.adjacency_for(layout),
            constraints=resolve_constraints(roster, rules),
            strategy=strategy,
            rng=rng,
            budget=budget,
            strict_tags=self.strict_tags,
        )
        self._place_groups(run)
        self._place_apart(run)
        self._fill(run)

        if budget.exhausted:
            logger.warning("Search budget exhausted after %d nodes; result is best effort", budget.nodes)
        result = AssignmentResult(
            seat_of={s.id: run.seat_of[s.id] for s in students if s.id in run.seat_of},
            conflicts=list(run.conflicts),
            unseated=[s.id for s in students if s.id not in run.seat_of],
            nodes_explored=budget.nodes,
            budget_exhausted=budget.exhausted,
        )
        logger.info(
            "Seated %d/%d students, %d conflicts, %d nodes explored",
            len(result.seat_of),
            len(students),
            len(result.conflicts),
            budget.nodes,
        )
        return result


def assign_seating(
    layout: Layout,
    students: Sequence[Student],
    rules: Optional[RuleSet] = None,
    strategy: Strategy | str = Strategy.ALPHA,
    **options,
) -> AssignmentResult:
    """One-shot helper: ``SeatingSolver(**options).solve(...)``."""
    return SeatingSolver(**options).solve(layout, students, rules, strategy)
