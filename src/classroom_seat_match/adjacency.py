"""
Seat adjacency derived from template coordinates.

Seats are bucketed into rows by their y coordinate (within ``y_tolerance``
pixels, so rows need not be pixel perfect), rows are ordered top to bottom and
seats left to right. A seat neighbors the seat immediately to its left and
right in the same row, unless the two are split by an aisle: by default any
step wider than ``GAP_FACTOR`` times the row's narrowest step. Front/back
adjacency between consecutive rows is available but off by default.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set, Union

from .models import Seat

Y_TOLERANCE = 12.0
X_TOLERANCE = 16.0
GAP_FACTOR = 1.5
AUTO_GAP = "auto"

Adjacency = Dict[str, Set[str]]
MaxGap = Union[float, str, None]


def group_rows(seats: Sequence[Seat], y_tolerance: float = Y_TOLERANCE) -> List[List[Seat]]:
    """Bucket seats into rows, top to bottom, each row sorted left to right."""
    rows: List[List[Seat]] = []
    anchors: List[float] = []
    for seat in sorted(seats, key=lambda s: (s.y, s.x, s.id)):
        if anchors and abs(seat.y - anchors[-1]) <= y_tolerance:
            rows[-1].append(seat)
        else:
            anchors.append(seat.y)
            rows.append([seat])
    for row in rows:
        row.sort(key=lambda s: (s.x, s.id))
    return rows


def row_gap_limit(row: Sequence[Seat], max_gap: MaxGap = AUTO_GAP) -> Optional[float]:
    """Widest step between two seats of ``row`` that still links them."""
    if max_gap != AUTO_GAP:
        return max_gap
    steps = [right.x - left.x for left, right in zip(row, row[1:]) if right.x > left.x]
    if not steps:
        return None
    return GAP_FACTOR * min(steps)


def build_adjacency(
    seats: Sequence[Seat],
    y_tolerance: float = Y_TOLERANCE,
    front_back: bool = False,
    x_tolerance: float = X_TOLERANCE,
    max_gap: MaxGap = AUTO_GAP,
) -> Adjacency:
    """Return ``seat id -> neighbor ids``. Symmetric by construction.

    ``max_gap`` caps the horizontal distance between two seats that still
    count as side by side. ``"auto"`` takes it per row from the narrowest
    step, a number is used as is, ``None`` links every consecutive pair.
    """
    neighbors: Adjacency = {s.id: set() for s in seats}

    def link(a: str, b: str) -> None:
        if a == b:
            return
        neighbors[a].add(b)
        neighbors[b].add(a)

    rows = group_rows(seats, y_tolerance)
    for row in rows:
        limit = row_gap_limit(row, max_gap)
        for left, right in zip(row, row[1:]):
            if limit is not None and right.x - left.x > limit:
                continue
            link(left.id, right.id)

    if front_back:
        for top, bottom in zip(rows, rows[1:]):
            for ts in top:
                for bs in bottom:
                    if abs(ts.x - bs.x) <= x_tolerance:
                        link(ts.id, bs.id)

    return neighbors


def are_adjacent(adjacency: Adjacency, a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return b in adjacency.get(a, ())
