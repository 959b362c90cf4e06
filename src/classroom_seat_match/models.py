"""Data models for ClassroomSeatMatch."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
import math


def parse_pipe_list(value: object) -> List[str]:
    """Split a pipe separated string into a list.

    Empty values such as ``""`` or ``None`` return an empty list.
    ``pandas`` often provides ``float('nan')`` for missing values which is
    also treated as empty.
    """
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return []
    return [part.strip() for part in text.split("|") if part.strip()]


def parse_bool(value: object) -> bool:
    """Parse common truthy strings into bool."""
    return str(value).strip().lower() == "true"


def _tags(values: Optional[Iterable[str]]) -> FrozenSet[str]:
    if not values:
        return frozenset()
    if isinstance(values, str):
        return frozenset(parse_pipe_list(values))
    return frozenset(v for v in values if v)


@dataclass(frozen=True)
class Seat:
    """A desk in the classroom template, positioned in pixels."""

    id: str
    x: float
    y: float
    tags: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _tags(self.tags))


@dataclass(frozen=True)
class Student:
    """A roster entry. ``tags`` are seat requirements, e.g. ``front row``."""

    id: str
    name: str = ""
    display_name: str = ""
    tags: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _tags(self.tags))

    @property
    def label(self) -> str:
        """Name shown to the user and used for alphabetical ordering."""
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        return self.name or self.id


def tags_compatible(student: Student, seat: Seat) -> bool:
    """A seat suits a student when it carries every tag the student declares."""
    if not student.tags:
        return True
    return student.tags <= seat.tags


class RuleKind(str, Enum):
    TOGETHER = "together"
    APART = "apart"


class Strategy(str, Enum):
    """Tie-break discipline: deterministic ``alpha`` or seeded ``random``."""

    ALPHA = "alpha"
    RANDOM = "random"

    @classmethod
    def parse(cls, value: "Strategy | str") -> "Strategy":
        if isinstance(value, Strategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown strategy: {value!r} (expected 'alpha' or 'random')") from None


@dataclass(frozen=True)
class Rule:
    """Unordered pair of student ids bound by a together or apart rule."""

    kind: RuleKind
    a: str
    b: str

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.a, self.b)


@dataclass
class RuleSet:
    together: List[Tuple[str, str]] = field(default_factory=list)
    apart: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_rules(cls, rules: Iterable[Rule]) -> "RuleSet":
        together: List[Tuple[str, str]] = []
        apart: List[Tuple[str, str]] = []
        for r in rules:
            (together if r.kind == RuleKind.TOGETHER else apart).append(r.pair)
        return cls(together=together, apart=apart)


@dataclass
class Layout:
    """Ordered seat list plus the seats closed for this solve."""

    seats: List[Seat]
    excluded: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        self.excluded = frozenset(self.excluded)

    def seat_ids(self) -> List[str]:
        return [s.id for s in self.seats]

    def open_seats(self) -> List[Seat]:
        """Seats not explicitly excluded, in layout order."""
        return [s for s in self.seats if s.id not in self.excluded]


class ConflictKind(str, Enum):
    """Kinds of constraint failure surfaced in a result instead of raised."""

    GROUP_UNSEATABLE = "group-unseatable"
    APART_VIOLATION = "apart-violation"
    TAG_INFEASIBLE = "tag-infeasible"
    CAPACITY_EXHAUSTED = "capacity-exhausted"


# Causes for GROUP_UNSEATABLE records
STRUCTURAL = "structural"
COMBINATORIAL = "combinatorial"
SEARCH_LIMIT = "search-limit"


@dataclass(frozen=True)
class ConflictRecord:
    kind: ConflictKind
    students: Tuple[str, ...]
    message: str
    cause: Optional[str] = None
    partners: Tuple[str, ...] = ()


@dataclass
class AssignmentResult:
    """Outcome of one solve. Absent students are unseated and named in ``conflicts``."""

    seat_of: Dict[str, str]
    conflicts: List[ConflictRecord]
    unseated: List[str] = field(default_factory=list)
    nodes_explored: int = 0
    budget_exhausted: bool = False

    def student_at(self, seat_id: str) -> Optional[str]:
        for student_id, sid in self.seat_of.items():
            if sid == seat_id:
                return student_id
        return None

    def to_seat_map(self, seat_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """Return ``seat id -> student id or None`` for every given seat."""
        by_seat = {sid: student_id for student_id, sid in self.seat_of.items()}
        return {sid: by_seat.get(sid) for sid in seat_ids}

    def conflicts_of(self, kind: ConflictKind) -> List[ConflictRecord]:
        return [c for c in self.conflicts if c.kind == kind]
