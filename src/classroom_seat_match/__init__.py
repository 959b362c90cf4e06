"""ClassroomSeatMatch package."""
from .models import (
    AssignmentResult,
    ConflictKind,
    ConflictRecord,
    Layout,
    Rule,
    RuleKind,
    RuleSet,
    Seat,
    Strategy,
    Student,
)
from .adjacency import build_adjacency
from .csv_loader import (
    load_seats,
    load_students,
    load_rules,
    load_all,
)
from .solver import SeatingSolver, assign_seating

__all__ = [
    "AssignmentResult",
    "ConflictKind",
    "ConflictRecord",
    "Layout",
    "Rule",
    "RuleKind",
    "RuleSet",
    "Seat",
    "Strategy",
    "Student",
    "build_adjacency",
    "load_seats",
    "load_students",
    "load_rules",
    "load_all",
    "SeatingSolver",
    "assign_seating",
]
