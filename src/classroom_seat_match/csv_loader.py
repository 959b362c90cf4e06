"""CSV loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, List, Optional, Tuple

import pandas as pd

from .models import Layout, Rule, RuleKind, RuleSet, Seat, Student, parse_bool, parse_pipe_list

Source = Path | str | IO[Any]


def _text(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _require(df: pd.DataFrame, columns: List[str], label: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{label}: missing columns: {', '.join(missing)}")


def load_seats(path: Source) -> Layout:
    """Load ``seats.csv`` (``id,x,y[,tags][,excluded]``) into a layout."""
    df = pd.read_csv(path, dtype={"id": str})
    _require(df, ["id", "x", "y"], "seats.csv")
    seats: List[Seat] = []
    excluded = set()
    for _, row in df.iterrows():
        seat_id = _text(row["id"])
        seats.append(
            Seat(
                id=seat_id,
                x=float(row["x"]),
                y=float(row["y"]),
                tags=parse_pipe_list(row.get("tags", "")),
            )
        )
        if parse_bool(row.get("excluded", "false")):
            excluded.add(seat_id)
    return Layout(seats=seats, excluded=frozenset(excluded))


def load_students(path: Source) -> List[Student]:
    """Load the roster. ``name`` falls back to the id when absent."""
    df = pd.read_csv(path, dtype={"id": str})
    _require(df, ["id"], "students.csv")
    students: List[Student] = []
    for _, row in df.iterrows():
        student_id = _text(row["id"])
        students.append(
            Student(
                id=student_id,
                name=_text(row.get("name", "")) or student_id,
                display_name=_text(row.get("display_name", "")),
                tags=parse_pipe_list(row.get("tags", "")),
            )
        )
    return students


def load_rules(path: Source) -> RuleSet:
    """Load ``kind,student_a,student_b`` rows.

    Unknown student ids are kept here; the solver drops them with a warning.
    """
    df = pd.read_csv(path, dtype={"student_a": str, "student_b": str})
    _require(df, ["kind", "student_a", "student_b"], "rules.csv")
    rules: List[Rule] = []
    for idx, row in df.iterrows():
        kind = _text(row["kind"]).lower()
        try:
            rule_kind = RuleKind(kind)
        except ValueError:
            raise ValueError(f"rules.csv row {idx + 2}: unknown rule kind {kind!r}") from None
        rules.append(Rule(kind=rule_kind, a=_text(row["student_a"]), b=_text(row["student_b"])))
    return RuleSet.from_rules(rules)


def load_all(
    seats_path: Source, students_path: Source, rules_path: Optional[Source] = None
) -> Tuple[Layout, List[Student], RuleSet]:
    """Convenience wrapper returning layout, students and rules."""
    layout = load_seats(seats_path)
    students = load_students(students_path)
    rules = load_rules(rules_path) if rules_path is not None else RuleSet()
    return layout, students, rules
