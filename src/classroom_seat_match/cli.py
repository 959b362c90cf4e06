"""Command line interface for ClassroomSeatMatch."""
from __future__ import annotations

import argparse
import csv
import logging
import random
import sys
from pathlib import Path
from typing import Sequence

from .adjacency import AUTO_GAP, MaxGap
from .csv_loader import load_rules, load_seats, load_students
from .models import RuleSet
from .presets import default_template
from .report import build_seat_graph, compute_rule_stats, grade_result
from .search import DEFAULT_NODE_LIMIT, DEFAULT_TIME_LIMIT_SEC
from .solver import SeatingSolver


def parse_max_gap(value: str) -> MaxGap:
    """argparse type for ``--max-gap``: a number, ``auto`` or ``none``."""
    lowered = value.strip().lower()
    if lowered == AUTO_GAP:
        return AUTO_GAP
    if lowered == "none":
        return None
    try:
        return float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, 'auto' or 'none', got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Classroom seat assignment")
    parser.add_argument("--students", required=True, help="Path to students.csv")
    parser.add_argument("--seats", help="Path to seats.csv (default: 6x6 paired desk template)")
    parser.add_argument("--rules", help="Path to rules.csv with together/apart pairs")
    parser.add_argument("--strategy", choices=["alpha", "random"], default="alpha",
                        help="alpha is reproducible, random shuffles tie-breaks.")
    parser.add_argument("--seed", type=int, help="Seed for the random strategy.")
    parser.add_argument("--front-back", action="store_true",
                        help="Also treat seats directly in front/behind as neighbors.")
    parser.add_argument("--max-gap", type=parse_max_gap, default=AUTO_GAP,
                        help="Seats further apart than this (px) in a row are not neighbors. "
                             "'auto' (default) breaks rows at aisles, 'none' links every pair.")
    parser.add_argument("--soft-tags", action="store_true",
                        help="Seat tagged students anywhere when no matching seat is left.")
    parser.add_argument("--node-limit", type=int, default=DEFAULT_NODE_LIMIT,
                        help="Search node budget per solve.")
    parser.add_argument("--time-limit", type=float, default=DEFAULT_TIME_LIMIT_SEC,
                        help="Search time budget per solve, in seconds.")
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: student,seat.")
    parser.add_argument("--out-conflicts", type=Path,
                        help="Write conflicts CSV: kind,cause,students,partners,message.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by ``python -m classroom_seat_match.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        layout = load_seats(args.seats) if args.seats else default_template()
        students = load_students(args.students)
        rules = load_rules(args.rules) if args.rules else RuleSet()

        solver = SeatingSolver(
            front_back=args.front_back,
            max_gap=args.max_gap,
            strict_tags=not args.soft_tags,
            node_limit=args.node_limit,
            time_limit_sec=args.time_limit,
            rng=random.Random(args.seed) if args.seed is not None else None,
        )
        result = solver.solve(layout, students, rules, args.strategy)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    # Print simple assignments in seat order
    order = {sid: i for i, sid in enumerate(layout.seat_ids())}
    for student, seat in sorted(result.seat_of.items(), key=lambda kv: order[kv[1]]):
        print(f"{student},{seat}")

    for c in result.conflicts:
        print(f"[CONFLICT] {c.kind.value}: {c.message}")

    stats = compute_rule_stats(
        result, rules, build_seat_graph(layout, solver.adjacency_for(layout)), [s.id for s in students]
    )
    print(f"[REPORT] grade={grade_result(stats)} seated={stats['seated']} unseated={stats['unseated']} "
          f"together={stats['together_satisfied']}/{stats['together_satisfied'] + stats['together_violated']} "
          f"apart={stats['apart_satisfied']}/{stats['apart_satisfied'] + stats['apart_violated']} "
          f"conflicts={stats['conflicts']}")

    # Optional outputs
    if args.out_assignments:
        args.out_assignments.parent.mkdir(parents=True, exist_ok=True)
        with args.out_assignments.open("w", newline="") as f:
            w = csv.writer(f)
            w.writerow(["student", "seat"])
            for student, seat in sorted(result.seat_of.items(), key=lambda kv: order[kv[1]]):
                w.writerow([student, seat])

    if args.out_conflicts:
        args.out_conflicts.parent.mkdir(parents=True, exist_ok=True)
        with args.out_conflicts.open("w", newline="") as f:
            w = csv.DictWriter(f, fieldnames=["kind", "cause", "students", "partners", "message"])
            w.writeheader()
            for c in result.conflicts:
                w.writerow({
                    "kind": c.kind.value,
                    "cause": c.cause or "",
                    "students": "|".join(c.students),
                    "partners": "|".join(c.partners),
                    "message": c.message,
                })
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
