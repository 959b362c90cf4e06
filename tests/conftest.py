"""Shared fixtures for the seating tests."""
import pathlib
import sys

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from classroom_seat_match.models import Layout, Seat, Student  # noqa: E402


def make_row(n, y=0, spacing=100, prefix="s", start=1):
    """``n`` seats in one row, ids ``s1..sn`` left to right."""
    return [Seat(id=f"{prefix}{start + i}", x=i * spacing, y=y) for i in range(n)]


def make_students(*ids, **tags):
    """Students named after their ids. ``tags`` maps id -> list of tags."""
    return [Student(id=i, name=i, tags=tags.get(i, [])) for i in ids]


@pytest.fixture
def row_of_six():
    return Layout(seats=make_row(6))


@pytest.fixture
def three_students():
    return make_students("S1", "S2", "S3")
