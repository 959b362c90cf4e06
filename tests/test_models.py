import math

import pytest

from classroom_seat_match.models import (
    Layout,
    Rule,
    RuleKind,
    RuleSet,
    Seat,
    Strategy,
    Student,
    parse_bool,
    parse_pipe_list,
    tags_compatible,
)
from classroom_seat_match.presets import STUDENT_TAGS, default_template


def test_parse_pipe_list():
    assert parse_pipe_list("front row| near TB |") == ["front row", "near TB"]
    assert parse_pipe_list(float("nan")) == []
    assert parse_pipe_list(None) == []
    assert parse_bool("True") and not parse_bool(math.nan)


def test_student_label_falls_back():
    assert Student(id="7", name="Ana", display_name="  ").label == "Ana"
    assert Student(id="7", name="Ana", display_name="Annie").label == "Annie"
    assert Student(id="7").label == "7"


def test_tags_accept_lists_and_pipe_strings():
    seat = Seat("s1", 0, 0, tags="front row|near TB")
    assert seat.tags == frozenset({"front row", "near TB"})
    assert Student(id="a", tags=["front row"]).tags == {"front row"}


def test_tags_compatible_requires_every_tag():
    seat = Seat("s1", 0, 0, tags=["front row"])
    assert tags_compatible(Student(id="a"), seat)
    assert tags_compatible(Student(id="a", tags=["front row"]), seat)
    assert not tags_compatible(Student(id="a", tags=["front row", "near TB"]), seat)


def test_strategy_parse():
    assert Strategy.parse("ALPHA") is Strategy.ALPHA
    assert Strategy.parse(Strategy.RANDOM) is Strategy.RANDOM
    with pytest.raises(ValueError):
        Strategy.parse("zigzag")


def test_ruleset_from_rules():
    rules = RuleSet.from_rules([
        Rule(RuleKind.TOGETHER, "a", "b"),
        Rule(RuleKind.APART, "a", "c"),
    ])
    assert rules.together == [("a", "b")]
    assert rules.apart == [("a", "c")]


def test_layout_open_seats_keep_order():
    layout = Layout(seats=[Seat("b", 0, 0), Seat("a", 100, 0), Seat("c", 200, 0)], excluded=["a"])
    assert [s.id for s in layout.open_seats()] == ["b", "c"]
    assert layout.excluded == frozenset({"a"})


def test_default_template_geometry():
    layout = default_template()
    assert len(layout.seats) == 36
    assert layout.seats[0].id == "d1" and layout.seats[-1].id == "d36"
    assert [s.x for s in layout.seats[:6]] == [0, 120, 315, 435, 630, 750]
    assert layout.seats[6].y == 170
    assert "front row" in STUDENT_TAGS
