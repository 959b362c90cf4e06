from classroom_seat_match.adjacency import build_adjacency
from classroom_seat_match.models import AssignmentResult, Layout, RuleSet
from classroom_seat_match.report import build_seat_graph, compute_rule_stats, grade_result, row_occupancy

from conftest import make_row


def make_graph(layout):
    return build_seat_graph(layout, build_adjacency(layout.seats))


def test_seat_graph_mirrors_adjacency():
    layout = Layout(seats=make_row(3) + make_row(2, y=200, start=4), excluded={"s5"})
    G = make_graph(layout)
    assert {frozenset(e) for e in G.edges()} == {frozenset(("s1", "s2")), frozenset(("s2", "s3")), frozenset(("s4", "s5"))}
    assert G.nodes["s5"]["excluded"] is True
    assert G.nodes["s1"]["x"] == 0


def test_stats_count_satisfied_and_violated_rules():
    layout = Layout(seats=make_row(4))
    result = AssignmentResult(seat_of={"A": "s1", "B": "s2", "C": "s3", "D": "s4"}, conflicts=[])
    rules = RuleSet(
        together=[("A", "B"), ("B", "A"), ("A", "D")],
        apart=[("A", "C"), ("C", "D")],
    )
    stats = compute_rule_stats(result, rules, make_graph(layout))
    assert stats["together_satisfied"] == 1
    assert stats["together_violated"] == 1
    assert stats["apart_satisfied"] == 1
    assert stats["apart_violated"] == 1
    assert stats["groups_total"] == 1
    assert stats["groups_connected"] == 0
    assert stats["satisfied_share"] == 0.5
    assert grade_result(stats) == "D"


def test_rules_outside_roster_are_ignored():
    layout = Layout(seats=make_row(3))
    result = AssignmentResult(seat_of={"A": "s1", "B": "s3"}, conflicts=[])
    rules = RuleSet(apart=[("A", "B"), ("A", "ghost")])
    stats = compute_rule_stats(result, rules, make_graph(layout), ["A", "B"])
    assert stats["apart_satisfied"] == 1
    assert stats["apart_violated"] == 0
    assert grade_result(stats) == "A"


def test_grade_without_rules_is_a():
    stats = compute_rule_stats(AssignmentResult(seat_of={}, conflicts=[]), RuleSet(), make_graph(Layout(seats=[])))
    assert stats["satisfied_share"] == 1.0
    assert grade_result(stats) == "A"


def test_row_occupancy():
    layout = Layout(seats=make_row(3) + make_row(2, y=170, start=4), excluded={"s3"})
    result = AssignmentResult(seat_of={"A": "s1", "B": "s5"}, conflicts=[])
    rows = row_occupancy(layout, result)
    assert rows == [
        {"row": 1, "seats": 3, "seated": 1, "open": 1, "excluded": 1, "occupied": "s1"},
        {"row": 2, "seats": 2, "seated": 1, "open": 1, "excluded": 0, "occupied": "s5"},
    ]
