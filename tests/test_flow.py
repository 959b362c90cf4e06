import csv

import pytest

from classroom_seat_match import cli, csv_loader, solver
from classroom_seat_match.models import ConflictKind


SEATS_CSV = """id,x,y,tags,excluded
s1,0,0,,
s2,100,0,,
s3,200,2,,true
s4,300,0,front row|near TB,
s5,0,170,back row,
s6,100,170,back row,
"""

STUDENTS_CSV = """id,name,display_name,tags
1,Ana,,front row
2,Ben,,
3,Cam,Cammy,
4,Dee,,back row
5,Eli,,
"""

RULES_CSV = """kind,student_a,student_b
together,2,3
apart,1,5
apart,1,99
"""


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "seats.csv").write_text(SEATS_CSV)
    (tmp_path / "students.csv").write_text(STUDENTS_CSV)
    (tmp_path / "rules.csv").write_text(RULES_CSV)
    return tmp_path


def test_loaders_parse_tags_and_exclusions(data_dir):
    layout, students, rules = csv_loader.load_all(
        data_dir / "seats.csv", data_dir / "students.csv", data_dir / "rules.csv"
    )
    assert layout.seat_ids() == ["s1", "s2", "s3", "s4", "s5", "s6"]
    assert layout.excluded == {"s3"}
    assert layout.seats[3].tags == {"front row", "near TB"}
    assert [s.id for s in students] == ["1", "2", "3", "4", "5"]
    assert students[2].label == "Cammy"
    assert students[0].tags == {"front row"}
    assert rules.together == [("2", "3")]
    assert rules.apart == [("1", "5"), ("1", "99")]


def test_full_flow(data_dir):
    layout, students, rules = csv_loader.load_all(
        data_dir / "seats.csv", data_dir / "students.csv", data_dir / "rules.csv"
    )
    result = solver.SeatingSolver().solve(layout, students, rules)

    # all students seated, excluded seat untouched
    assert len(result.seat_of) == len(students)
    assert "s3" not in result.seat_of.values()
    assert len(set(result.seat_of.values())) == len(students)

    # tags honored
    assert result.seat_of["1"] == "s4"
    assert result.seat_of["4"] in {"s5", "s6"}

    # the group is seated side by side, apart pair kept apart
    adj = solver.SeatingSolver().adjacency_for(layout)
    assert result.seat_of["3"] in adj[result.seat_of["2"]]
    assert result.seat_of["5"] not in adj[result.seat_of["1"]]
    assert result.conflicts == []


def test_missing_columns_raise(tmp_path):
    path = tmp_path / "seats.csv"
    path.write_text("id,x\ns1,0\n")
    with pytest.raises(ValueError, match="missing columns: y"):
        csv_loader.load_seats(path)


def test_unknown_rule_kind_raises(tmp_path):
    path = tmp_path / "rules.csv"
    path.write_text("kind,student_a,student_b\nnear,1,2\n")
    with pytest.raises(ValueError, match="unknown rule kind"):
        csv_loader.load_rules(path)


def test_cli_writes_outputs(data_dir, capsys):
    out_assign = data_dir / "out" / "assignments.csv"
    out_conflicts = data_dir / "out" / "conflicts.csv"
    code = cli.main([
        "--seats", str(data_dir / "seats.csv"),
        "--students", str(data_dir / "students.csv"),
        "--rules", str(data_dir / "rules.csv"),
        "--out-assignments", str(out_assign),
        "--out-conflicts", str(out_conflicts),
    ])
    assert code == 0
    printed = capsys.readouterr().out
    assert "[REPORT] grade=A seated=5 unseated=0" in printed

    with out_assign.open() as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 5
    assert {r["student"] for r in rows} == {"1", "2", "3", "4", "5"}
    with out_conflicts.open() as f:
        assert list(csv.DictReader(f)) == []


def test_cli_uses_default_template_and_reports_conflicts(tmp_path, capsys):
    path = tmp_path / "students.csv"
    path.write_text("id,name,tags\na,Ann,near TB\nb,Bo,\n")
    code = cli.main(["--students", str(path), "--strategy", "random", "--seed", "3"])
    assert code == 0
    printed = capsys.readouterr().out
    assert f"[CONFLICT] {ConflictKind.TAG_INFEASIBLE.value}" in printed
    assert "seated=1 unseated=1" in printed


def test_cli_reports_bad_input(tmp_path, capsys):
    students = tmp_path / "students.csv"
    students.write_text("id\na\n")
    rules = tmp_path / "rules.csv"
    rules.write_text("kind,student_a,student_b\nbeside,a,b\n")
    code = cli.main(["--students", str(students), "--rules", str(rules)])
    assert code == 2
    assert "error: rules.csv row 2" in capsys.readouterr().err


def test_max_gap_flag_accepts_auto_none_and_numbers():
    parser = cli.build_parser()
    assert parser.parse_args(["--students", "x"]).max_gap == "auto"
    assert parser.parse_args(["--students", "x", "--max-gap", "none"]).max_gap is None
    assert parser.parse_args(["--students", "x", "--max-gap", "150"]).max_gap == 150.0
    with pytest.raises(SystemExit):
        parser.parse_args(["--students", "x", "--max-gap", "wide"])
