from __future__ import annotations

import csv
import subprocess
import sys
from pathlib import Path

import report_pairings as report
from tests.utils import history_entry, write_json, write_students

ROOT = Path(__file__).resolve().parents[1]

ENTRIES = [
    history_entry(1, [["Ada Lovelace", "Ben Ng"], ["Cleo Park", "Dani Roy"]]),
    history_entry(2, [["Ada Lovelace", "Cleo Park"], ["Ben Ng", "Dani Roy"]]),
    history_entry(3, [["Ben Ng", "Ada Lovelace"], ["Dani Roy", "Cleo Park", "Eli Stone"]]),
]


def test_count_pairs_is_order_free_and_splits_trios() -> None:
    counts = report.count_pairs(ENTRIES)
    assert counts[("Ada Lovelace", "Ben Ng")] == 2
    assert counts[("Cleo Park", "Dani Roy")] == 2
    assert counts[("Cleo Park", "Eli Stone")] == 1
    assert counts[("Dani Roy", "Eli Stone")] == 1
    assert ("Ada Lovelace", "Dani Roy") not in counts


def test_build_report_orders_by_frequency() -> None:
    rows = report.build_report(report.count_pairs(ENTRIES), report.last_briefs(ENTRIES))
    assert rows[0] == {"PersonA": "Ada Lovelace", "PersonB": "Ben Ng", "TimesPaired": 2, "LastBrief": 3}
    assert rows[1]["PersonA"] == "Cleo Park" and rows[1]["LastBrief"] == 3
    assert {int(r["TimesPaired"]) for r in rows[2:]} == {1}


def test_never_paired_includes_roster_only_people() -> None:
    counts = report.count_pairs(ENTRIES[:1])
    people = report.collect_people(ENTRIES[:1], ["Zed"])
    unmet = report.never_paired(counts, people)
    assert ("Ada Lovelace", "Zed") in unmet
    assert ("Ada Lovelace", "Ben Ng") not in unmet
    assert len(unmet) == 10 - 2


def test_format_matrix() -> None:
    counts = {("A", "B"): 2}
    lines = report.format_matrix(counts, ["A", "B", "C"])
    assert lines[0] == "  │   A   B   C"
    assert lines[2] == "A │   .   2   -"
    assert lines[3] == "B │   2   .   -"
    assert lines[4] == "C │   -   -   ."


def test_short_label_uses_last_name() -> None:
    assert report.short_label("Ada Lovelace") == "Lovelace"
    assert report.short_label("Cher") == "Cher"


def test_write_summary_lists_repeats(tmp_path: Path) -> None:
    counts = report.count_pairs(ENTRIES)
    rows = report.build_report(counts, report.last_briefs(ENTRIES))
    people = report.collect_people(ENTRIES)
    summary = tmp_path / "summary.txt"
    report.write_summary(rows, summary, len(ENTRIES), report.never_paired(counts, people))

    text = summary.read_text(encoding="utf-8")
    assert "Briefs recorded: 3" in text
    assert "Ada Lovelace+Ben Ng (2)" in text
    assert "Pairs that never met: 4" in text


def test_write_summary_skips_dash(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    report.write_summary([], Path("-"), 0, [])
    assert not (tmp_path / "-").exists()


def test_heatmap_written(tmp_path: Path) -> None:
    counts = report.count_pairs(ENTRIES)
    out = report.draw_heatmap(counts, report.collect_people(ENTRIES), tmp_path / "charts" / "heat.png", dpi=50)
    assert out.exists()


def test_report_cli(tmp_path: Path) -> None:
    history = write_json(tmp_path / "pair_history.json", ENTRIES)
    students = write_students(tmp_path / "students.json", ["Ada Lovelace", "Ben Ng", "Cleo Park", "Dani Roy", "Eli Stone", "Faye Wu"])
    out = tmp_path / "report.csv"
    summary = tmp_path / "summary.txt"

    proc = subprocess.run(
        [
            sys.executable,
            str(ROOT / "report_pairings.py"),
            "--history",
            str(history),
            "--students",
            str(students),
            "--out",
            str(out),
            "--summary",
            str(summary),
        ],
        cwd=ROOT,
        capture_output=True,
        text=True,
        check=True,
    )

    rows = list(csv.DictReader(out.open(encoding="utf-8")))
    assert len(rows) == 6
    assert "Meeting matrix:" in proc.stdout
    assert "Wu" in proc.stdout
    assert "Pairs that never met: 9" in summary.read_text(encoding="utf-8")


def test_report_cli_without_people_skips_heatmap(tmp_path: Path) -> None:
    out = tmp_path / "report.csv"
    heat = tmp_path / "heat.png"

    proc = subprocess.run(
        [
            sys.executable,
            str(ROOT / "report_pairings.py"),
            "--history",
            str(tmp_path / "missing.json"),
            "--out",
            str(out),
            "--summary",
            "-",
            "--heatmap",
            str(heat),
        ],
        cwd=ROOT,
        capture_output=True,
        text=True,
        check=True,
    )

    assert not heat.exists()
    assert "heatmap skipped" in proc.stderr
    assert list(csv.DictReader(out.open(encoding="utf-8"))) == []
