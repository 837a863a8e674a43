#!/usr/bin/env python3
"""Summarize who has already worked with whom.

Reads the cumulative history written by pair_students.py and emits a per-pair
CSV (how often each duo met and in which brief last), a plaintext summary and
a console meeting matrix. Groups of three count as three duos.
"""

from __future__ import annotations

import argparse
import csv
import sys
from collections import defaultdict
from itertools import combinations
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from pair_students import load_history, load_participants
from pairing import pair_key

REPORT_FIELDS = ["PersonA", "PersonB", "TimesPaired", "LastBrief"]


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Report how often each pair has met", formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    ap.add_argument("--history", default="pair_history.json", type=Path, help="History JSON produced by pair_students.py")
    ap.add_argument("--students", default=None, type=Path, help="Optional roster so people who never met still show up")
    ap.add_argument("--out", default=Path("reports") / "pair_report.csv", type=Path, help="Where to write the per-pair CSV report")
    ap.add_argument("--summary", default=Path("reports") / "pair_report.txt", type=Path, help="Optional plaintext summary (set to '-' to skip)")
    ap.add_argument("--heatmap", default=None, type=Path, help="Optional PNG heatmap of the meeting matrix")
    ap.add_argument("--no-matrix", action="store_true", help="Do not print the meeting matrix")
    return ap.parse_args()


def count_pairs(entries: Iterable[Dict[str, object]]) -> Dict[Tuple[str, str], int]:
    counts: Dict[Tuple[str, str], int] = defaultdict(int)
    for entry in entries:
        for group in entry["groups"]:
            for a, b in combinations(group, 2):
                counts[pair_key(a, b)] += 1
    return dict(counts)


def last_briefs(entries: Iterable[Dict[str, object]]) -> Dict[Tuple[str, str], int]:
    last: Dict[Tuple[str, str], int] = {}
    for entry in entries:
        brief_id = int(entry["brief_id"])
        for group in entry["groups"]:
            for a, b in combinations(group, 2):
                key = pair_key(a, b)
                last[key] = max(last.get(key, 0), brief_id)
    return last


def collect_people(entries: Iterable[Dict[str, object]], extra: Iterable[str] = ()) -> List[str]:
    people = set(extra)
    for entry in entries:
        for group in entry["groups"]:
            people.update(group)
    return sorted(people)


def never_paired(counts: Dict[Tuple[str, str], int], people: Sequence[str]) -> List[Tuple[str, str]]:
    return [pair_key(a, b) for a, b in combinations(sorted(people), 2) if counts.get(pair_key(a, b), 0) == 0]


def build_report(
    counts: Dict[Tuple[str, str], int],
    last: Dict[Tuple[str, str], int],
) -> List[Dict[str, object]]:
    rows: List[Dict[str, object]] = []
    for (a, b), times in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
        rows.append(
            {
                "PersonA": a,
                "PersonB": b,
                "TimesPaired": times,
                "LastBrief": last.get((a, b), ""),
            }
        )
    return rows


def write_report(rows: List[Dict[str, object]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def write_summary(
    rows: List[Dict[str, object]],
    path: Path,
    briefs: int,
    unmet: List[Tuple[str, str]],
) -> None:
    if str(path) == "-":
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["Pairing report"]
    if not rows:
        lines.append("No pairs recorded yet.")
    else:
        lines.append(f"Briefs recorded: {briefs} (distinct pairs={len(rows)})")
        repeated = [row for row in rows if int(row["TimesPaired"]) > 1]
        if repeated:
            lines.append(
                "Repeated pairs: "
                + ", ".join(f"{row['PersonA']}+{row['PersonB']} ({row['TimesPaired']})" for row in repeated)
            )
    lines.append(f"Pairs that never met: {len(unmet)}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def short_label(name: str) -> str:
    parts = name.split()
    return parts[-1] if parts else name


def format_matrix(counts: Dict[Tuple[str, str], int], people: Sequence[str]) -> List[str]:
    labels = [short_label(p) for p in people]
    width = max((len(label) for label in labels), default=1)
    header = f"{'':>{width}} │" + "".join(f" {label[:3]:>3}" for label in labels)
    lines = [header, f"{'':─>{width}}─┼" + "────" * len(labels)]
    for i, a in enumerate(people):
        cells = []
        for j, b in enumerate(people):
            if i == j:
                cells.append("   .")
                continue
            score = counts.get(pair_key(a, b), 0)
            cells.append("   -" if score == 0 else f" {score:>3}")
        lines.append(f"{labels[i]:>{width}} │" + "".join(cells))
    return lines


def draw_heatmap(counts: Dict[Tuple[str, str], int], people: Sequence[str], out_path: Path, dpi: int = 150) -> Path:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    n = len(people)
    grid = [[0 if i == j else counts.get(pair_key(people[i], people[j]), 0) for j in range(n)] for i in range(n)]
    size = max(4.0, 0.45 * n + 2)
    fig, ax = plt.subplots(figsize=(size, size))
    im = ax.imshow(grid, cmap="PuRd", vmin=0)
    ax.set_xticks(range(n))
    ax.set_yticks(range(n))
    ax.set_xticklabels([short_label(p) for p in people], rotation=45, ha="right", fontsize=8)
    ax.set_yticklabels([short_label(p) for p in people], fontsize=8)
    ax.set_title("Times paired")
    fig.colorbar(im, ax=ax, label="Meetings")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=dpi)
    plt.close(fig)
    return out_path


def main() -> None:
    args = parse_args()
    entries = load_history(args.history)
    roster = load_participants(args.students) if args.students else []
    people = collect_people(entries, roster)
    counts = count_pairs(entries)
    rows = build_report(counts, last_briefs(entries))
    unmet = never_paired(counts, people)
    write_report(rows, args.out)
    write_summary(rows, args.summary, len(entries), unmet)
    print(f"Wrote report to {args.out}")
    if str(args.summary) != "-":
        print(f"Summary saved to {args.summary}")
    if not args.no_matrix and people:
        print("\nMeeting matrix:")
        for line in format_matrix(counts, people):
            print(line)
    if args.heatmap:
        if people:
            print(f"Wrote heatmap to {draw_heatmap(counts, people, args.heatmap)}")
        else:
            print("[warn] No people in history or roster; heatmap skipped", file=sys.stderr)


if __name__ == "__main__":
    main()
