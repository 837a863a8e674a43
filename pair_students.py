#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Draw this session's pairs and remember them for next time.

Inputs (cwd unless overridden):
  - students.json      JSON array of participant names (required)
  - last_brief.json    pairs of the previous run (optional; absent = first run)
  - config JSON        optional overrides of pairing.DEFAULT_CONFIG

Outputs:
  - last_brief.json    overwritten with the accepted pairs
  - pair_history.json  every accepted grouping with its brief id ('-' to skip)
  - attempt log CSV    optional, one row per generation attempt
  - stdout             the pairs, one block per group

A run never reproduces any pair of the previous run. Pools where that is
impossible (e.g. two people who were already together) stop with an error
after MAX_ATTEMPTS tries instead of looping forever.
"""

from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pairing import (
    AttemptLogger,
    Grouping,
    NoValidGroupingError,
    RandIndex,
    build_config,
    generate_grouping,
    normalize_previous,
)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate random pairs that avoid last run's pairs")
    ap.add_argument("--students", type=Path, help="JSON array of participant names (default: students.json)")
    ap.add_argument("--state", type=Path, help="Previous pairs, rewritten after the run (default: last_brief.json)")
    ap.add_argument("--history", type=str, help="Cumulative history JSON; '-' disables (default: pair_history.json)")
    ap.add_argument("--config", type=Path, help="Optional JSON file with CONFIG overrides")
    ap.add_argument("--max-attempts", type=int, help="Give up after this many colliding attempts")
    ap.add_argument("--seed", type=int, help="Seed the random generator for a reproducible draw")
    ap.add_argument("--odd-policy", choices=["error", "trio"], help="What to do with an odd pool")
    ap.add_argument("--attempt-log", type=Path, help="Optional CSV with every generation attempt")
    return ap.parse_args(argv)


# -------------------- JSON files --------------------
def read_json(path: Path):
    text = path.read_text(encoding="utf-8-sig")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON in {path}: {exc}") from exc


def write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def load_participants(path: Path) -> List[str]:
    data = read_json(path)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of names")
    people: List[str] = []
    for idx, item in enumerate(data):
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"{path}: entry #{idx + 1} is not a non-empty name: {item!r}")
        people.append(item.strip())
    return people


def load_previous_grouping(path: Path) -> Optional[Grouping]:
    if not path.exists():
        return None
    return normalize_previous(read_json(path))


def save_grouping(path: Path, grouping: Grouping) -> None:
    write_json(path, grouping)


def load_history(path: Path) -> List[Dict[str, object]]:
    if not path.exists():
        return []
    data = read_json(path)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of history entries")
    entries: List[Dict[str, object]] = []
    for idx, entry in enumerate(data):
        if not isinstance(entry, dict) or "groups" not in entry:
            raise ValueError(f"{path}: history entry #{idx + 1} has no 'groups'")
        try:
            brief_id = int(entry.get("brief_id", idx + 1))
        except (TypeError, ValueError):
            raise ValueError(f"{path}: history entry #{idx + 1} has a bad brief_id {entry.get('brief_id')!r}") from None
        entries.append(
            {
                "brief_id": brief_id,
                "groups": normalize_previous(entry["groups"]) or [],
            }
        )
    return entries


def append_history(path: Path, grouping: Grouping, entries: Optional[List[Dict[str, object]]] = None) -> int:
    """Append ``grouping`` as the next brief; ``entries`` skips re-reading the file."""
    if entries is None:
        entries = load_history(path)
    entries = list(entries)
    brief_id = max((int(e["brief_id"]) for e in entries), default=0) + 1
    entries.append({"brief_id": brief_id, "groups": grouping})
    write_json(path, entries)
    return brief_id


# -------------------- Console --------------------
def format_grouping(grouping: Grouping) -> List[str]:
    lines: List[str] = []
    for num, group in enumerate(grouping, start=1):
        lines.append(f"Group {num:>2}: {', '.join(group)}")
    return lines


def run_pairing(
    *,
    students: Path,
    state: Path,
    history: Optional[Path] = None,
    overrides: dict | None = None,
    rand_index: Optional[RandIndex] = None,
    attempt_log: Optional[Path] = None,
) -> Grouping:
    cfg = build_config(overrides)
    participants = load_participants(students)
    print(f"[info] {len(participants)} participants loaded from {students}", file=sys.stderr)

    previous = load_previous_grouping(state)
    if previous is None:
        print(f"[info] No previous grouping at {state}; first run", file=sys.stderr)
    else:
        print(f"[info] Avoiding {len(previous)} groups from {state}", file=sys.stderr)
    # every input is read before anything is written
    past = load_history(history) if history is not None else None

    if rand_index is None:
        rand_index = random.Random(cfg["SEED"]).randrange
    logger = AttemptLogger()
    try:
        grouping = generate_grouping(
            participants,
            previous,
            rand_index=rand_index,
            max_attempts=cfg["MAX_ATTEMPTS"],
            odd_policy=cfg["ODD_POLICY"],
            logger=logger,
        )
    finally:
        if attempt_log is not None:
            logger.write_csv(attempt_log)
    print(f"[info] Accepted after {logger.attempts} attempt(s)", file=sys.stderr)

    save_grouping(state, grouping)
    print(f"Wrote {state}", file=sys.stderr)
    if history is not None:
        brief_id = append_history(history, grouping, past)
        print(f"Recorded brief {brief_id} in {history}", file=sys.stderr)
    return grouping


def _resolve_overrides(args: argparse.Namespace) -> dict:
    overrides: dict = {}
    if args.config:
        data = read_json(args.config)
        if not isinstance(data, dict):
            raise ValueError(f"{args.config} must contain a JSON object")
        overrides.update(data)
    if args.students is not None:
        overrides["STUDENTS_PATH"] = str(args.students)
    if args.state is not None:
        overrides["STATE_PATH"] = str(args.state)
    if args.history is not None:
        overrides["HISTORY_PATH"] = args.history
    if args.max_attempts is not None:
        overrides["MAX_ATTEMPTS"] = args.max_attempts
    if args.seed is not None:
        overrides["SEED"] = args.seed
    if args.odd_policy is not None:
        overrides["ODD_POLICY"] = args.odd_policy
    return overrides


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        overrides = _resolve_overrides(args)
        cfg = build_config(overrides)
        history = None if cfg["HISTORY_PATH"] in ("", "-", None) else Path(cfg["HISTORY_PATH"])
        grouping = run_pairing(
            students=Path(cfg["STUDENTS_PATH"]),
            state=Path(cfg["STATE_PATH"]),
            history=history,
            overrides=overrides,
            attempt_log=args.attempt_log,
        )
    except FileNotFoundError as exc:
        raise SystemExit(f"Missing file: {exc.filename}")
    except KeyError as exc:
        raise SystemExit(str(exc.args[0]))
    except (ValueError, NoValidGroupingError) as exc:
        raise SystemExit(str(exc))

    print("Pairs:")
    for line in format_grouping(grouping):
        print(line)


if __name__ == "__main__":
    main()
