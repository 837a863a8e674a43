"""Fixtures and helpers for pairing tests."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Sequence, Set

ROSTER: Sequence[str] = ("Ada", "Ben", "Cleo", "Dani", "Eli", "Faye")


def scripted(indices: Iterable[int]):
    """Return a ``rand_index`` that replays ``indices`` in order.

    Running out of scripted choices is a test bug, so it raises.
    """

    it = iter(indices)

    def rand_index(n: int) -> int:
        try:
            return next(it)
        except StopIteration:
            raise AssertionError(f"scripted rand_index exhausted (asked for index < {n})")

    return rand_index


def as_pairs(grouping: Iterable[Sequence[str]]) -> Set[FrozenSet[str]]:
    return {frozenset(group) for group in grouping}


def members(grouping: Iterable[Sequence[str]]) -> List[str]:
    return sorted(m for group in grouping for m in group)


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def write_students(path: Path, names: Iterable[str] = ROSTER) -> Path:
    return write_json(path, list(names))


def history_entry(brief_id: int, groups: List[List[str]]) -> Dict[str, object]:
    return {"brief_id": brief_id, "groups": groups}
