#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Random pair generation with last-run repeat avoidance.

A grouping is a list of groups (normally pairs) that partitions the pool of
participants. Each attempt walks a copy of the pool: the last person becomes
the leader and a random remaining person joins them. An attempt is rejected
when two members of one of its groups already shared a group in the previous
run. That narrow test is the whole repeat-avoidance rule: two different
groupings that share no pair are accepted even when they are otherwise similar.

Randomness comes from an injectable ``rand_index(n) -> int`` callable so that
tests can script every choice.
"""

from __future__ import annotations

import csv
import random
from collections import Counter
from itertools import combinations
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

Grouping = List[List[str]]
RandIndex = Callable[[int], int]

# ============================ CONFIG ==================================
DEFAULT_CONFIG = {
    "STUDENTS_PATH": "students.json",
    "STATE_PATH": "last_brief.json",
    # "-" turns the cumulative history off
    "HISTORY_PATH": "pair_history.json",

    # Regeneration cap; the loop gives up with NoValidGroupingError past this
    "MAX_ATTEMPTS": 1000,

    # "error": refuse odd pools, "trio": leftover joins the last pair
    "ODD_POLICY": "error",

    "SEED": None,
}

ODD_POLICIES = ("error", "trio")


def build_config(overrides: dict | None = None) -> dict:
    cfg = dict(DEFAULT_CONFIG)
    for key in (overrides or {}):
        if key not in cfg:
            raise KeyError(f"Unknown config key '{key}'")
    cfg.update(overrides or {})
    if cfg["ODD_POLICY"] not in ODD_POLICIES:
        raise ValueError(f"ODD_POLICY must be one of {', '.join(ODD_POLICIES)}")
    try:
        cfg["MAX_ATTEMPTS"] = int(cfg["MAX_ATTEMPTS"])
    except (TypeError, ValueError):
        raise ValueError(f"MAX_ATTEMPTS must be an integer, got {cfg['MAX_ATTEMPTS']!r}") from None
    if cfg["MAX_ATTEMPTS"] < 1:
        raise ValueError("MAX_ATTEMPTS must be >= 1")
    return cfg

# =====================================================================


class NoValidGroupingError(RuntimeError):
    """Every attempt collided with the previous grouping."""

    def __init__(self, attempts: int, pool_size: int):
        super().__init__(
            f"No grouping avoiding the previous run after {attempts} attempts "
            f"(pool of {pool_size})"
        )
        self.attempts = attempts
        self.pool_size = pool_size


ATTEMPT_FIELDS = ["Attempt", "Outcome", "Groups", "CollidingGroup"]


class AttemptLogger:
    def __init__(self):
        self.rows: List[Dict[str, object]] = []

    def log(self, attempt: int, grouping: Grouping, outcome: str, colliding: Optional[Sequence[str]] = None):
        self.rows.append({
            "Attempt": attempt,
            "Outcome": outcome,
            "Groups": format_groups_inline(grouping),
            "CollidingGroup": "+".join(colliding) if colliding else "",
        })

    @property
    def attempts(self) -> int:
        return len(self.rows)

    def write_csv(self, out: Path):
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=ATTEMPT_FIELDS)
            w.writeheader()
            for r in self.rows:
                w.writerow({k: r.get(k, "") for k in ATTEMPT_FIELDS})


def format_groups_inline(grouping: Iterable[Sequence[str]]) -> str:
    return " | ".join("+".join(group) for group in grouping)


def pair_key(a: str, b: str) -> Tuple[str, str]:
    """Sorted tuple, so (A, B) and (B, A) share one key."""
    return (a, b) if a <= b else (b, a)


def normalize_previous(raw) -> Optional[Grouping]:
    """Turn a decoded state file into a list of groups.

    Accepts ``None``, a list of groups, or an object keyed by group.
    """
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = list(raw.values())
    if not isinstance(raw, list):
        raise ValueError(f"Previous grouping must be a JSON array or object, got {type(raw).__name__}")
    groups: Grouping = []
    for idx, group in enumerate(raw):
        if not isinstance(group, list) or not all(isinstance(m, str) for m in group):
            raise ValueError(f"Previous group #{idx + 1} is not a list of names: {group!r}")
        groups.append(list(group))
    return groups


def find_collision(grouping: Grouping, previous: Optional[Grouping]) -> Optional[List[str]]:
    """Return the first group holding two people who shared a previous group.

    For pairs this is "the pair was already together". A trio counts as its
    three pairs.
    """
    if not previous:
        return None
    met = {pair_key(a, b) for group in previous for a, b in combinations(group, 2)}
    for group in grouping:
        if any(pair_key(a, b) in met for a, b in combinations(group, 2)):
            return group
    return None


def has_same_group(grouping: Grouping, previous: Optional[Grouping]) -> bool:
    return find_collision(grouping, previous) is not None


def _check_pool(participants: Sequence[str], odd_policy: str) -> None:
    if odd_policy not in ODD_POLICIES:
        raise ValueError(f"Unknown odd policy '{odd_policy}' (expected one of {', '.join(ODD_POLICIES)})")
    if len(participants) < 2:
        raise ValueError(f"Need at least 2 participants to build pairs, got {len(participants)}")
    if len(set(participants)) != len(participants):
        dupes = sorted(p for p, n in Counter(participants).items() if n > 1)
        raise ValueError("Duplicate participants: " + ", ".join(dupes))
    if len(participants) % 2 == 1 and odd_policy == "error":
        raise ValueError(
            f"Odd number of participants ({len(participants)}); "
            "use odd policy 'trio' to seat the leftover with the last pair"
        )


def _draw_member(rand_index: RandIndex, remaining: int) -> int:
    idx = rand_index(remaining)
    if not 0 <= idx < remaining:
        raise ValueError(f"rand_index returned {idx} for a list of {remaining}")
    return idx


def build_candidate(participants: Sequence[str], rand_index: RandIndex) -> Grouping:
    """One shuffle-and-pair pass over a fresh copy of the pool."""
    pool = list(participants)
    groups: Grouping = []
    while pool:
        leader = pool.pop()
        if not pool:
            # odd leftover; _check_pool only lets this through for "trio"
            groups[-1].append(leader)
            break
        member = pool.pop(_draw_member(rand_index, len(pool)))
        groups.append([leader, member])
    return groups


def generate_grouping(
    participants: Sequence[str],
    previous: Optional[Grouping] = None,
    *,
    rand_index: Optional[RandIndex] = None,
    max_attempts: int = DEFAULT_CONFIG["MAX_ATTEMPTS"],
    odd_policy: str = DEFAULT_CONFIG["ODD_POLICY"],
    logger: Optional[AttemptLogger] = None,
) -> Grouping:
    """Pair up ``participants`` so that no pair repeats a group of ``previous``.

    Without ``previous`` the first candidate is returned. Raises ``ValueError``
    for pools that cannot be paired under ``odd_policy`` and
    ``NoValidGroupingError`` once ``max_attempts`` candidates all collided.
    """
    _check_pool(participants, odd_policy)
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if rand_index is None:
        rand_index = random.Random().randrange

    for attempt in range(1, max_attempts + 1):
        candidate = build_candidate(participants, rand_index)
        colliding = find_collision(candidate, previous)
        if colliding is None:
            if logger is not None:
                logger.log(attempt, candidate, "accepted")
            return candidate
        if logger is not None:
            logger.log(attempt, candidate, "collision", colliding)
    raise NoValidGroupingError(max_attempts, len(participants))
