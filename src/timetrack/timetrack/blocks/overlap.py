"""Interval overlap detection for day blocks and template expansion.

Intervals are half-open ``[start_time, end_time)``: 09:00-10:00 and
10:00-11:00 touch but do not overlap. Everything here is read-only.
"""

from __future__ import annotations

from typing import Any, Hashable, Iterable, Optional, Protocol, Sequence

from ..common.datetime_utils import isoformat_z
from ..core.exceptions import BlockOverlapError


class Interval(Protocol):
    start_time: Any
    end_time: Any


def _id_of(interval: Interval) -> Optional[Hashable]:
    return getattr(interval, "block_id", None)


def describe(interval: Interval) -> dict:
    def _fmt(v):
        return isoformat_z(v) if hasattr(v, "tzinfo") else str(v)

    return {
        "id": _id_of(interval),
        "start_time": _fmt(interval.start_time),
        "end_time": _fmt(interval.end_time),
    }


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start_time < b.end_time and b.start_time < a.end_time


def find_conflicts(candidate: Interval, existing: Iterable[Interval], exclude_id: Optional[Hashable] = None) -> list:
    return [
        block
        for block in existing
        if not (exclude_id is not None and _id_of(block) == exclude_id) and overlaps(candidate, block)
    ]


def find_conflict(candidate: Interval, existing: Iterable[Interval], exclude_id: Optional[Hashable] = None):
    for block in existing:
        if exclude_id is not None and _id_of(block) == exclude_id:
            continue
        if overlaps(candidate, block):
            return block
    return None


def assert_no_conflict(candidate: Interval, existing: Sequence[Interval], exclude_id: Optional[Hashable] = None) -> None:
    conflicts = find_conflicts(candidate, existing, exclude_id)
    if not conflicts:
        return
    first = conflicts[0]
    raise BlockOverlapError(
        "Time block overlaps with existing block(s)",
        conflicting=first,
        details={
            "candidate": describe(candidate),
            "conflicting_block": describe(first),
            "conflicting_blocks": [describe(b) for b in conflicts],
        },
    )


def assert_disjoint(candidates: Sequence[Interval]) -> None:
    """Check a candidate set against itself.

    After sorting by start, only neighbours need comparing: if any pair
    overlaps, some adjacent pair does.
    """
    ordered = sorted(enumerate(candidates), key=lambda pair: (pair[1].start_time, pair[1].end_time))
    for (i, prev), (j, cur) in zip(ordered, ordered[1:]):
        if overlaps(prev, cur):
            raise BlockOverlapError(
                "Template entries overlap each other on the target date",
                conflicting=prev,
                details={
                    "candidate": {**describe(cur), "index": j},
                    "conflicting_block": {**describe(prev), "index": i},
                },
            )
