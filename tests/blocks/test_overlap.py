import pytest

from src.timetrack.timetrack.blocks.overlap import (
    assert_disjoint,
    assert_no_conflict,
    find_conflict,
    find_conflicts,
    overlaps,
)
from src.timetrack.timetrack.core.enums import ErrorReason
from src.timetrack.timetrack.core.exceptions import BlockOverlapError, ConflictError
from src.timetrack.timetrack.days.model import Block, BlockDraft
from tests.fakes import utc


def _block(block_id, start_hour, end_hour):
    return Block(block_id=block_id, day_id=1, start_time=utc(2026, 2, 10, start_hour), end_time=utc(2026, 2, 10, end_hour))


def _draft(start_hour, end_hour, start_minute=0, end_minute=0):
    return BlockDraft(start_time=utc(2026, 2, 10, start_hour, start_minute), end_time=utc(2026, 2, 10, end_hour, end_minute))


def test_touching_intervals_do_not_overlap():
    assert not overlaps(_draft(9, 10), _draft(10, 11))
    assert not overlaps(_draft(10, 11), _draft(9, 10))


def test_partial_and_containing_intervals_overlap():
    assert overlaps(_draft(9, 11), _draft(10, 12))
    assert overlaps(_draft(9, 17), _draft(12, 13))
    assert overlaps(_draft(9, 10), _draft(9, 10))


def test_find_conflicts_honours_exclude_id():
    existing = [_block(1, 9, 10), _block(2, 10, 12)]
    candidate = _draft(9, 11)
    assert [b.block_id for b in find_conflicts(candidate, existing)] == [1, 2]
    assert [b.block_id for b in find_conflicts(candidate, existing, exclude_id=1)] == [2]
    assert find_conflict(_draft(12, 13), existing) is None


def test_assert_no_conflict_reports_conflicting_block():
    existing = [_block(7, 9, 10)]
    with pytest.raises(BlockOverlapError) as exc:
        assert_no_conflict(_draft(9, 9, 30, 45), existing)
    err = exc.value
    assert isinstance(err, ConflictError)
    assert err.reason == ErrorReason.BLOCK_OVERLAP
    assert err.details["conflicting_block"]["id"] == 7
    assert err.details["conflicting_block"]["start_time"] == "2026-02-10T09:00:00Z"


def test_assert_disjoint_finds_overlap_regardless_of_input_order():
    with pytest.raises(BlockOverlapError) as exc:
        assert_disjoint([_draft(13, 17), _draft(8, 9), _draft(9, 12), _draft(11, 14)])
    indexes = {exc.value.details["candidate"]["index"], exc.value.details["conflicting_block"]["index"]}
    assert indexes == {2, 3}


def test_assert_disjoint_accepts_back_to_back_entries():
    assert_disjoint([_draft(13, 17), _draft(9, 12), _draft(12, 13)])
    assert_disjoint([])
