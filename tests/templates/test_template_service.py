from datetime import date

import pytest

from src.timetrack.timetrack.common.locks import KeyedLock
from src.timetrack.timetrack.common.time_of_day import TimeOfDay
from src.timetrack.timetrack.core.enums import EntryMode, ErrorReason, ReferenceWarningKind
from src.timetrack.timetrack.core.exceptions import (
    BlockOverlapError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from src.timetrack.timetrack.days.service import DayService
from src.timetrack.timetrack.templates.model import Template, TemplateEntry
from src.timetrack.timetrack.templates.service import TemplateService
from tests.fakes import InMemoryDays, InMemoryReferences, InMemoryTemplates, utc

TODAY = date(2026, 10, 19)

WORKDAY = [
    {"start_time": "09:00", "end_time": "12:00", "project_id": 1, "description": "Deep work"},
    {"start_time": "13:00", "end_time": "17:00", "category_id": 2},
]


@pytest.fixture
def days():
    return InMemoryDays()


@pytest.fixture
def templates():
    return InMemoryTemplates()


@pytest.fixture
def references():
    return InMemoryReferences()


@pytest.fixture
def locks():
    return KeyedLock()


@pytest.fixture
def service(templates, days, references, locks):
    return TemplateService(templates, days, references, locks=locks)


@pytest.fixture
def day_service(days, locks):
    return DayService(days, locks=locks)


@pytest.fixture
def workday(service):
    return service.create_template(1, name="Workday", entries=WORKDAY)


def test_create_template_normalizes_entries(workday):
    assert workday.name == "Workday"
    assert [(str(e.start_time), str(e.end_time)) for e in workday.entries] == [("09:00", "12:00"), ("13:00", "17:00")]
    assert [e.sort_order for e in workday.entries] == [0, 1]


@pytest.mark.parametrize(
    "entries,reason",
    [
        ([{"start_time": "9:00", "end_time": "12:00"}], ErrorReason.INVALID_TIME_FORMAT),
        ([{"start_time": "12:00", "end_time": "09:00"}], ErrorReason.INVALID_RANGE),
        ([{"start_time": "12:00", "end_time": "12:00"}], ErrorReason.INVALID_RANGE),
        ([], ErrorReason.INVALID_FIELD),
    ],
)
def test_create_template_rejects_bad_entries(service, templates, entries, reason):
    with pytest.raises(ValidationError) as exc:
        service.create_template(1, name="Bad", entries=entries)
    assert exc.value.reason == reason
    assert templates.templates == {}


def test_create_template_reports_failing_entry_index(service):
    with pytest.raises(ValidationError) as exc:
        service.create_template(1, name="Bad", entries=[WORKDAY[0], {"start_time": "18:00", "end_time": "25:00"}])
    assert exc.value.details["entry_index"] == 1


def test_template_name_rules(service):
    with pytest.raises(ValidationError):
        service.create_template(1, name="  ", entries=WORKDAY)
    with pytest.raises(ValidationError):
        service.create_template(1, name="x" * 101, entries=WORKDAY)


def test_self_overlapping_entries_are_stored(service):
    template = service.create_template(
        1,
        name="Overlapping",
        entries=[{"start_time": "09:00", "end_time": "12:00"}, {"start_time": "11:00", "end_time": "14:00"}],
    )
    assert len(template.entries) == 2


def test_apply_creates_day_and_blocks(service, workday, days):
    result = service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    assert result.day_created is True
    assert result.entries_applied == 2
    assert result.day.work_date == date(2026, 2, 10)
    assert result.day.entry_mode == EntryMode.TEMPLATE
    assert result.day.start_time == utc(2026, 2, 10, 9)
    assert result.day.end_time == utc(2026, 2, 10, 17)
    assert [(b.start_time, b.end_time) for b in result.blocks] == [
        (utc(2026, 2, 10, 9), utc(2026, 2, 10, 12)),
        (utc(2026, 2, 10, 13), utc(2026, 2, 10, 17)),
    ]
    assert all(b.entry_mode == EntryMode.TEMPLATE for b in result.blocks)
    assert result.blocks[0].project_id == 1
    assert result.blocks[0].description == "Deep work"
    assert len(days.blocks) == 2


def test_apply_twice_to_same_date_adds_nothing(service, workday, days):
    service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    with pytest.raises(BlockOverlapError):
        service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    assert len(days.blocks) == 2
    assert len(days.days) == 1


def test_apply_into_existing_day_keeps_it(service, day_service, workday, days):
    day = day_service.start_day(1, "2026-02-10", now=utc(2026, 2, 10, 7))
    day_service.create_block(1, day.day_id, start_time=utc(2026, 2, 10, 7), end_time=utc(2026, 2, 10, 9))

    result = service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    assert result.day_created is False
    assert result.day.day_id == day.day_id
    assert len(days.list_blocks(day.day_id)) == 3


def test_apply_conflict_with_existing_block_writes_nothing(service, day_service, workday, days):
    day = day_service.start_day(1, "2026-02-10", now=utc(2026, 2, 10, 7))
    manual = day_service.create_block(1, day.day_id, start_time=utc(2026, 2, 10, 16), end_time=utc(2026, 2, 10, 18))

    with pytest.raises(BlockOverlapError) as exc:
        service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    assert exc.value.details["conflicting_block"]["id"] == manual.block_id
    assert list(days.blocks.values()) == [manual]


def test_apply_outside_window_fails_before_storage(service, workday, days):
    with pytest.raises(ValidationError) as exc:
        service.apply_template(1, workday.template_id, date(2027, 11, 23), today=TODAY)

    assert exc.value.reason == ErrorReason.DATE_OUT_OF_RANGE
    assert days.calls == []


def test_apply_self_overlapping_template_writes_nothing(service, days):
    template = service.create_template(
        1,
        name="Overlapping",
        entries=[{"start_time": "09:00", "end_time": "12:00"}, {"start_time": "11:00", "end_time": "14:00"}],
    )

    with pytest.raises(BlockOverlapError):
        service.apply_template(1, template.template_id, "2026-02-10", today=TODAY)

    assert days.days == {}
    assert "commit_blocks" not in days.calls


def test_apply_empty_template(service, templates):
    templates.templates[99] = Template(template_id=99, user_id=1, name="Empty")
    with pytest.raises(ValidationError) as exc:
        service.apply_template(1, 99, "2026-02-10", today=TODAY)
    assert exc.value.reason == ErrorReason.TEMPLATE_EMPTY


def test_apply_someone_elses_template(service, workday):
    with pytest.raises(NotFoundError) as exc:
        service.apply_template(2, workday.template_id, "2026-02-10", today=TODAY)
    assert exc.value.reason == ErrorReason.TEMPLATE_NOT_FOUND


def test_apply_storage_failure_leaves_nothing_behind(service, workday, days):
    days.fail_commit_after = 1

    with pytest.raises(StorageError):
        service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    assert days.days == {}
    assert days.blocks == {}


def test_apply_drops_unavailable_references_with_warnings(service, workday, references):
    references.archived_projects.add(1)
    references.inactive_categories.add(2)

    result = service.apply_template(1, workday.template_id, "2026-02-10", today=TODAY)

    assert [b.project_id for b in result.blocks] == [None, None]
    assert [b.category_id for b in result.blocks] == [None, None]
    assert [(w.kind, w.entry_index, w.reference_id) for w in result.warnings] == [
        (ReferenceWarningKind.ARCHIVED_PROJECT, 0, 1),
        (ReferenceWarningKind.INACTIVE_CATEGORY, 1, 2),
    ]
    assert result.to_dict()["warnings"][0]["type"] == "ARCHIVED_PROJECT"


def test_create_from_day_copies_block_times(service, day_service, days):
    day = day_service.start_day(1, "2026-02-10", now=utc(2026, 2, 10, 8))
    day_service.create_block(1, day.day_id, start_time=utc(2026, 2, 10, 13), end_time=utc(2026, 2, 10, 17, 30), category_id=4)
    day_service.create_block(1, day.day_id, start_time=utc(2026, 2, 10, 8, 15), end_time=utc(2026, 2, 10, 12))

    template = service.create_from_day(1, day.day_id, name="From Tuesday")

    assert [(str(e.start_time), str(e.end_time)) for e in template.entries] == [("08:15", "12:00"), ("13:00", "17:30")]
    assert template.entries[1].category_id == 4


def test_create_from_day_without_blocks(service, day_service):
    day = day_service.start_day(1, "2026-02-10", now=utc(2026, 2, 10, 8))
    with pytest.raises(ValidationError) as exc:
        service.create_from_day(1, day.day_id, name="Empty")
    assert exc.value.reason == ErrorReason.NO_BLOCKS


def test_update_replaces_entries_wholesale(service, workday):
    updated = service.update_template(
        1,
        workday.template_id,
        entries=[{"start_time": "10:00", "end_time": "11:00"}],
    )
    assert updated.name == "Workday"
    assert updated.entries == (TemplateEntry(start_time=TimeOfDay(600), end_time=TimeOfDay(660)),)


def test_update_header_keeps_entries(service, workday):
    updated = service.update_template(1, workday.template_id, name="Long day", description=None)
    assert updated.name == "Long day"
    assert updated.entries == workday.entries


def test_delete_template(service, workday):
    service.delete_template(1, workday.template_id)
    assert service.list_templates(1) == []
    with pytest.raises(NotFoundError):
        service.get_template(1, workday.template_id)


@pytest.mark.parametrize("target", ["2026-02-30", "10/02/2026", None])
def test_apply_malformed_date_is_out_of_range(service, workday, days, target):
    with pytest.raises(ValidationError) as exc:
        service.apply_template(1, workday.template_id, target, today=TODAY)
    assert exc.value.reason == ErrorReason.DATE_OUT_OF_RANGE
    assert days.calls == []


def test_update_without_fields_is_rejected(service, workday, templates):
    with pytest.raises(ValidationError) as exc:
        service.update_template(1, workday.template_id)
    assert exc.value.reason == ErrorReason.INVALID_FIELD
    assert templates.templates[workday.template_id] == workday
