from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..blocks.overlap import assert_disjoint, assert_no_conflict
from ..common.datetime_utils import combine_utc, ensure_utc, today_utc
from ..common.locks import KeyedLock
from ..common.time_of_day import TimeOfDay
from ..common.validators import (
    require_max_length,
    require_non_empty,
    require_ordered,
    require_within_window,
    validate_calendar_date,
    validate_time_of_day,
)
from ..core.constants import DEFAULT_APPLY_WINDOW_YEARS, DESCRIPTION_MAX_LENGTH, TEMPLATE_NAME_MAX_LENGTH, UNSET
from ..core.enums import EntryMode, ErrorReason, ReferenceWarningKind
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..days.model import BlockDraft, NewDay
from ..days.repository import DayRepository
from ..days.service import day_lock_key
from .model import ReferenceWarning, Template, TemplateApplication, TemplateEntry
from .repository import ReferenceRepository, TemplateRepository

logger = logging.getLogger(__name__)


def _field(raw: Any, name: str, default: Any = None) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name, default)
    return getattr(raw, name, default)


def parse_entry(raw: Any, index: int = 0) -> TemplateEntry:
    """Validate one template entry on its own (format and ordering)."""
    try:
        start = validate_time_of_day(_field(raw, "start_time"), "start_time")
        end = validate_time_of_day(_field(raw, "end_time"), "end_time")
        require_ordered(start, end)
        description = require_max_length(_field(raw, "description"), "description", DESCRIPTION_MAX_LENGTH)
    except ValidationError as e:
        e.details = {**e.details, "entry_index": index}
        raise
    return TemplateEntry(
        start_time=start,
        end_time=end,
        project_id=_field(raw, "project_id") or None,
        category_id=_field(raw, "category_id") or None,
        description=description or None,
        sort_order=index,
    )


def parse_entries(raw_entries: Optional[Iterable[Any]]) -> list[TemplateEntry]:
    if raw_entries is None or isinstance(raw_entries, (str, bytes, Mapping)):
        raise ValidationError("Entries must be a list", reason=ErrorReason.INVALID_FIELD, details={"field": "entries"})
    entries = [parse_entry(raw, i) for i, raw in enumerate(raw_entries)]
    if not entries:
        raise ValidationError("At least one entry is required", reason=ErrorReason.INVALID_FIELD, details={"field": "entries"})
    return entries


class TemplateService:
    """Template definition, derivation from a day, and application to a date."""

    def __init__(
        self,
        templates: TemplateRepository,
        days: DayRepository,
        references: ReferenceRepository | None = None,
        *,
        locks: KeyedLock | None = None,
        apply_window_years: int = DEFAULT_APPLY_WINDOW_YEARS,
    ):
        self._templates = templates
        self._days = days
        self._references = references
        self._locks = locks if locks is not None else KeyedLock()
        self._apply_window_years = int(apply_window_years)

    def _get_owned(self, user_id: int, template_id: int) -> Template:
        template = self._templates.get_by_id(int(template_id))
        if not template or template.user_id != int(user_id):
            raise NotFoundError(
                "Template not found",
                reason=ErrorReason.TEMPLATE_NOT_FOUND,
                details={"template_id": template_id},
            )
        return template

    @staticmethod
    def _validate_header(name, description) -> tuple[str, Optional[str]]:
        name = require_non_empty(name, "name")
        require_max_length(name, "name", TEMPLATE_NAME_MAX_LENGTH)
        description = require_max_length(description, "description", DESCRIPTION_MAX_LENGTH)
        return name, (description or None)

    # CRUD

    def get_template(self, user_id: int, template_id: int) -> Template:
        return self._get_owned(user_id, template_id)

    def list_templates(self, user_id: int) -> Sequence[Template]:
        return self._templates.list_for_user(int(user_id))

    def create_template(self, user_id: int, *, name: str, description: Optional[str] = None, entries) -> Template:
        """Entries are validated one by one; overlaps between them are only
        detected when the template is applied."""
        name, description = self._validate_header(name, description)
        parsed = parse_entries(entries)

        template = self._templates.create(user_id=int(user_id), name=name, description=description, entries=parsed)
        logger.info("template created: user=%s template=%s entries=%s", user_id, template.template_id, len(parsed))
        return template

    def create_from_day(self, user_id: int, day_id: int, *, name: str, description: Optional[str] = None) -> Template:
        name, description = self._validate_header(name, description)

        day = self._days.get_by_id(int(day_id))
        if not day or day.user_id != int(user_id):
            raise NotFoundError("Day not found", reason=ErrorReason.DAY_NOT_FOUND, details={"day_id": day_id})

        blocks = sorted(self._days.list_blocks(day.day_id), key=lambda b: b.start_time)
        if not blocks:
            raise ValidationError("Day has no time blocks", reason=ErrorReason.NO_BLOCKS, details={"day_id": day.day_id})

        entries: list[TemplateEntry] = []
        for index, block in enumerate(blocks):
            start = ensure_utc(block.start_time)
            end = ensure_utc(block.end_time)
            if end.date() != start.date():
                raise ValidationError(
                    "Block crosses midnight and cannot become a template entry",
                    reason=ErrorReason.INVALID_RANGE,
                    details={"block_id": block.block_id, "entry_index": index},
                )
            entries.append(
                parse_entry(
                    {
                        "start_time": TimeOfDay.from_datetime(start),
                        "end_time": TimeOfDay.from_datetime(end),
                        "project_id": block.project_id,
                        "category_id": block.category_id,
                        "description": block.description,
                    },
                    index,
                )
            )

        template = self._templates.create(user_id=int(user_id), name=name, description=description, entries=entries)
        logger.info("template created from day: user=%s day=%s template=%s", user_id, day.day_id, template.template_id)
        return template

    def update_template(
        self,
        user_id: int,
        template_id: int,
        *,
        name=UNSET,
        description=UNSET,
        entries=UNSET,
    ) -> Template:
        """Supplied ``entries`` replace the whole collection; entries are never patched one by one."""
        if name is UNSET and description is UNSET and entries is UNSET:
            raise ValidationError("At least one field must be provided", reason=ErrorReason.INVALID_FIELD)
        current = self._get_owned(user_id, template_id)
        new_name, new_description = self._validate_header(
            current.name if name is UNSET else name,
            current.description if description is UNSET else description,
        )
        parsed = None if entries is UNSET else parse_entries(entries)

        updated = self._templates.update(
            template_id=current.template_id,
            name=new_name,
            description=new_description,
            entries=parsed,
        )
        if updated is None:
            raise NotFoundError("Template not found", reason=ErrorReason.TEMPLATE_NOT_FOUND, details={"template_id": template_id})
        logger.info("template updated: user=%s template=%s entries_replaced=%s", user_id, template_id, parsed is not None)
        return updated

    def delete_template(self, user_id: int, template_id: int) -> None:
        template = self._get_owned(user_id, template_id)
        if not self._templates.delete(template.template_id):
            raise NotFoundError("Template not found", reason=ErrorReason.TEMPLATE_NOT_FOUND, details={"template_id": template_id})
        logger.info("template deleted: user=%s template=%s", user_id, template_id)

    # Application

    def _resolve_references(self, entries: Sequence[TemplateEntry]) -> tuple[list[TemplateEntry], list[ReferenceWarning]]:
        if self._references is None:
            return list(entries), []

        unavailable = self._references.get_unavailable(
            project_ids=[e.project_id for e in entries if e.project_id],
            category_ids=[e.category_id for e in entries if e.category_id],
        )
        resolved: list[TemplateEntry] = []
        warnings: list[ReferenceWarning] = []
        for index, e in enumerate(entries):
            project_id, category_id = e.project_id, e.category_id
            if project_id and project_id in unavailable.project_ids:
                warnings.append(
                    ReferenceWarning(
                        kind=ReferenceWarningKind.ARCHIVED_PROJECT,
                        entry_index=index,
                        reference_id=project_id,
                        message="Project was archived, entry created without project",
                    )
                )
                project_id = None
            if category_id and category_id in unavailable.category_ids:
                warnings.append(
                    ReferenceWarning(
                        kind=ReferenceWarningKind.INACTIVE_CATEGORY,
                        entry_index=index,
                        reference_id=category_id,
                        message="Category was deactivated, entry created without category",
                    )
                )
                category_id = None
            resolved.append(
                TemplateEntry(
                    start_time=e.start_time,
                    end_time=e.end_time,
                    project_id=project_id,
                    category_id=category_id,
                    description=e.description,
                    sort_order=e.sort_order,
                )
            )
        return resolved, warnings

    def apply_template(self, user_id: int, template_id: int, target_date, *, today: date | None = None) -> TemplateApplication:
        """Expand a template onto a date, all or nothing.

        The derived blocks are checked against each other and against the
        blocks already on that day; on any overlap nothing is written, not
        even the day.
        """
        try:
            target = validate_calendar_date(target_date)
        except ValidationError as e:
            raise ValidationError(
                "Date must be a valid YYYY-MM-DD date within the allowed window",
                reason=ErrorReason.DATE_OUT_OF_RANGE,
                details=e.details,
            ) from e
        require_within_window(target, today=today or today_utc(), years=self._apply_window_years)

        template = self._get_owned(user_id, template_id)
        if not template.entries:
            raise ValidationError(
                "Template has no entries to apply",
                reason=ErrorReason.TEMPLATE_EMPTY,
                details={"template_id": template.template_id},
            )

        entries, warnings = self._resolve_references(template.entries)
        entries.sort(key=lambda e: (e.start_time, e.end_time, e.sort_order))

        drafts = [
            BlockDraft(
                start_time=combine_utc(target, e.start_time),
                end_time=combine_utc(target, e.end_time),
                project_id=e.project_id,
                category_id=e.category_id,
                description=e.description,
                entry_mode=EntryMode.TEMPLATE,
            )
            for e in entries
        ]

        with self._locks.hold(day_lock_key(user_id, target)):
            day = self._days.get_for_user_and_date(int(user_id), target)
            existing = list(self._days.list_blocks(day.day_id)) if day else []

            try:
                assert_disjoint(drafts)
                for draft in drafts:
                    assert_no_conflict(draft, existing)
            except ConflictError as e:
                logger.warning(
                    "apply_template rejected: user=%s template=%s date=%s %s",
                    user_id,
                    template.template_id,
                    target,
                    e.details.get("conflicting_block"),
                )
                raise

            target_day = day or NewDay(
                user_id=int(user_id),
                work_date=target,
                start_time=min(d.start_time for d in drafts),
                end_time=max(d.end_time for d in drafts),
                description=None,
                entry_mode=EntryMode.TEMPLATE,
            )
            saved_day, blocks = self._days.commit_blocks(day=target_day, drafts=drafts)

        logger.info(
            "template applied: user=%s template=%s date=%s day=%s blocks=%s",
            user_id,
            template.template_id,
            target,
            saved_day.day_id,
            len(blocks),
        )
        return TemplateApplication(
            template_id=template.template_id,
            template_name=template.name,
            day=saved_day,
            blocks=sorted(blocks, key=lambda b: b.start_time),
            day_created=day is None,
            warnings=warnings,
        )
