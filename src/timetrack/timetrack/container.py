from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .common.locks import KeyedLock
from .core.constants import DEFAULT_APPLY_WINDOW_YEARS
from .database.bootstrap import db_config_from_settings
from .database.connection import DatabaseConnection
from .days.mysql_day_repository import MySQLDayRepository
from .days.repository import DayRepository
from .days.service import DayService
from .templates.mysql_template_repository import MySQLReferenceRepository, MySQLTemplateRepository
from .templates.repository import ReferenceRepository, TemplateRepository
from .templates.service import TemplateService
from .timers.mysql_timer_repository import MySQLTimeEntryRepository
from .timers.repository import TimeEntryRepository
from .timers.service import TimerService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    entries_repo: TimeEntryRepository
    days_repo: DayRepository
    templates_repo: TemplateRepository
    references_repo: Optional[ReferenceRepository]

    locks: KeyedLock

    timer_service: TimerService
    day_service: DayService
    template_service: TemplateService


def wire(
    *,
    entries_repo: TimeEntryRepository,
    days_repo: DayRepository,
    templates_repo: TemplateRepository,
    references_repo: Optional[ReferenceRepository] = None,
    conn: Optional[DatabaseConnection] = None,
    apply_window_years: int = DEFAULT_APPLY_WINDOW_YEARS,
) -> Container:
    # Day and template services must share one lock registry: both write a day's blocks.
    locks = KeyedLock()

    timer_service = TimerService(entries_repo, locks=locks)
    day_service = DayService(days_repo, locks=locks)
    template_service = TemplateService(
        templates_repo,
        days_repo,
        references_repo,
        locks=locks,
        apply_window_years=apply_window_years,
    )

    return Container(
        conn=conn,
        entries_repo=entries_repo,
        days_repo=days_repo,
        templates_repo=templates_repo,
        references_repo=references_repo,
        locks=locks,
        timer_service=timer_service,
        day_service=day_service,
        template_service=template_service,
    )


def build_container(*, db_config: dict, apply_window_years: int = DEFAULT_APPLY_WINDOW_YEARS) -> Container:
    conn = DatabaseConnection.get_instance(db_config_from_settings(db_config))

    return wire(
        entries_repo=MySQLTimeEntryRepository(conn),
        days_repo=MySQLDayRepository(conn),
        templates_repo=MySQLTemplateRepository(conn),
        references_repo=MySQLReferenceRepository(conn),
        conn=conn,
        apply_window_years=apply_window_years,
    )
