from __future__ import annotations

from enum import Enum


class EntryMode(str, Enum):
    """How a time record was produced."""

    SIMPLE = "simple"
    DAY = "day"
    TEMPLATE = "template"


class ErrorReason(str, Enum):
    """Machine-readable reason attached to domain errors."""

    INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
    INVALID_INSTANT = "INVALID_INSTANT"
    INVALID_DATE = "INVALID_DATE"
    INVALID_RANGE = "INVALID_RANGE"
    DATE_OUT_OF_RANGE = "DATE_OUT_OF_RANGE"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_PROJECT_ID = "INVALID_PROJECT_ID"
    INVALID_CATEGORY_ID = "INVALID_CATEGORY_ID"
    TEMPLATE_EMPTY = "TEMPLATE_EMPTY"
    NO_BLOCKS = "NO_BLOCKS"

    ACTIVE_TIMER_EXISTS = "ACTIVE_TIMER_EXISTS"
    DAY_ALREADY_STARTED = "DAY_ALREADY_STARTED"
    DAY_ALREADY_ENDED = "DAY_ALREADY_ENDED"
    BLOCK_OVERLAP = "BLOCK_OVERLAP"

    NO_ACTIVE_TIMER = "NO_ACTIVE_TIMER"
    DAY_NOT_FOUND = "DAY_NOT_FOUND"
    BLOCK_NOT_FOUND = "BLOCK_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"


class ReferenceWarningKind(str, Enum):
    """Why a template entry lost its project/category when applied."""

    ARCHIVED_PROJECT = "ARCHIVED_PROJECT"
    INACTIVE_CATEGORY = "INACTIVE_CATEGORY"
