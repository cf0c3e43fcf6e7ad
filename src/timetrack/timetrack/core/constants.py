"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

TIME_OF_DAY_FORMAT = "%H:%M"
DATE_FORMAT = "%Y-%m-%d"

MINUTES_PER_DAY = 24 * 60

TEMPLATE_NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500

DEFAULT_APPLY_WINDOW_YEARS = 1
MIN_DURATION_MINUTES = 1


class _Unset:
    """Marks an optional field the caller did not supply (distinct from None)."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()
