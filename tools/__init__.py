"""
Tools Package
Pure adherence logic for the MedTrack system
"""

from .calendar_dates import (
    DATE_FORMAT,
    parse_calendar_date,
    format_calendar_date,
    iter_days,
    month_bounds,
    clamp_window,
    today_in,
    to_local_date,
    format_time_of_day,
    utcnow,
)

from .records import (
    LogRecord,
    MedicationRecord,
    ParsedMedication,
    parse_medications,
)

from .adherence_calculator import (
    AdherenceCalculator,
    AdherenceReport,
    MonthlyAdherence,
    adherence_calculator,
    dose_count_per_day,
    rate_percent,
)

from .calendar_index import (
    CalendarDayIndex,
    DayStatus,
)

from .activity_feed import (
    ActivityFeedReducer,
    ActivityFeedState,
    NotificationEvent,
)

from .refresh_scheduler import RefreshScheduler


__all__ = [
    # Calendar dates
    "DATE_FORMAT",
    "parse_calendar_date",
    "format_calendar_date",
    "iter_days",
    "month_bounds",
    "clamp_window",
    "today_in",
    "to_local_date",
    "format_time_of_day",
    "utcnow",
    # Records
    "LogRecord",
    "MedicationRecord",
    "ParsedMedication",
    "parse_medications",
    # Adherence
    "AdherenceCalculator",
    "AdherenceReport",
    "MonthlyAdherence",
    "adherence_calculator",
    "dose_count_per_day",
    "rate_percent",
    # Calendar
    "CalendarDayIndex",
    "DayStatus",
    # Activity feed
    "ActivityFeedReducer",
    "ActivityFeedState",
    "NotificationEvent",
    # Polling
    "RefreshScheduler",
]
