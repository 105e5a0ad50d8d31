"""
Calendar Day Index
Per-day, per-medication taken/missed status for calendar views
"""

from typing import Dict, List, Optional, Sequence, Set
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from tools.calendar_dates import DateLike, iter_days, month_bounds, parse_calendar_date
from tools.records import LogRecord, MedicationRecord, parse_medications


class DayStatus(str, Enum):
    """Status of one medication on one calendar day"""
    TAKEN = "taken"
    MISSED = "missed"
    FUTURE = "future"      # after today, not yet applicable
    INACTIVE = "inactive"  # before the medication existed or outside the range


@dataclass
class CalendarDayIndex:
    """
    Answers "was medication M taken on day D" in O(1) after a single indexing
    pass over the range. Keys are calendar dates, never timestamps.
    """
    range_start: date
    range_end: date
    today: date
    medication_ids: List[str] = field(default_factory=list)
    skipped_record_count: int = 0
    _taken: Dict[date, Dict[str, LogRecord]] = field(default_factory=dict, repr=False)
    _active: Dict[date, Set[str]] = field(default_factory=dict, repr=False)

    @classmethod
    def build(
        cls,
        medications: Sequence[MedicationRecord],
        range_start: DateLike,
        range_end: DateLike,
        today: DateLike
    ) -> "CalendarDayIndex":
        start = parse_calendar_date(range_start)
        end = parse_calendar_date(range_end)
        today = parse_calendar_date(today)
        parsed, skipped = parse_medications(medications)

        index = cls(
            range_start=start,
            range_end=end,
            today=today,
            medication_ids=[med.id for med in parsed],
            skipped_record_count=skipped,
        )

        for day in iter_days(start, end):
            taken: Dict[str, LogRecord] = {}
            active: Set[str] = set()
            if day <= today:
                for med in parsed:
                    if not med.is_active_on(day):
                        continue
                    active.add(med.id)
                    logs = med.logs_by_date.get(day)
                    if logs:
                        # the earliest log stands for the day
                        taken[med.id] = min(logs, key=lambda log: log.created_at)
            index._taken[day] = taken
            index._active[day] = active

        return index

    @classmethod
    def for_month(
        cls,
        medications: Sequence[MedicationRecord],
        year: int,
        month: int,
        today: DateLike
    ) -> "CalendarDayIndex":
        first, last = month_bounds(year, month)
        return cls.build(medications, first, last, today)

    def days(self) -> List[date]:
        return list(iter_days(self.range_start, self.range_end))

    def is_future(self, day: DateLike) -> bool:
        return parse_calendar_date(day) > self.today

    def is_taken(self, medication_id: str, day: DateLike) -> bool:
        day = parse_calendar_date(day)
        return medication_id in self._taken.get(day, {})

    def taken_count(self, day: DateLike) -> int:
        """Number of distinct medications taken on a day"""
        return len(self._taken.get(parse_calendar_date(day), {}))

    def active_count(self, day: DateLike) -> int:
        """Number of medications expected on a day (0 for future days)"""
        return len(self._active.get(parse_calendar_date(day), ()))

    def taken_log(self, medication_id: str, day: DateLike) -> Optional[LogRecord]:
        return self._taken.get(parse_calendar_date(day), {}).get(medication_id)

    def status(self, medication_id: str, day: DateLike) -> DayStatus:
        day = parse_calendar_date(day)
        if day > self.today:
            return DayStatus.FUTURE
        if medication_id not in self._active.get(day, ()):
            return DayStatus.INACTIVE
        if self.is_taken(medication_id, day):
            return DayStatus.TAKEN
        return DayStatus.MISSED
