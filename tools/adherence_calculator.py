"""
Adherence Calculator
Turns medications and their daily logs into adherence rate, streak and
dose counts for a calendar-date window
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from dataclasses import dataclass, asdict
from datetime import date

from tools.calendar_dates import clamp_window, iter_days, month_bounds
from tools.records import MedicationRecord, ParsedMedication, parse_medications


logger = logging.getLogger(__name__)


# Keyword -> doses per day, checked in order; anything else is once a day
FREQUENCY_KEYWORDS = (
    ("four", 4),
    ("three", 3),
    ("twice", 2),
)


def dose_count_per_day(frequency: Optional[str]) -> int:
    """
    Map a free-text frequency to a number of doses per day

    >>> dose_count_per_day("Twice daily")
    2
    >>> dose_count_per_day("as needed")
    1
    """
    text = (frequency or "").lower()
    for keyword, count in FREQUENCY_KEYWORDS:
        if keyword in text:
            return count
    return 1


def rate_percent(part: int, whole: int) -> int:
    """100 * part / whole rounded half-up to an integer, 0 when whole is 0"""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


@dataclass(frozen=True)
class AdherenceReport:
    """Adherence facts for one window"""
    adherence_rate_percent: int = 0
    current_streak_days: int = 0
    taken_dose_count: int = 0
    missed_dose_count: int = 0
    expected_dose_count: int = 0
    skipped_record_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MonthlyAdherence:
    """Adherence for a calendar month, counted up to today"""
    year: int
    month: int
    period: str  # "past", "current" or "future"
    window_start: Optional[date]
    window_end: Optional[date]
    report: AdherenceReport


class AdherenceCalculator:
    """
    Pure adherence math over a set of medications.

    A medication is expected on every day from its creation date (or the window
    start, whichever is later) to the window end. Several logs on the same day
    count once.
    """

    def calculate(
        self,
        medications: Sequence[MedicationRecord],
        window_start: date,
        window_end: date
    ) -> AdherenceReport:
        """
        Compute the adherence report for an inclusive window.

        The caller clamps window_end to today; days after it are never expected.
        """
        parsed, skipped = parse_medications(medications)
        if not parsed or window_start > window_end:
            return AdherenceReport(skipped_record_count=skipped)

        expected = 0
        taken = 0
        active_days = set()

        for med in parsed:
            per_day = dose_count_per_day(med.record.frequency)
            taken_dates = med.taken_dates
            for day in iter_days(max(med.created_on, window_start), window_end):
                active_days.add(day)
                expected += per_day
                if day in taken_dates:
                    taken += per_day

        streak = self._current_streak(parsed, active_days, window_end)

        return AdherenceReport(
            adherence_rate_percent=rate_percent(taken, expected),
            current_streak_days=streak,
            taken_dose_count=taken,
            missed_dose_count=expected - taken,
            expected_dose_count=expected,
            skipped_record_count=skipped,
        )

    def _current_streak(
        self,
        medications: List[ParsedMedication],
        active_days: set,
        window_end: date
    ) -> int:
        """
        Count consecutive fully-taken days walking back from the most recent.
        The window's last day may still be in progress, so an incomplete last
        day is passed over instead of ending the streak.
        """
        taken_by_med = {med.id: med.taken_dates for med in medications}
        streak = 0

        for i, day in enumerate(sorted(active_days, reverse=True)):
            complete = all(
                day in taken_by_med[med.id]
                for med in medications
                if med.is_active_on(day)
            )
            if complete:
                streak += 1
            elif i == 0 and day == window_end:
                continue
            else:
                break

        return streak

    def calculate_month(
        self,
        medications: Sequence[MedicationRecord],
        year: int,
        month: int,
        today: date
    ) -> MonthlyAdherence:
        """Adherence for a calendar month; future days are not counted"""
        first, last = month_bounds(year, month)
        window = clamp_window(first, last, today)

        if window is None:
            return MonthlyAdherence(
                year=year,
                month=month,
                period="future",
                window_start=None,
                window_end=None,
                report=AdherenceReport(),
            )

        period = "current" if first <= today <= last else "past"
        report = self.calculate(medications, window[0], window[1])
        logger.debug(
            f"Monthly adherence {year}-{month:02d} ({period}): "
            f"{report.adherence_rate_percent}%"
        )
        return MonthlyAdherence(
            year=year,
            month=month,
            period=period,
            window_start=window[0],
            window_end=window[1],
            report=report,
        )


# Singleton instance
adherence_calculator = AdherenceCalculator()
