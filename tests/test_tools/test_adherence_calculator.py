"""
Tests for Adherence Calculator Tool
Tests dose counting, adherence rate, streak and monthly windows
"""

import pytest
from datetime import datetime, date
from typing import List, Optional

from tools.adherence_calculator import (
    AdherenceCalculator,
    AdherenceReport,
    dose_count_per_day,
    rate_percent,
)
from tools.records import LogRecord, MedicationRecord


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def calculator():
    """Create adherence calculator instance"""
    return AdherenceCalculator()


def make_medication(
    med_id: str = "med-a",
    frequency: str = "once daily",
    created_on="2025-07-01",
    log_dates: Optional[List[str]] = None,
    name: str = "A"
) -> MedicationRecord:
    logs = tuple(
        LogRecord(
            id=f"{med_id}-log-{i}",
            medication_id=med_id,
            date_taken=day,
            created_at=datetime(2025, 7, 1, 9, 0),
        )
        for i, day in enumerate(log_dates or [])
    )
    return MedicationRecord(
        id=med_id,
        name=name,
        frequency=frequency,
        created_on=created_on,
        logs=logs,
    )


# =============================================================================
# Frequency and Rounding
# =============================================================================

class TestDoseCountPerDay:
    """Tests for frequency keyword mapping"""

    @pytest.mark.unit
    @pytest.mark.parametrize("frequency,expected", [
        ("Four times a day", 4),
        ("three times daily", 3),
        ("twice daily", 2),
        ("TWICE", 2),
        ("once daily", 1),
        ("every morning", 1),
        ("", 1),
        (None, 1),
    ])
    def test_keywords(self, frequency, expected):
        assert dose_count_per_day(frequency) == expected


class TestRatePercent:
    """Tests for half-up integer percentages"""

    @pytest.mark.unit
    def test_half_rounds_up(self):
        assert rate_percent(1, 8) == 13  # 12.5

    @pytest.mark.unit
    def test_rounds_to_nearest(self):
        assert rate_percent(1, 3) == 33
        assert rate_percent(2, 3) == 67

    @pytest.mark.unit
    def test_zero_whole_is_zero(self):
        assert rate_percent(0, 0) == 0

    @pytest.mark.unit
    def test_full(self):
        assert rate_percent(7, 7) == 100


# =============================================================================
# Adherence Report
# =============================================================================

class TestCalculate:
    """Tests for the adherence report over a window"""

    @pytest.mark.unit
    def test_no_medications(self, calculator):
        report = calculator.calculate([], date(2025, 7, 1), date(2025, 7, 31))

        assert report == AdherenceReport()

    @pytest.mark.unit
    def test_no_logs_means_everything_missed(self, calculator):
        meds = [
            make_medication("a", "twice daily"),
            make_medication("b", "once daily"),
        ]

        report = calculator.calculate(meds, date(2025, 7, 1), date(2025, 7, 5))

        assert report.adherence_rate_percent == 0
        assert report.expected_dose_count == 15
        assert report.missed_dose_count == report.expected_dose_count
        assert report.current_streak_days == 0

    @pytest.mark.unit
    def test_twice_daily_taken_every_day(self, calculator):
        days = [f"2025-07-{d:02d}" for d in range(1, 11)]
        med = make_medication(frequency="twice daily", log_dates=days)

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 10))

        assert report.adherence_rate_percent == 100
        assert report.expected_dose_count == 20
        assert report.missed_dose_count == 0
        assert report.current_streak_days == 10

    @pytest.mark.unit
    def test_two_day_window_fully_taken(self, calculator):
        med = make_medication(
            frequency="twice daily",
            log_dates=["2025-07-01", "2025-07-02"],
        )

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 2))

        assert report.expected_dose_count == 4
        assert report.taken_dose_count == 4
        assert report.adherence_rate_percent == 100
        assert report.current_streak_days == 2

    @pytest.mark.unit
    def test_two_day_window_missing_last_day(self, calculator):
        med = make_medication(frequency="twice daily", log_dates=["2025-07-01"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 2))

        assert report.expected_dose_count == 4
        assert report.taken_dose_count == 2
        assert report.adherence_rate_percent == 50
        assert report.current_streak_days == 1

    @pytest.mark.unit
    def test_medication_created_inside_window(self, calculator):
        med = make_medication(created_on="2025-07-02", log_dates=["2025-07-02"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 2))

        assert report.expected_dose_count == 1
        assert report.taken_dose_count == 1

    @pytest.mark.unit
    def test_medication_created_after_window(self, calculator):
        med = make_medication(created_on="2025-08-01")

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 31))

        assert report.expected_dose_count == 0
        assert report.adherence_rate_percent == 0

    @pytest.mark.unit
    def test_duplicate_logs_count_once(self, calculator):
        med = make_medication(log_dates=["2025-07-01", "2025-07-01", "2025-07-01"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 1))

        assert report.taken_dose_count == 1
        assert report.expected_dose_count == 1
        assert report.adherence_rate_percent == 100

    @pytest.mark.unit
    def test_logs_outside_window_ignored(self, calculator):
        med = make_medication(log_dates=["2025-06-30", "2025-07-03"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 2))

        assert report.taken_dose_count == 0
        assert report.expected_dose_count == 2

    @pytest.mark.unit
    def test_inverted_window(self, calculator):
        med = make_medication(log_dates=["2025-07-01"])

        report = calculator.calculate([med], date(2025, 7, 5), date(2025, 7, 1))

        assert report.expected_dose_count == 0

    @pytest.mark.unit
    def test_idempotent(self, calculator):
        meds = [
            make_medication("a", "twice daily", log_dates=["2025-07-01", "2025-07-03"]),
            make_medication("b", "three times daily", "2025-07-02", ["2025-07-02"]),
        ]

        first = calculator.calculate(meds, date(2025, 7, 1), date(2025, 7, 3))
        second = calculator.calculate(meds, date(2025, 7, 1), date(2025, 7, 3))

        assert first == second


class TestMalformedRecords:
    """Unparseable dates are excluded, not fatal"""

    @pytest.mark.unit
    def test_bad_log_date_excluded(self, calculator):
        med = make_medication(log_dates=["2025-07-01", "07/02/2025", "2025-02-30"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 2))

        assert report.skipped_record_count == 2
        assert report.taken_dose_count == 1
        assert report.expected_dose_count == 2

    @pytest.mark.unit
    def test_bad_medication_date_excluded(self, calculator):
        good = make_medication("good", log_dates=["2025-07-01"])
        bad = make_medication("bad", created_on="not-a-date", log_dates=["2025-07-01"])

        report = calculator.calculate([good, bad], date(2025, 7, 1), date(2025, 7, 1))

        assert report.skipped_record_count == 1
        assert report.expected_dose_count == 1
        assert report.adherence_rate_percent == 100


# =============================================================================
# Streak
# =============================================================================

class TestStreak:
    """Tests for consecutive fully-taken days"""

    @pytest.mark.unit
    def test_gap_ends_streak(self, calculator):
        med = make_medication(log_dates=["2025-07-01", "2025-07-03", "2025-07-04"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 4))

        assert report.current_streak_days == 2

    @pytest.mark.unit
    def test_incomplete_last_day_does_not_break(self, calculator):
        med = make_medication(log_dates=["2025-07-01", "2025-07-02"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 3))

        assert report.current_streak_days == 2

    @pytest.mark.unit
    def test_two_missing_days_give_zero(self, calculator):
        med = make_medication(log_dates=["2025-07-01"])

        report = calculator.calculate([med], date(2025, 7, 1), date(2025, 7, 3))

        assert report.current_streak_days == 0

    @pytest.mark.unit
    def test_every_active_medication_required(self, calculator):
        a = make_medication("a", log_dates=["2025-07-01", "2025-07-02", "2025-07-03"])
        b = make_medication("b", log_dates=["2025-07-01", "2025-07-03"])

        report = calculator.calculate([a, b], date(2025, 7, 1), date(2025, 7, 3))

        assert report.current_streak_days == 1

    @pytest.mark.unit
    def test_medication_not_yet_created_is_not_required(self, calculator):
        a = make_medication("a", log_dates=["2025-07-01", "2025-07-02"])
        b = make_medication("b", created_on="2025-07-02", log_dates=["2025-07-02"])

        report = calculator.calculate([a, b], date(2025, 7, 1), date(2025, 7, 2))

        assert report.current_streak_days == 2


# =============================================================================
# Monthly Adherence
# =============================================================================

class TestCalculateMonth:
    """Tests for calendar-month windows"""

    @pytest.mark.unit
    def test_current_month_counts_up_to_today(self, calculator):
        med = make_medication(log_dates=["2025-07-01", "2025-07-02", "2025-07-03"])

        monthly = calculator.calculate_month([med], 2025, 7, today=date(2025, 7, 3))

        assert monthly.period == "current"
        assert monthly.window_start == date(2025, 7, 1)
        assert monthly.window_end == date(2025, 7, 3)
        assert monthly.report.expected_dose_count == 3
        assert monthly.report.adherence_rate_percent == 100

    @pytest.mark.unit
    def test_past_month_uses_whole_month(self, calculator):
        med = make_medication(created_on="2025-06-01")

        monthly = calculator.calculate_month([med], 2025, 6, today=date(2025, 7, 3))

        assert monthly.period == "past"
        assert monthly.window_end == date(2025, 6, 30)
        assert monthly.report.expected_dose_count == 30

    @pytest.mark.unit
    def test_future_month_is_empty(self, calculator):
        med = make_medication(log_dates=["2025-07-01"])

        monthly = calculator.calculate_month([med], 2025, 8, today=date(2025, 7, 3))

        assert monthly.period == "future"
        assert monthly.window_start is None
        assert monthly.report == AdherenceReport()
