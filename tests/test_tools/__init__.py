"""
Test Tools Package
Tests for the tools module (adherence calculator, calendar index, activity feed, scheduler)
"""

__all__ = [
    "test_adherence_calculator",
    "test_calendar_index",
    "test_activity_feed",
    "test_refresh_scheduler",
]
