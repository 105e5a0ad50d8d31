"""
Dashboard Schemas
Pydantic models for the patient and caretaker dashboards and the activity feed
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field

from tools.calendar_index import DayStatus


# ==================== ADHERENCE ====================

class AdherenceReportResponse(BaseModel):
    """Adherence metrics over a window"""
    adherence_rate_percent: int = Field(..., ge=0, le=100)
    current_streak_days: int = Field(..., ge=0)
    taken_dose_count: int
    missed_dose_count: int
    expected_dose_count: int
    skipped_record_count: int = 0


class MonthlyAdherenceResponse(AdherenceReportResponse):
    """Adherence for a calendar month counted up to today"""
    year: int
    month: int
    period: str  # "past", "current" or "future"
    window_start: Optional[date] = None
    window_end: Optional[date] = None


# ==================== PATIENT DASHBOARD ====================

class PatientOverview(BaseModel):
    """Patient dashboard header"""
    today: date
    medication_count: int
    taken_today: int
    taken_today_ids: List[str]
    monthly: MonthlyAdherenceResponse


class CalendarMedicationEntry(BaseModel):
    """One medication's status on a day"""
    medication_id: str
    medication_name: str
    status: DayStatus
    log_id: Optional[str] = None
    image_url: Optional[str] = None


class CalendarDay(BaseModel):
    """One day of the calendar month"""
    date: date
    is_future: bool
    is_today: bool
    taken_count: int
    expected_count: int
    medications: List[CalendarMedicationEntry]


class MonthCalendar(BaseModel):
    """Per-day medication status for a month"""
    year: int
    month: int
    today: date
    days: List[CalendarDay]


# ==================== CARETAKER DASHBOARD ====================

class CaretakerMedication(BaseModel):
    """A monitored patient's medication"""
    id: str
    name: str
    dosage: str
    frequency: str
    taken_today: bool


class RecentActivityEntry(BaseModel):
    """A recently created log"""
    log_id: str
    medication_id: str
    medication_name: str
    date_taken: str
    created_at: datetime
    image_url: Optional[str] = None


class CaretakerOverview(BaseModel):
    """Adherence and recent activity for a monitored patient"""
    patient_id: str
    patient_name: str
    window_start: date
    window_end: date
    report: AdherenceReportResponse
    medications: List[CaretakerMedication]
    recent_activity: List[RecentActivityEntry]


# ==================== ACTIVITY FEED ====================

class NotificationResponse(BaseModel):
    """A "medication taken" notification"""
    id: str
    message: str
    timestamp: datetime
    read: bool


class ActivityFeedResponse(BaseModel):
    """Feed state after a poll or acknowledgment"""
    patient_id: str
    notifications: List[NotificationResponse]
    new_count: int = 0
    unread_count: int
    last_refreshed_at: Optional[datetime] = None
