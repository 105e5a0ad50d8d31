"""
Adherence Service
Patient and caretaker dashboard data composed from the adherence calculator
and the calendar index
"""

import logging
from typing import Any, Dict, List, Optional
from datetime import date, timedelta
from sqlalchemy.orm import Session

from config import settings
import models
from services.medication_service import medication_service, to_medication_record
from services.user_service import user_service
from tools.adherence_calculator import AdherenceCalculator, adherence_calculator
from tools.calendar_dates import today_in
from tools.calendar_index import CalendarDayIndex
from tools.records import MedicationRecord


logger = logging.getLogger(__name__)


class AdherenceService:
    """
    Service for adherence dashboards. Nothing is cached: every call reloads
    the medications and recomputes from the full log set.
    """

    def __init__(
        self,
        calculator: AdherenceCalculator = adherence_calculator,
        tz_name: Optional[str] = None
    ):
        self.calculator = calculator
        self.tz_name = tz_name or settings.TIMEZONE

    def today(self) -> date:
        return today_in(self.tz_name)

    async def _records_for(
        self,
        owner_id: str,
        db: Optional[Session]
    ) -> List[MedicationRecord]:
        medications = await medication_service.list_medications_for(owner_id, db=db)
        return [to_medication_record(m, self.tz_name) for m in medications]

    async def get_patient_overview(
        self,
        user: Optional[models.User],
        year: Optional[int] = None,
        month: Optional[int] = None,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Header stats for the patient dashboard

        Returns:
            medication count, how many were taken today, and the monthly
            adherence for the requested month (default: current month)
        """
        medications = await medication_service.list_medications(user, db=db)
        records = [to_medication_record(m, self.tz_name) for m in medications]
        today = today or self.today()
        year = year or today.year
        month = month or today.month

        monthly = self.calculator.calculate_month(records, year, month, today)
        today_index = CalendarDayIndex.build(records, today, today, today)

        return {
            "today": today,
            "medication_count": len(records),
            "taken_today": today_index.taken_count(today),
            "taken_today_ids": [
                r.id for r in records if today_index.is_taken(r.id, today)
            ],
            "monthly": {
                "year": monthly.year,
                "month": monthly.month,
                "period": monthly.period,
                "window_start": monthly.window_start,
                "window_end": monthly.window_end,
                **monthly.report.to_dict(),
            },
        }

    async def get_month_calendar(
        self,
        owner_id: str,
        year: int,
        month: int,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Per-day, per-medication status for a calendar month"""
        records = await self._records_for(owner_id, db)
        today = today or self.today()
        index = CalendarDayIndex.for_month(records, year, month, today)

        days = []
        for day in index.days():
            entries = []
            for record in records:
                log = index.taken_log(record.id, day)
                entries.append({
                    "medication_id": record.id,
                    "medication_name": record.name,
                    "status": index.status(record.id, day).value,
                    "log_id": log.id if log else None,
                    "image_url": log.image_url if log else None,
                })
            days.append({
                "date": day,
                "is_future": index.is_future(day),
                "is_today": day == today,
                "taken_count": index.taken_count(day),
                "expected_count": index.active_count(day),
                "medications": entries,
            })

        return {
            "year": year,
            "month": month,
            "today": today,
            "days": days,
        }

    async def get_caretaker_overview(
        self,
        caretaker: Optional[models.User],
        patient_id: str,
        days: Optional[int] = None,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Adherence metrics and recent activity for a monitored patient.

        The window runs from the first medication's creation date (or the last
        ``days`` days) up to today.
        """
        patient = await user_service.get_monitored_patient(caretaker, patient_id, db=db)
        records = await self._records_for(patient.id, db)
        today = today or self.today()

        created = [r.created_on for r in records if isinstance(r.created_on, date)]
        window_start = min(created) if created else today
        if days:
            window_start = max(window_start, today - timedelta(days=days - 1))

        report = self.calculator.calculate(records, window_start, today)
        today_index = CalendarDayIndex.build(records, today, today, today)

        return {
            "patient_id": patient.id,
            "patient_name": patient.display_name,
            "window_start": window_start,
            "window_end": today,
            "report": report.to_dict(),
            "medications": [
                {
                    "id": r.id,
                    "name": r.name,
                    "dosage": r.dosage,
                    "frequency": r.frequency,
                    "taken_today": today_index.is_taken(r.id, today),
                }
                for r in records
            ],
            "recent_activity": self.recent_activity(records, settings.RECENT_ACTIVITY_LIMIT),
        }

    @staticmethod
    def recent_activity(
        records: List[MedicationRecord],
        limit: int
    ) -> List[Dict[str, Any]]:
        """Most recently created logs across all medications"""
        entries = [
            {
                "log_id": log.id,
                "medication_id": record.id,
                "medication_name": record.name,
                "date_taken": log.date_taken,
                "created_at": log.created_at,
                "image_url": log.image_url,
            }
            for record in records
            for log in record.logs
        ]
        entries.sort(key=lambda e: e["created_at"], reverse=True)
        return entries[:limit]


# Singleton instance
adherence_service = AdherenceService()
