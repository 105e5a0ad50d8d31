"""
Dashboard API Router
Patient and caretaker dashboards and the caretaker activity feed
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models
from api.deps import get_db, get_feed_registry, require_caretaker, require_patient, services
from api.schemas.dashboard import (
    PatientOverview,
    MonthCalendar,
    CaretakerOverview,
    NotificationResponse,
    ActivityFeedResponse,
)
from services.activity_service import (
    ActivityFeedContext,
    ActivityFeedRegistry,
    patient_snapshot_fetcher,
)


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _feed_response(context: ActivityFeedContext, new_count: int = 0) -> ActivityFeedResponse:
    return ActivityFeedResponse(
        patient_id=context.patient_id,
        notifications=[
            NotificationResponse(
                id=n.id,
                message=n.message,
                timestamp=n.timestamp,
                read=n.read
            ) for n in context.notifications
        ],
        new_count=new_count,
        unread_count=context.unread_count,
        last_refreshed_at=context.last_refreshed_at
    )


# ==================== PATIENT ====================

@router.get("/patient", response_model=PatientOverview)
async def get_patient_overview(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    user: models.User = Depends(require_patient),
    db: Session = Depends(get_db)
):
    """
    Medication count, doses taken today and monthly adherence
    (defaults to the current month)
    """
    adherence_service = services.get_adherence_service()

    return await adherence_service.get_patient_overview(
        user,
        year=year,
        month=month,
        db=db
    )


@router.get("/patient/calendar", response_model=MonthCalendar)
async def get_patient_calendar(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    user: models.User = Depends(require_patient),
    db: Session = Depends(get_db)
):
    """
    Per-day taken / missed / future status of every medication for a month
    """
    adherence_service = services.get_adherence_service()
    today = adherence_service.today()

    return await adherence_service.get_month_calendar(
        user.id,
        year or today.year,
        month or today.month,
        today=today,
        db=db
    )


# ==================== CARETAKER ====================

@router.get("/caretaker/patients/{patient_id}", response_model=CaretakerOverview)
async def get_caretaker_overview(
    patient_id: str,
    days: Optional[int] = Query(None, ge=1, le=365, description="Limit the window to the last N days"),
    caretaker: models.User = Depends(require_caretaker),
    db: Session = Depends(get_db)
):
    """
    Adherence rate, streak, missed doses and recent activity for a patient
    """
    adherence_service = services.get_adherence_service()

    return await adherence_service.get_caretaker_overview(
        caretaker,
        patient_id,
        days=days,
        db=db
    )


@router.get("/caretaker/patients/{patient_id}/calendar", response_model=MonthCalendar)
async def get_caretaker_calendar(
    patient_id: str,
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    caretaker: models.User = Depends(require_caretaker),
    db: Session = Depends(get_db)
):
    """
    Month calendar of a monitored patient
    """
    user_service = services.get_user_service()
    adherence_service = services.get_adherence_service()

    patient = await user_service.get_monitored_patient(caretaker, patient_id, db=db)
    today = adherence_service.today()

    return await adherence_service.get_month_calendar(
        patient.id,
        year or today.year,
        month or today.month,
        today=today,
        db=db
    )


@router.get("/caretaker/patients/{patient_id}/activity", response_model=ActivityFeedResponse)
async def poll_activity(
    patient_id: str,
    caretaker: models.User = Depends(require_caretaker),
    registry: ActivityFeedRegistry = Depends(get_feed_registry),
    db: Session = Depends(get_db)
):
    """
    Poll the patient's logs and return the notification feed.

    The first poll opens the feed; only logs created after that are notified.
    """
    user_service = services.get_user_service()
    await user_service.get_monitored_patient(caretaker, patient_id, db=db)

    context = registry.get_or_create(caretaker.id, patient_id)
    new = await context.poll(patient_snapshot_fetcher(patient_id, db=db))

    return _feed_response(context, new_count=len(new or []))


@router.post("/caretaker/patients/{patient_id}/activity/read", response_model=ActivityFeedResponse)
async def mark_activity_read(
    patient_id: str,
    caretaker: models.User = Depends(require_caretaker),
    registry: ActivityFeedRegistry = Depends(get_feed_registry),
    db: Session = Depends(get_db)
):
    """Mark every notification read"""
    user_service = services.get_user_service()
    await user_service.get_monitored_patient(caretaker, patient_id, db=db)

    context = registry.get_or_create(caretaker.id, patient_id)
    context.mark_all_read()
    return _feed_response(context)


@router.post("/caretaker/patients/{patient_id}/activity/clear", response_model=ActivityFeedResponse)
async def clear_activity(
    patient_id: str,
    caretaker: models.User = Depends(require_caretaker),
    registry: ActivityFeedRegistry = Depends(get_feed_registry),
    db: Session = Depends(get_db)
):
    """Remove every notification from the feed"""
    user_service = services.get_user_service()
    await user_service.get_monitored_patient(caretaker, patient_id, db=db)

    context = registry.get_or_create(caretaker.id, patient_id)
    context.clear_all()
    return _feed_response(context)
