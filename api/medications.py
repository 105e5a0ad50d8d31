"""
Medications API Router
Endpoints for medication management and dose logging
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from config import settings
import models
from api.deps import get_db, get_current_user, get_dose_guard, require_patient, services
from api.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    MedicationLogCreate,
    MedicationResponse,
    MedicationDetail,
    MedicationList,
    MedicationLogResponse,
    LogList,
)
from services.dose_service import MarkTakenGuard


router = APIRouter(prefix="/medications", tags=["medications"])


@router.post("", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
async def create_medication(
    medication_data: MedicationCreate,
    user: models.User = Depends(require_patient),
    db: Session = Depends(get_db)
):
    """
    Add a new medication

    - **name**: Medication name
    - **dosage**: Dosage (e.g., "500mg")
    - **frequency**: Free text; "twice", "three" and "four" set the daily dose count
    """
    medication_service = services.get_medication_service()

    return await medication_service.create_medication(
        user,
        medication_data.model_dump(),
        db=db
    )


@router.get("", response_model=MedicationList)
async def list_medications(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the caller's medications with their logs, newest first
    """
    medication_service = services.get_medication_service()

    medications = await medication_service.list_medications(user, db=db)
    return MedicationList(
        medications=[MedicationDetail.model_validate(m) for m in medications],
        total=len(medications)
    )


@router.get("/logs", response_model=LogList)
async def get_logs_for_date(
    log_date: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get every log the caller recorded for a calendar day
    """
    medication_service = services.get_medication_service()

    logs = await medication_service.get_logs_for_date(user, log_date, db=db)
    return LogList(
        date=log_date,
        logs=[MedicationLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.get("/{medication_id}", response_model=MedicationDetail)
async def get_medication(
    medication_id: str,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get one medication with its logs
    """
    medication_service = services.get_medication_service()

    return await medication_service.get_medication(user, medication_id, db=db)


@router.put("/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: str,
    medication_data: MedicationUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update medication information
    """
    medication_service = services.get_medication_service()

    updates = medication_data.model_dump(exclude_unset=True)

    return await medication_service.update_medication(
        user,
        medication_id,
        updates,
        db=db
    )


@router.delete("/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    medication_id: str,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete a medication together with its logs
    """
    medication_service = services.get_medication_service()

    await medication_service.delete_medication(user, medication_id, db=db)


@router.post(
    "/{medication_id}/logs",
    response_model=MedicationLogResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_log(
    medication_id: str,
    log_data: MedicationLogCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Record a dose taken on a calendar day (no later than today)
    """
    medication_service = services.get_medication_service()

    return await medication_service.create_log(
        user,
        medication_id,
        log_data.date_taken,
        image_url=log_data.image_url,
        notes=log_data.notes,
        db=db
    )


@router.post(
    "/{medication_id}/take",
    response_model=MedicationLogResponse,
    status_code=status.HTTP_201_CREATED
)
async def mark_taken(
    medication_id: str,
    date_taken: Optional[str] = Form(None, description="Calendar date, defaults to today"),
    notes: Optional[str] = Form(None, max_length=500),
    photo: Optional[UploadFile] = File(None, description="Proof photo (JPG, PNG or WEBP)"),
    user: models.User = Depends(get_current_user),
    guard: MarkTakenGuard = Depends(get_dose_guard),
    db: Session = Depends(get_db)
):
    """
    Mark a medication taken, optionally with a photo of today's dose.
    Returns 409 while a previous submission for the same medication is running.
    """
    dose_service = services.get_dose_service()

    photo_bytes = None
    content_type = None
    filename = None
    if photo is not None and photo.filename:
        # one byte past the limit is enough to reject an oversized photo
        photo_bytes = await photo.read(settings.PHOTO_MAX_BYTES + 1)
        content_type = photo.content_type
        filename = photo.filename

    return await dose_service.mark_taken(
        user,
        medication_id,
        guard,
        date_taken=date_taken or None,
        photo=photo_bytes,
        photo_content_type=content_type,
        photo_filename=filename,
        notes=notes,
        db=db
    )
