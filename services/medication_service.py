"""
Medication Service
Business logic for medications and their "taken" logs
"""

import logging
from typing import Any, Dict, List, Optional
from datetime import date
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from database import get_db_context
from exceptions import (
    BackendUnavailableError,
    DataFormatError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
import models
from tools.calendar_dates import (
    DateLike,
    format_calendar_date,
    parse_calendar_date,
    to_local_date,
    today_in,
    utcnow,
)
from tools.records import LogRecord, MedicationRecord


logger = logging.getLogger(__name__)


# Editable fields and their length limits
MEDICATION_FIELDS: Dict[str, int] = {
    "name": 100,
    "dosage": 50,
    "frequency": 100,
    "instructions": 500,
}
REQUIRED_FIELDS = ("name", "dosage", "frequency")


def to_medication_record(
    medication: models.Medication,
    tz_name: str = "UTC"
) -> MedicationRecord:
    """Convert an ORM medication (with logs) into a calculator record"""
    return MedicationRecord(
        id=medication.id,
        name=medication.name,
        dosage=medication.dosage,
        frequency=medication.frequency,
        created_on=to_local_date(medication.created_at, tz_name),
        logs=tuple(
            LogRecord(
                id=log.id,
                medication_id=log.medication_id,
                date_taken=log.date_taken,
                created_at=log.created_at,
                image_url=log.image_url,
                notes=log.notes,
            )
            for log in medication.logs
        ),
    )


def _require_user(user: Optional[models.User]) -> models.User:
    if user is None:
        raise NotAuthenticatedError("Not authenticated")
    return user


def _owned_medication(
    session: Session,
    user: models.User,
    medication_id: str
) -> models.Medication:
    medication = session.query(models.Medication).filter(
        models.Medication.id == medication_id,
        models.Medication.user_id == user.id
    ).first()
    if not medication:
        raise NotFoundError(f"Medication {medication_id} not found")
    return medication


def _clean_fields(data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for field, limit in MEDICATION_FIELDS.items():
        if field not in data:
            continue
        value = data[field]
        if value is None:
            if field in REQUIRED_FIELDS:
                if partial:
                    continue
                raise ValidationError(f"{field.capitalize()} is required")
            cleaned[field] = None
            continue
        value = str(value).strip()
        if field in REQUIRED_FIELDS and not value:
            raise ValidationError(f"{field.capitalize()} is required")
        if len(value) > limit:
            raise ValidationError(f"{field.capitalize()} must be at most {limit} characters")
        cleaned[field] = value or None

    if not partial:
        missing = [f for f in REQUIRED_FIELDS if f not in cleaned]
        if missing:
            raise ValidationError(f"{missing[0].capitalize()} is required")
    return cleaned


class MedicationService:
    """
    Service for medication and log operations.
    Every operation requires an authenticated user and only touches that
    user's own rows.
    """

    async def list_medications(
        self,
        user: Optional[models.User],
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """Get the user's medications with their logs, newest first"""
        user = _require_user(user)
        return await self.list_medications_for(user.id, db=db)

    async def list_medications_for(
        self,
        owner_id: str,
        db: Optional[Session] = None
    ) -> List[models.Medication]:
        """
        Get a patient's medications with logs. Access checks are the caller's job.

        Raises:
            BackendUnavailableError: the database could not be queried
        """
        def _list(session: Session) -> List[models.Medication]:
            try:
                return session.query(models.Medication).options(
                    selectinload(models.Medication.logs)
                ).filter(
                    models.Medication.user_id == owner_id
                ).order_by(models.Medication.created_at.desc()).all()
            except SQLAlchemyError as e:
                logger.error(f"Failed to load medications for {owner_id}: {e}")
                raise BackendUnavailableError("Failed to load medications") from e

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def get_medication(
        self,
        user: Optional[models.User],
        medication_id: str,
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Get one of the user's medications

        Raises:
            NotFoundError: if it does not exist or belongs to someone else
        """
        user = _require_user(user)

        def _get(session: Session) -> models.Medication:
            return _owned_medication(session, user, medication_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def create_medication(
        self,
        user: Optional[models.User],
        data: Dict[str, Any],
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Add a medication for a patient

        Args:
            user: Owning patient
            data: name, dosage, frequency and optional instructions
            db: Database session
        """
        user = _require_user(user)
        if not user.is_patient:
            raise PermissionDeniedError("Only patients can add medications")
        fields = _clean_fields(data, partial=False)

        def _create(session: Session) -> models.Medication:
            medication = models.Medication(user_id=user.id, **fields)
            session.add(medication)
            session.commit()
            session.refresh(medication)

            logger.info(f"Added medication {medication.name} for user {user.id}")
            return medication

        if db:
            return _create(db)

        with get_db_context() as session:
            return _create(session)

    async def update_medication(
        self,
        user: Optional[models.User],
        medication_id: str,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> models.Medication:
        """Partially update name, dosage, frequency or instructions"""
        user = _require_user(user)
        fields = _clean_fields(updates, partial=True)

        def _update(session: Session) -> models.Medication:
            medication = _owned_medication(session, user, medication_id)

            for field, value in fields.items():
                setattr(medication, field, value)

            medication.updated_at = utcnow()
            session.commit()
            session.refresh(medication)

            logger.info(f"Updated medication {medication_id}: {sorted(fields)}")
            return medication

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def delete_medication(
        self,
        user: Optional[models.User],
        medication_id: str,
        db: Optional[Session] = None
    ) -> None:
        """Delete a medication and, by cascade, its logs"""
        user = _require_user(user)

        def _delete(session: Session) -> None:
            medication = _owned_medication(session, user, medication_id)
            session.delete(medication)
            session.commit()
            logger.info(f"Deleted medication {medication_id}")

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)

    async def create_log(
        self,
        user: Optional[models.User],
        medication_id: str,
        date_taken: DateLike,
        image_url: Optional[str] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> models.MedicationLog:
        """
        Record a medication as taken on a calendar day

        Raises:
            ValidationError: unparseable or future date
            NotFoundError: unknown medication
        """
        user = _require_user(user)
        try:
            day = parse_calendar_date(date_taken)
        except DataFormatError as e:
            raise ValidationError(e.message) from e

        today = today or today_in(settings.TIMEZONE)
        if day > today:
            raise ValidationError("Cannot mark future dates as taken")

        def _create(session: Session) -> models.MedicationLog:
            medication = _owned_medication(session, user, medication_id)

            now = utcnow()
            log = models.MedicationLog(
                user_id=user.id,
                medication_id=medication.id,
                date_taken=format_calendar_date(day),
                taken_at=now,
                created_at=now,
                image_url=image_url,
                notes=notes,
            )
            session.add(log)
            session.commit()
            session.refresh(log)

            logger.info(
                f"Logged medication {medication.id} taken on {log.date_taken}"
                f"{' with photo' if image_url else ''}"
            )
            return log

        if db:
            return _create(db)

        with get_db_context() as session:
            return _create(session)

    async def get_logs_for_date(
        self,
        user: Optional[models.User],
        date_taken: DateLike,
        db: Optional[Session] = None
    ) -> List[models.MedicationLog]:
        """All of the user's logs for a calendar day, most recent first"""
        user = _require_user(user)
        day = format_calendar_date(parse_calendar_date(date_taken))

        def _get(session: Session) -> List[models.MedicationLog]:
            return session.query(models.MedicationLog).filter(
                models.MedicationLog.user_id == user.id,
                models.MedicationLog.date_taken == day
            ).order_by(models.MedicationLog.taken_at.desc()).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def is_taken_on_date(
        self,
        user: Optional[models.User],
        medication_id: str,
        date_taken: DateLike,
        db: Optional[Session] = None
    ) -> bool:
        """Whether at least one log exists for the medication on that day"""
        user = _require_user(user)
        day = format_calendar_date(parse_calendar_date(date_taken))

        def _check(session: Session) -> bool:
            return session.query(models.MedicationLog.id).filter(
                models.MedicationLog.user_id == user.id,
                models.MedicationLog.medication_id == medication_id,
                models.MedicationLog.date_taken == day
            ).first() is not None

        if db:
            return _check(db)

        with get_db_context() as session:
            return _check(session)


# Singleton instance
medication_service = MedicationService()
