"""
Dose Service
"Mark taken" flow: optional photo upload followed by the log write, with a
per-medication in-flight guard against duplicate submissions
"""

import logging
from typing import Optional, Set, Tuple
from datetime import date
from sqlalchemy.orm import Session

from config import settings
from exceptions import (
    BackendUnavailableError,
    DataFormatError,
    NotAuthenticatedError,
    SubmissionInProgressError,
    ValidationError,
)
import models
from services.medication_service import medication_service
from services.storage_service import ImageStorage, image_storage, validate_image
from tools.calendar_dates import DateLike, parse_calendar_date, today_in


logger = logging.getLogger(__name__)


class MarkTakenGuard:
    """
    Set of (user_id, medication_id) pairs with a submission in flight.
    One guard per application, created at startup.
    """

    def __init__(self):
        self._in_flight: Set[Tuple[str, str]] = set()

    def acquire(self, user_id: str, medication_id: str) -> None:
        key = (user_id, medication_id)
        if key in self._in_flight:
            raise SubmissionInProgressError("This medication is already being marked as taken")
        self._in_flight.add(key)

    def release(self, user_id: str, medication_id: str) -> None:
        self._in_flight.discard((user_id, medication_id))

    def is_in_flight(self, user_id: str, medication_id: str) -> bool:
        return (user_id, medication_id) in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)


class DoseService:
    """Service for marking doses taken"""

    def __init__(self, storage: ImageStorage = image_storage):
        self.storage = storage

    async def mark_taken(
        self,
        user: Optional[models.User],
        medication_id: str,
        guard: MarkTakenGuard,
        date_taken: Optional[DateLike] = None,
        photo: Optional[bytes] = None,
        photo_content_type: Optional[str] = None,
        photo_filename: Optional[str] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> models.MedicationLog:
        """
        Mark a medication taken, uploading the proof photo first if given

        Args:
            user: Patient marking the dose
            medication_id: Medication being marked
            guard: In-flight guard shared by the application
            date_taken: Calendar day (default: today)
            photo: Optional photo bytes; only accepted for today's dose

        Raises:
            SubmissionInProgressError: a submission for this medication is running
            ValidationError: future date, bad photo, or photo for a past day
        """
        if user is None:
            raise NotAuthenticatedError("Not authenticated")

        today = today or today_in(settings.TIMEZONE)
        try:
            day = parse_calendar_date(date_taken) if date_taken else today
        except DataFormatError as e:
            raise ValidationError(e.message) from e

        if day > today:
            raise ValidationError("Cannot mark future dates as taken")

        if photo is not None:
            if day != today:
                raise ValidationError("Photos can only be attached to today's dose")
            validate_image(
                len(photo),
                photo_content_type,
                settings.PHOTO_MAX_BYTES,
                allowed_types=settings.PHOTO_ALLOWED_TYPES,
            )

        guard.acquire(user.id, medication_id)
        try:
            # check ownership before anything is written to storage
            await medication_service.get_medication(user, medication_id, db=db)

            image_url = None
            if photo is not None:
                image_url = await self.storage.upload_image(
                    user, photo, photo_content_type, photo_filename
                )

            try:
                return await medication_service.create_log(
                    user,
                    medication_id,
                    day,
                    image_url=image_url,
                    notes=notes,
                    today=today,
                    db=db,
                )
            except Exception:
                if image_url:
                    await self._discard_photo(image_url)
                raise
        finally:
            guard.release(user.id, medication_id)

    async def _discard_photo(self, image_url: str) -> None:
        """Remove a photo whose log could not be written"""
        try:
            await self.storage.delete_image(image_url)
        except BackendUnavailableError as e:
            # the log failure is what the caller sees
            logger.error(f"Orphaned photo {image_url}: {e.message}")


# Singleton instance
dose_service = DoseService()
