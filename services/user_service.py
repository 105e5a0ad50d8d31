"""
User Service
Accounts, API-key resolution and caretaker assignments
"""

import logging
import secrets
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from config import settings
from database import get_db_context
from exceptions import NotAuthenticatedError, NotFoundError, PermissionDeniedError, ValidationError
import models
from models import UserRole


logger = logging.getLogger(__name__)


class UserService:
    """
    Service for user accounts and caretaker access
    """

    async def register_user(
        self,
        email: str,
        display_name: str,
        role: UserRole = UserRole.PATIENT,
        db: Optional[Session] = None
    ) -> models.User:
        """
        Register a patient or caretaker account and issue its API key

        Raises:
            ValidationError: if the e-mail is already registered
        """
        def _register(session: Session) -> models.User:
            normalized = email.strip().lower()
            existing = session.query(models.User).filter(
                models.User.email == normalized
            ).first()
            if existing:
                raise ValidationError("Email already registered")

            user = models.User(
                email=normalized,
                display_name=display_name.strip(),
                role=role,
                api_key=secrets.token_urlsafe(settings.API_KEY_BYTES),
            )
            session.add(user)
            session.commit()
            session.refresh(user)

            logger.info(f"Registered {role.value} account {user.id}")
            return user

        if db:
            return _register(db)

        with get_db_context() as session:
            return _register(session)

    def authenticate(self, api_key: Optional[str], db: Session) -> models.User:
        """
        Resolve an API key to its user

        Raises:
            NotAuthenticatedError: if the key is missing or unknown
        """
        if not api_key:
            raise NotAuthenticatedError("Not authenticated")

        user = db.query(models.User).filter(models.User.api_key == api_key).first()
        if not user:
            raise NotAuthenticatedError("Invalid API key")
        return user

    async def assign_patient(
        self,
        caretaker: Optional[models.User],
        patient_email: str,
        db: Optional[Session] = None
    ) -> models.CaretakerAssignment:
        """Give a caretaker access to a patient identified by e-mail"""
        def _assign(session: Session) -> models.CaretakerAssignment:
            _require_caretaker(caretaker)
            patient = session.query(models.User).filter(
                models.User.email == patient_email.strip().lower()
            ).first()
            if not patient or not patient.is_patient:
                raise NotFoundError(f"Patient {patient_email} not found")

            existing = session.query(models.CaretakerAssignment).filter(
                models.CaretakerAssignment.caretaker_id == caretaker.id,
                models.CaretakerAssignment.patient_id == patient.id
            ).first()
            if existing:
                return existing

            assignment = models.CaretakerAssignment(
                caretaker_id=caretaker.id,
                patient_id=patient.id
            )
            session.add(assignment)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValidationError("Patient already assigned")
            session.refresh(assignment)

            logger.info(f"Caretaker {caretaker.id} assigned to patient {patient.id}")
            return assignment

        if db:
            return _assign(db)

        with get_db_context() as session:
            return _assign(session)

    async def get_assigned_patients(
        self,
        caretaker: Optional[models.User],
        db: Optional[Session] = None
    ) -> List[models.User]:
        """Patients a caretaker can view"""
        def _get(session: Session) -> List[models.User]:
            _require_caretaker(caretaker)
            return session.query(models.User).join(
                models.CaretakerAssignment,
                models.CaretakerAssignment.patient_id == models.User.id
            ).filter(
                models.CaretakerAssignment.caretaker_id == caretaker.id
            ).order_by(models.User.display_name).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_monitored_patient(
        self,
        caretaker: Optional[models.User],
        patient_id: str,
        db: Optional[Session] = None
    ) -> models.User:
        """
        Load a patient the caretaker is assigned to

        Raises:
            PermissionDeniedError: if the caretaker is not assigned
        """
        def _get(session: Session) -> models.User:
            _require_caretaker(caretaker)
            assignment = session.query(models.CaretakerAssignment).filter(
                models.CaretakerAssignment.caretaker_id == caretaker.id,
                models.CaretakerAssignment.patient_id == patient_id
            ).first()
            if not assignment:
                raise PermissionDeniedError(f"Not assigned to patient {patient_id}")
            return assignment.patient

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)


def _require_caretaker(user: Optional[models.User]) -> None:
    if user is None:
        raise NotAuthenticatedError("Not authenticated")
    if not user.is_caretaker:
        raise PermissionDeniedError("Caretaker account required")


# Singleton instance
user_service = UserService()
