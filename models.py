"""
Database Models
SQLAlchemy ORM models for MedTrack
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Enum, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum

from config import TableNames
from database import Base
from tools.calendar_dates import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


# ==================== ENUMS ====================

class UserRole(str, PyEnum):
    """Account roles"""
    PATIENT = "patient"
    CARETAKER = "caretaker"


# ==================== MODELS ====================

class User(Base):
    """Patient or caretaker account"""
    __tablename__ = TableNames.USERS

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.PATIENT)

    # Opaque credential issued at registration
    api_key = Column(String(128), unique=True, index=True, nullable=False)

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    medications = relationship("Medication", back_populates="user", cascade="all, delete-orphan")
    medication_logs = relationship("MedicationLog", back_populates="user")

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT

    @property
    def is_caretaker(self) -> bool:
        return self.role == UserRole.CARETAKER


class CaretakerAssignment(Base):
    """Grants a caretaker read access to a patient's medications"""
    __tablename__ = TableNames.CARETAKER_ASSIGNMENTS

    id = Column(String(36), primary_key=True, default=_new_id)
    caretaker_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    caretaker = relationship("User", foreign_keys=[caretaker_id])
    patient = relationship("User", foreign_keys=[patient_id])

    __table_args__ = (
        UniqueConstraint("caretaker_id", "patient_id", name="uq_caretaker_patient"),
    )


class Medication(Base):
    """A medication owned by one patient"""
    __tablename__ = TableNames.MEDICATIONS

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(100), nullable=False)
    dosage = Column(String(50), nullable=False)    # e.g. "500mg"
    frequency = Column(String(100), nullable=False)  # free text, e.g. "twice daily"
    instructions = Column(Text)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="medications")
    logs = relationship(
        "MedicationLog",
        back_populates="medication",
        cascade="all, delete-orphan",
        order_by="MedicationLog.created_at",
    )

    __table_args__ = (
        Index("ix_medications_user_created", "user_id", "created_at"),
    )


class MedicationLog(Base):
    """A dose marked as taken on a calendar day"""
    __tablename__ = TableNames.MEDICATION_LOGS

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    medication_id = Column(String(36), ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)

    # Calendar date as YYYY-MM-DD; kept as a string so no timezone can shift it
    date_taken = Column(String(10), nullable=False)
    taken_at = Column(DateTime, default=utcnow)

    image_url = Column(String(500))
    notes = Column(Text)

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    user = relationship("User", back_populates="medication_logs")
    medication = relationship("Medication", back_populates="logs")

    __table_args__ = (
        Index("ix_medication_logs_med_date", "medication_id", "date_taken"),
        Index("ix_medication_logs_user_created", "user_id", "created_at"),
    )
