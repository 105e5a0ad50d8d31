"""
Services Module
Business logic layer for the MedTrack application
"""

from services.user_service import UserService, user_service
from services.medication_service import MedicationService, medication_service
from services.storage_service import ImageStorage, image_storage
from services.dose_service import DoseService, MarkTakenGuard, dose_service
from services.adherence_service import AdherenceService, adherence_service
from services.activity_service import (
    ActivityFeedContext,
    ActivityFeedRegistry,
    CaretakerMonitor,
    patient_snapshot_fetcher,
)


__all__ = [
    # Service classes
    "UserService",
    "MedicationService",
    "ImageStorage",
    "DoseService",
    "MarkTakenGuard",
    "AdherenceService",
    "ActivityFeedContext",
    "ActivityFeedRegistry",
    "CaretakerMonitor",
    "patient_snapshot_fetcher",
    # Singleton instances
    "user_service",
    "medication_service",
    "image_storage",
    "dose_service",
    "adherence_service",
]
