"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from typing import Optional
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from exceptions import PermissionDeniedError
import models
from services.activity_service import ActivityFeedRegistry
from services.dose_service import MarkTakenGuard


async def get_api_key(
    x_api_key: Optional[str] = Header(None, alias=settings.API_KEY_HEADER)
) -> Optional[str]:
    """
    API key authentication dependency
    Returns the API key if provided
    """
    return x_api_key


async def get_current_user(
    api_key: Optional[str] = Depends(get_api_key),
    db: Session = Depends(get_db)
) -> models.User:
    """
    Resolve the calling user from the API key.
    Raises NotAuthenticatedError (401) if the key is missing or unknown.
    """
    return services.get_user_service().authenticate(api_key, db)


async def require_patient(
    user: models.User = Depends(get_current_user)
) -> models.User:
    if not user.is_patient:
        raise PermissionDeniedError("Patient account required")
    return user


async def require_caretaker(
    user: models.User = Depends(get_current_user)
) -> models.User:
    if not user.is_caretaker:
        raise PermissionDeniedError("Caretaker account required")
    return user


def get_feed_registry(request: Request) -> ActivityFeedRegistry:
    """Activity feed registry created by the application lifespan"""
    return request.app.state.feed_registry


def get_dose_guard(request: Request) -> MarkTakenGuard:
    """Mark-taken in-flight guard created by the application lifespan"""
    return request.app.state.dose_guard


class ServiceDependency:
    """
    Dependency injection for services
    """

    @staticmethod
    def get_user_service():
        from services.user_service import user_service
        return user_service

    @staticmethod
    def get_medication_service():
        from services.medication_service import medication_service
        return medication_service

    @staticmethod
    def get_dose_service():
        from services.dose_service import dose_service
        return dose_service

    @staticmethod
    def get_adherence_service():
        from services.adherence_service import adherence_service
        return adherence_service

    @staticmethod
    def get_image_storage():
        from services.storage_service import image_storage
        return image_storage


# Service dependency instances
services = ServiceDependency()
