"""
API Module
FastAPI routers for the MedTrack application
"""

from api.users import router as users_router
from api.medications import router as medications_router
from api.images import router as images_router
from api.dashboard import router as dashboard_router

from api.deps import (
    get_db,
    get_api_key,
    get_current_user,
    require_patient,
    require_caretaker,
    get_feed_registry,
    get_dose_guard,
    services,
)


__all__ = [
    # Routers
    "users_router",
    "medications_router",
    "images_router",
    "dashboard_router",
    # Dependencies
    "get_db",
    "get_api_key",
    "get_current_user",
    "require_patient",
    "require_caretaker",
    "get_feed_registry",
    "get_dose_guard",
    "services",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(users_router, prefix=prefix)
    app.include_router(medications_router, prefix=prefix)
    app.include_router(images_router, prefix=prefix)
    app.include_router(dashboard_router, prefix=prefix)
