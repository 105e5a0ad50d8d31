"""
Users API Router
Endpoints for registration and caretaker assignments
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
from api.deps import get_db, get_current_user, require_caretaker, services
from api.schemas.user import (
    UserCreate,
    PatientAssign,
    UserResponse,
    UserRegistered,
    PatientList,
)


router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRegistered, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """
    Register a patient or caretaker account

    - **email**: Unique email address
    - **display_name**: Name shown on dashboards
    - **role**: "patient" or "caretaker"

    The response carries the API key to send as `X-API-Key`.
    """
    user_service = services.get_user_service()

    return await user_service.register_user(
        email=user_data.email,
        display_name=user_data.display_name,
        role=user_data.role,
        db=db
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: models.User = Depends(get_current_user)):
    """Get the calling account"""
    return user


@router.post("/me/patients", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def assign_patient(
    assign_data: PatientAssign,
    caretaker: models.User = Depends(require_caretaker),
    db: Session = Depends(get_db)
):
    """Give the calling caretaker access to a patient"""
    user_service = services.get_user_service()

    assignment = await user_service.assign_patient(
        caretaker,
        assign_data.patient_email,
        db=db
    )
    return assignment.patient


@router.get("/me/patients", response_model=PatientList)
async def list_patients(
    caretaker: models.User = Depends(require_caretaker),
    db: Session = Depends(get_db)
):
    """Patients the calling caretaker monitors"""
    user_service = services.get_user_service()

    patients = await user_service.get_assigned_patients(caretaker, db=db)
    return PatientList(
        patients=[UserResponse.model_validate(p) for p in patients],
        total=len(patients)
    )
