"""
User Schemas
Pydantic models for account and caretaker-assignment requests and responses
"""

from typing import List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from models import UserRole


# ==================== REQUEST SCHEMAS ====================

class UserCreate(BaseModel):
    """Schema for registering a patient or caretaker"""
    # Plain string so test domains are accepted
    email: str = Field(..., min_length=3, max_length=255)
    display_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.PATIENT


class PatientAssign(BaseModel):
    """Schema for a caretaker adding a patient"""
    patient_email: str = Field(..., min_length=3, max_length=255)


# ==================== RESPONSE SCHEMAS ====================

class UserResponse(BaseModel):
    """Public account fields"""
    id: str
    email: str
    display_name: str
    role: UserRole
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserRegistered(UserResponse):
    """Registration response; the only time the API key is returned"""
    api_key: str


class PatientList(BaseModel):
    """Patients visible to a caretaker"""
    patients: List[UserResponse]
    total: int
