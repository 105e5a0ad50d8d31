"""
Medication Schemas
Pydantic models for medication and log requests and responses
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field, ConfigDict


# ==================== BASE SCHEMAS ====================

class MedicationBase(BaseModel):
    """Base medication schema"""
    name: str = Field(..., min_length=1, max_length=100)
    dosage: str = Field(..., min_length=1, max_length=50)
    frequency: str = Field(..., min_length=1, max_length=100)


# ==================== REQUEST SCHEMAS ====================

class MedicationCreate(MedicationBase):
    """Schema for creating a new medication"""
    instructions: Optional[str] = Field(None, max_length=500)


class MedicationUpdate(BaseModel):
    """Schema for updating medication; omitted fields are left unchanged"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    dosage: Optional[str] = Field(None, min_length=1, max_length=50)
    frequency: Optional[str] = Field(None, min_length=1, max_length=100)
    instructions: Optional[str] = Field(None, max_length=500)


class MedicationLogCreate(BaseModel):
    """Schema for recording a dose taken"""
    date_taken: date
    image_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)


# ==================== RESPONSE SCHEMAS ====================

class MedicationLogResponse(BaseModel):
    """Schema for a medication log"""
    id: str
    medication_id: str
    date_taken: date
    taken_at: datetime
    image_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationResponse(MedicationBase):
    """Schema for medication response"""
    id: str
    user_id: str
    instructions: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationDetail(MedicationResponse):
    """Medication with its logs"""
    logs: List[MedicationLogResponse] = []


class MedicationList(BaseModel):
    """List of medications"""
    medications: List[MedicationDetail]
    total: int


class LogList(BaseModel):
    """Logs for one calendar day"""
    date: date
    logs: List[MedicationLogResponse]
    total: int


class ImageUploadResponse(BaseModel):
    """Stored image location"""
    url: str
