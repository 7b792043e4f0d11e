from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import date, datetime

from .appointment import AppointmentResponse
from .lab_test import LabTestResponse


class PatientProfile(BaseModel):
    """Fields a patient fills in on their own profile. Email comes from the token."""
    name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, max_length=20)
    phone_number: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    blood_type: Optional[str] = Field(None, max_length=10)
    allergies: Optional[str] = Field(None, max_length=255)


class PatientResponse(PatientProfile):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    created_at: Optional[datetime] = None


class PatientHistory(BaseModel):
    """What a doctor sees of one of their patients."""
    model_config = ConfigDict(from_attributes=True)

    patient: PatientResponse
    appointments: List[AppointmentResponse]
    lab_tests: List[LabTestResponse]
