from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date, datetime

from ..models.appointment import AppointmentStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentBook(BaseModel):
    doctor_id: int
    department_id: int
    scheduled_date: date
    scheduled_time: str = Field(..., pattern=TIME_PATTERN)
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    previous_visit: bool = False


class AppointmentUpdate(BaseModel):
    """Admin edit. Omitted fields are left untouched."""
    doctor_id: Optional[int] = None
    department_id: Optional[int] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    base_fee: Optional[int] = Field(None, ge=0)
    status: Optional[AppointmentStatus] = None


class AppointmentOutcome(BaseModel):
    """Doctor's verdict once the appointment time has passed."""
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    patient_name: Optional[str] = None
    doctor_id: int
    doctor_name: Optional[str] = None
    department_id: int
    department_name: Optional[str] = None
    scheduled_date: date
    scheduled_time: str
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    previous_visit: bool = False
    status: AppointmentStatus
    base_fee: int
    total_fee: int
    payment_status: Optional[str] = None
    payment_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeeQuote(BaseModel):
    base_fee: int
    doctor_fee_percentage: float
    department_fee_percentage: float
    total_fee: int
