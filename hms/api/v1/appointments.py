from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_admin_user, get_current_patient, get_now, rate_limit_check
from ...models.appointment import AppointmentStatus
from ...models.patient import Patient
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentBook, AppointmentUpdate, AppointmentResponse, FeeQuote
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("/fee-quote", response_model=FeeQuote)
async def fee_quote(
    doctor_id: int,
    department_id: int,
    db: Session = Depends(get_db)
):
    """Total fee for a doctor/department pair at the current base fee."""
    return FeeQuote(**AppointmentService(db).quote_fee(doctor_id, department_id))

# Patient routes
@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentBook,
    patient: Patient = Depends(get_current_patient),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Book an appointment for the signed-in patient."""
    appointment = AppointmentService(db).book(patient, data, now)
    return AppointmentResponse.model_validate(appointment)

@router.get("/mine", response_model=List[AppointmentResponse])
async def my_appointments(
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    appointments = AppointmentService(db).list_appointments(patient_id=patient.id)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    patient: Patient = Depends(get_current_patient),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db)
):
    """Cancel one of the patient's upcoming appointments."""
    appointment = AppointmentService(db).cancel(patient, appointment_id, now)
    return AppointmentResponse.model_validate(appointment)

@router.post("/{appointment_id}/reschedule-request", response_model=AppointmentResponse)
async def request_reschedule(
    appointment_id: int,
    patient: Patient = Depends(get_current_patient),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db)
):
    """Ask the hospital to move an upcoming appointment."""
    appointment = AppointmentService(db).request_reschedule(patient, appointment_id, now)
    return AppointmentResponse.model_validate(appointment)

# Admin routes
@router.get("", response_model=List[AppointmentResponse], dependencies=[Depends(get_admin_user)])
async def list_appointments(
    status: Optional[AppointmentStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db)
):
    """List all appointments, optionally by status (admin only)."""
    appointments = AppointmentService(db).list_appointments(status_filter=status, skip=skip, limit=limit)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.get("/{appointment_id}", response_model=AppointmentResponse, dependencies=[Depends(get_admin_user)])
async def get_appointment(appointment_id: int, db: Session = Depends(get_db)):
    return AppointmentResponse.model_validate(AppointmentService(db).get_appointment(appointment_id))

@router.patch("/{appointment_id}", response_model=AppointmentResponse, dependencies=[Depends(get_admin_user)])
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db)
):
    """Edit an appointment; fee is recomputed when pricing inputs change (admin only)."""
    appointment = AppointmentService(db).update(appointment_id, data, now)
    return AppointmentResponse.model_validate(appointment)

@router.delete("/{appointment_id}", dependencies=[Depends(get_admin_user)])
async def delete_appointment(appointment_id: int, db: Session = Depends(get_db)):
    """Delete an appointment (admin only)."""
    AppointmentService(db).delete(appointment_id)
    return {"message": "Appointment deleted successfully"}
