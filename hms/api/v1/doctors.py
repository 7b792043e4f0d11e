from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_admin_user, get_current_doctor, get_now
from ...models.appointment import AppointmentStatus
from ...models.doctor import Doctor
from ...services.appointment_service import AppointmentService
from ...services.catalog_service import CatalogService
from ...services.patient_service import PatientService
from ...schemas.appointment import AppointmentOutcome, AppointmentResponse
from ...schemas.catalog import DoctorCreate, DoctorUpdate, DoctorResponse
from ...schemas.patient import PatientHistory, PatientResponse

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorResponse])
async def list_doctors(
    department_id: Optional[int] = None,
    available_only: bool = False,
    db: Session = Depends(get_db)
):
    """List doctors, optionally only those of one department."""
    doctors = CatalogService(db).list_doctors(department_id, available_only)
    return [DoctorResponse.model_validate(d) for d in doctors]

# Doctor portal
@router.get("/me/appointments", response_model=List[AppointmentResponse])
async def my_appointments(
    status: Optional[AppointmentStatus] = None,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    """Appointments booked with the signed-in doctor."""
    appointments = AppointmentService(db).list_appointments(status_filter=status, doctor_id=doctor.id)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.post("/me/appointments/{appointment_id}/outcome", response_model=AppointmentResponse)
async def record_outcome(
    appointment_id: int,
    outcome: AppointmentOutcome,
    doctor: Doctor = Depends(get_current_doctor),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db)
):
    """Mark an appointment completed or no-show after its time has passed."""
    appointment = AppointmentService(db).record_outcome(doctor, appointment_id, outcome.status, now)
    return AppointmentResponse.model_validate(appointment)

@router.get("/me/patients", response_model=List[PatientResponse])
async def my_patients(
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    """Patients who have booked with the signed-in doctor."""
    return [PatientResponse.model_validate(p) for p in PatientService(db).list_for_doctor(doctor.id)]

@router.get("/me/patients/{patient_id}/history", response_model=PatientHistory)
async def patient_history(
    patient_id: int,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    """A patient's appointments with this doctor and their lab tests."""
    return PatientHistory.model_validate(
        PatientService(db).history_for_doctor(doctor.id, patient_id), from_attributes=True
    )

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    return DoctorResponse.model_validate(CatalogService(db).get_doctor(doctor_id))

@router.post("", response_model=DoctorResponse, status_code=201, dependencies=[Depends(get_admin_user)])
async def create_doctor(data: DoctorCreate, db: Session = Depends(get_db)):
    """Add a doctor (admin only)."""
    return DoctorResponse.model_validate(CatalogService(db).create_doctor(data))

@router.patch("/{doctor_id}", response_model=DoctorResponse, dependencies=[Depends(get_admin_user)])
async def update_doctor(doctor_id: int, data: DoctorUpdate, db: Session = Depends(get_db)):
    """Update a doctor (admin only)."""
    return DoctorResponse.model_validate(CatalogService(db).update_doctor(doctor_id, data))

@router.delete("/{doctor_id}", dependencies=[Depends(get_admin_user)])
async def delete_doctor(doctor_id: int, db: Session = Depends(get_db)):
    """Remove a doctor without appointments (admin only)."""
    CatalogService(db).delete_doctor(doctor_id)
    return {"message": "Doctor deleted successfully"}
