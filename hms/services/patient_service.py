from sqlalchemy import or_
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional

from ..models.appointment import Appointment
from ..models.lab_test import LabTest
from ..models.patient import Patient
from ..schemas.patient import PatientProfile

class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.email == email).first()

    def get_patient(self, patient_id: int) -> Patient:
        patient = self.db.query(Patient).filter(Patient.id == patient_id).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient

    def save_profile(self, email: str, profile: PatientProfile) -> Patient:
        """Create the patient's profile, or update it if it already exists."""
        patient = self.get_by_email(email)

        if patient:
            for field, value in profile.model_dump().items():
                setattr(patient, field, value)
        else:
            patient = Patient(email=email, **profile.model_dump())
            self.db.add(patient)

        self.db.commit()
        self.db.refresh(patient)
        return patient

    def list_patients(self, search: Optional[str] = None, skip: int = 0, limit: int = 50) -> List[Patient]:
        query = self.db.query(Patient)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Patient.name.ilike(pattern), Patient.email.ilike(pattern)))
        return query.order_by(Patient.name).offset(skip).limit(limit).all()

    def delete_patient(self, patient_id: int) -> None:
        patient = self.get_patient(patient_id)
        self.db.delete(patient)
        self.db.commit()

    # Doctor portal
    def list_for_doctor(self, doctor_id: int) -> List[Patient]:
        """Patients with at least one appointment booked with the doctor."""
        return self.db.query(Patient).filter(
            Patient.appointments.any(Appointment.doctor_id == doctor_id)
        ).order_by(Patient.name).all()

    def history_for_doctor(self, doctor_id: int, patient_id: int) -> dict:
        """A patient's appointments with the doctor and all their lab tests, newest first."""
        patient = self.get_patient(patient_id)

        appointments = self.db.query(Appointment).filter(
            Appointment.patient_id == patient.id,
            Appointment.doctor_id == doctor_id
        ).order_by(
            Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc()
        ).all()
        if not appointments:
            # Doctors only see patients they have seen or are due to see
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )

        lab_tests = self.db.query(LabTest).filter(
            LabTest.patient_id == patient.id
        ).order_by(
            LabTest.scheduled_date.desc(), LabTest.scheduled_time.desc()
        ).all()

        return {"patient": patient, "appointments": appointments, "lab_tests": lab_tests}
