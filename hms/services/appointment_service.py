from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime
from typing import List, Optional
import logging

from ..models.appointment import Appointment, AppointmentStatus
from ..models.department import Department
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..schemas.appointment import AppointmentBook, AppointmentUpdate
from .catalog_service import CatalogService
from .fees import compute_fee
from .lifecycle import LifecycleError, scheduled_datetime, validate_appointment_transition
from .notification_service import NotificationService, NotificationType
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)
        self.notifications = NotificationService(db)

    def quote_fee(self, doctor_id: int, department_id: int, base_fee: Optional[int] = None) -> dict:
        """Price a doctor/department pair without booking anything."""
        doctor = self.catalog.get_doctor(doctor_id)
        department = self.catalog.get_department(department_id)
        if base_fee is None:
            base_fee = SettingsService(self.db).base_appointment_fee()

        return {
            "base_fee": base_fee,
            "doctor_fee_percentage": doctor.fee_percentage or 0,
            "department_fee_percentage": department.fee_percentage or 0,
            "total_fee": self._total_fee(base_fee, doctor, department),
        }

    def book(self, patient: Patient, data: AppointmentBook, now: datetime) -> Appointment:
        """Book an appointment for ``patient`` at the current base fee."""
        doctor, department = self._resolve_doctor_and_department(data.doctor_id, data.department_id)

        if not doctor.is_available:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor is not accepting appointments"
            )

        if scheduled_datetime(data.scheduled_date, data.scheduled_time) < now:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot book an appointment for a time that has already passed"
            )

        base_fee = SettingsService(self.db).base_appointment_fee()

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            department_id=department.id,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            reason=data.reason,
            symptoms=data.symptoms,
            previous_visit=data.previous_visit,
            status=AppointmentStatus.SCHEDULED,
            base_fee=base_fee,
            total_fee=self._total_fee(base_fee, doctor, department),
            payment_status="paid",
            payment_date=now.date(),
        )
        self.db.add(appointment)
        self.db.flush()

        self.notifications.notify(
            NotificationType.APPOINTMENT_BOOKED,
            f"New appointment with {doctor.name}",
            f"{patient.name} booked {department.name} on {data.scheduled_date} at {data.scheduled_time}",
            appointment.id,
        )

        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} booked for patient {patient.id} "
            f"with doctor {doctor.id}, total fee {appointment.total_fee}"
        )
        return appointment

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )
        return appointment

    def list_appointments(
        self,
        status_filter: Optional[AppointmentStatus] = None,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Appointment]:
        query = self.db.query(Appointment)
        if status_filter is not None:
            query = query.filter(Appointment.status == status_filter)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        return query.order_by(
            Appointment.scheduled_date.desc(), Appointment.scheduled_time.desc()
        ).offset(skip).limit(limit).all()

    # Patient actions
    def cancel(self, patient: Patient, appointment_id: int, now: datetime) -> Appointment:
        appointment = self._get_owned(appointment_id, patient_id=patient.id)
        self._transition(appointment, AppointmentStatus.CANCELLED, now)

        self.notifications.notify(
            NotificationType.APPOINTMENT_CANCELLED,
            "Appointment cancelled",
            f"{patient.name} cancelled appointment {appointment.id}",
            appointment.id,
        )
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def request_reschedule(self, patient: Patient, appointment_id: int, now: datetime) -> Appointment:
        appointment = self._get_owned(appointment_id, patient_id=patient.id)
        self._transition(appointment, AppointmentStatus.RESCHEDULE_REQUESTED, now)

        self.notifications.notify(
            NotificationType.RESCHEDULE_REQUESTED,
            "Reschedule requested",
            f"{patient.name} asked to reschedule appointment {appointment.id}",
            appointment.id,
        )
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    # Doctor actions
    def record_outcome(
        self,
        doctor: Doctor,
        appointment_id: int,
        outcome: AppointmentStatus,
        now: datetime
    ) -> Appointment:
        """Mark an appointment completed or no-show once its time has passed."""
        if outcome not in (AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctors can only mark appointments completed or no-show"
            )

        appointment = self._get_owned(appointment_id, doctor_id=doctor.id)
        self._transition(appointment, outcome, now)
        appointment.completed_at = now
        appointment.completed_by = doctor.id

        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    # Admin actions
    def update(self, appointment_id: int, data: AppointmentUpdate, now: datetime) -> Appointment:
        """Edit an appointment, recomputing its fee and validating any status change."""
        appointment = self.get_appointment(appointment_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        target_status = changes.pop("status", None)

        reschedule = {k: changes.pop(k) for k in ("scheduled_date", "scheduled_time") if k in changes}
        if reschedule and target_status is None and appointment.status == AppointmentStatus.RESCHEDULE_REQUESTED:
            target_status = AppointmentStatus.SCHEDULED

        # Status gates are evaluated against the slot the appointment currently has.
        # An explicit status equal to the current one is rejected like any other.
        if target_status is not None:
            self._transition(appointment, target_status, now)

        if reschedule:
            if appointment.status != AppointmentStatus.SCHEDULED:
                raise LifecycleError("Only open appointments can be moved to a new time")
            new_date = reschedule.get("scheduled_date", appointment.scheduled_date)
            new_time = reschedule.get("scheduled_time", appointment.scheduled_time)
            if scheduled_datetime(new_date, new_time) < now:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Appointments cannot be moved into the past"
                )
            appointment.scheduled_date = new_date
            appointment.scheduled_time = new_time

        pricing_changed = any(k in changes for k in ("doctor_id", "department_id", "base_fee"))
        for field, value in changes.items():
            setattr(appointment, field, value)

        if pricing_changed:
            doctor, department = self._resolve_doctor_and_department(
                appointment.doctor_id, appointment.department_id
            )
            appointment.total_fee = self._total_fee(appointment.base_fee, doctor, department)

        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def delete(self, appointment_id: int) -> None:
        appointment = self.get_appointment(appointment_id)
        self.db.delete(appointment)
        self.db.commit()

    def _get_owned(
        self,
        appointment_id: int,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if patient_id is not None and appointment.patient_id != patient_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
        if doctor_id is not None and appointment.doctor_id != doctor_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
        return appointment

    def _transition(self, appointment: Appointment, target: AppointmentStatus, now: datetime):
        scheduled_at = scheduled_datetime(appointment.scheduled_date, appointment.scheduled_time)
        previous = appointment.status
        appointment.status = validate_appointment_transition(previous, target, scheduled_at, now)
        logger.info(f"Appointment {appointment.id}: {previous.value} -> {appointment.status.value}")

    def _resolve_doctor_and_department(self, doctor_id: int, department_id: int):
        doctor = self.catalog.get_doctor(doctor_id)
        department = self.catalog.get_department(department_id)
        if doctor.department_id != department.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor does not belong to the selected department"
            )
        return doctor, department

    @staticmethod
    def _total_fee(base_fee: int, doctor: Doctor, department: Department) -> int:
        try:
            return compute_fee(base_fee, doctor.fee_percentage, department.fee_percentage)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc)
            ) from exc
