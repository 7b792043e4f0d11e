from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Boolean, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    RESCHEDULE_REQUESTED = "reschedule_requested"
    COMPLETED = "completed"
    NO_SHOW = "no-show"
    CANCELLED = "cancelled"

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)

    # Appointment details
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(String(5), nullable=False)  # "HH:MM"
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.SCHEDULED, nullable=False)
    reason = Column(Text, nullable=True)
    symptoms = Column(Text, nullable=True)
    previous_visit = Column(Boolean, default=False)

    # Fees
    base_fee = Column(Integer, nullable=False)
    total_fee = Column(Integer, nullable=False)
    payment_status = Column(String(20), default="paid")
    payment_date = Column(Date, nullable=True)

    # Outcome
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(Integer, nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")
    department = relationship("Department", back_populates="appointments")

    @property
    def patient_name(self):
        return self.patient.name if self.patient else None

    @property
    def doctor_name(self):
        return self.doctor.name if self.doctor else None

    @property
    def department_name(self):
        return self.department.name if self.department else None

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.scheduled_date}')>"
