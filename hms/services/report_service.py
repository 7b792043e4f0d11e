from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from ..models.appointment import Appointment
from ..models.department import Department
from ..models.doctor import Doctor
from ..models.lab_test import LabTest
from ..models.patient import Patient
from .fees import summarize_earnings

RECENT_LIMIT = 5

class ReportService:
    """Admin earnings report and dashboard figures."""

    def __init__(self, db: Session):
        self.db = db

    def earnings(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
        appointments = self._in_range(self.db.query(Appointment), Appointment, start_date, end_date).all()
        lab_tests = self._in_range(self.db.query(LabTest), LabTest, start_date, end_date).all()
        return summarize_earnings(appointments, lab_tests)

    def dashboard(self) -> dict:
        return {
            "total_patients": self.db.query(Patient).count(),
            "total_doctors": self.db.query(Doctor).count(),
            "total_departments": self.db.query(Department).count(),
            "appointments_by_status": self._count_by_status(Appointment),
            "lab_tests_by_status": self._count_by_status(LabTest),
            "recent_appointments": self.db.query(Appointment).order_by(
                Appointment.created_at.desc(), Appointment.id.desc()
            ).limit(RECENT_LIMIT).all(),
            "recent_lab_tests": self.db.query(LabTest).order_by(
                LabTest.created_at.desc(), LabTest.id.desc()
            ).limit(RECENT_LIMIT).all(),
        }

    def _count_by_status(self, model) -> dict:
        rows = self.db.query(model.status, func.count(model.id)).group_by(model.status).all()
        return {status.value: count for status, count in rows}

    @staticmethod
    def _in_range(query, model, start_date: Optional[date], end_date: Optional[date]):
        if start_date is not None:
            query = query.filter(model.scheduled_date >= start_date)
        if end_date is not None:
            query = query.filter(model.scheduled_date <= end_date)
        return query
