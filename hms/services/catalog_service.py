from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from ..models.appointment import Appointment
from ..models.department import Department
from ..models.doctor import Doctor
from ..models.lab_test import AvailableLabTest, LabTestItem
from ..schemas.catalog import (
    DepartmentCreate, DepartmentUpdate, DoctorCreate, DoctorUpdate,
    AvailableLabTestCreate, AvailableLabTestUpdate
)

logger = logging.getLogger(__name__)

class CatalogService:
    """Departments, doctors and the lab test catalogue."""

    def __init__(self, db: Session):
        self.db = db

    # Departments
    def list_departments(self) -> List[Department]:
        return self.db.query(Department).order_by(Department.name).all()

    def get_department(self, department_id: int) -> Department:
        department = self.db.query(Department).filter(
            Department.id == department_id
        ).first()
        if not department:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Department not found"
            )
        return department

    def create_department(self, data: DepartmentCreate) -> Department:
        self._ensure_unique_department_name(data.name)

        department = Department(**data.model_dump())
        self.db.add(department)
        self.db.commit()
        self.db.refresh(department)
        return department

    def update_department(self, department_id: int, data: DepartmentUpdate) -> Department:
        department = self.get_department(department_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and changes["name"] != department.name:
            self._ensure_unique_department_name(changes["name"])

        for field, value in changes.items():
            setattr(department, field, value)

        self.db.commit()
        self.db.refresh(department)
        return department

    def delete_department(self, department_id: int) -> None:
        department = self.get_department(department_id)

        if department.doctors:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Department still has doctors assigned"
            )

        self.db.delete(department)
        self.db.commit()

    def _ensure_unique_department_name(self, name: str):
        if self.db.query(Department).filter(Department.name == name).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Department name already exists"
            )

    # Doctors
    def list_doctors(self, department_id: Optional[int] = None, available_only: bool = False) -> List[Doctor]:
        query = self.db.query(Doctor)
        if department_id is not None:
            query = query.filter(Doctor.department_id == department_id)
        if available_only:
            query = query.filter(Doctor.is_available == True)  # noqa: E712
        return query.order_by(Doctor.name).all()

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        self.get_department(data.department_id)
        self._ensure_unique_doctor_email(data.email)

        doctor = Doctor(**data.model_dump())
        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def update_doctor(self, doctor_id: int, data: DoctorUpdate) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        changes = data.model_dump(exclude_unset=True)

        if "department_id" in changes:
            self.get_department(changes["department_id"])
        if "email" in changes and changes["email"] != doctor.email:
            self._ensure_unique_doctor_email(changes["email"])

        for field, value in changes.items():
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def delete_doctor(self, doctor_id: int) -> None:
        doctor = self.get_doctor(doctor_id)

        has_appointments = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor.id
        ).first()
        if has_appointments:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Doctor has appointments; mark the doctor unavailable instead"
            )

        self.db.delete(doctor)
        self.db.commit()

    def _ensure_unique_doctor_email(self, email: str):
        if self.db.query(Doctor).filter(Doctor.email == email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Doctor email already registered"
            )

    # Lab test catalogue
    def list_available_tests(self) -> List[AvailableLabTest]:
        return self.db.query(AvailableLabTest).order_by(AvailableLabTest.name).all()

    def get_available_test(self, test_id: int) -> AvailableLabTest:
        test = self.db.query(AvailableLabTest).filter(AvailableLabTest.id == test_id).first()
        if not test:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lab test not found"
            )
        return test

    def create_available_test(self, data: AvailableLabTestCreate) -> AvailableLabTest:
        self._ensure_unique_test_name(data.name)

        test = AvailableLabTest(**data.model_dump())
        self.db.add(test)
        self.db.commit()
        self.db.refresh(test)

        logger.info(f"Lab test '{test.name}' added to catalogue at {test.price}")
        return test

    def update_available_test(self, test_id: int, data: AvailableLabTestUpdate) -> AvailableLabTest:
        test = self.get_available_test(test_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and changes["name"] != test.name:
            self._ensure_unique_test_name(changes["name"])

        for field, value in changes.items():
            setattr(test, field, value)

        self.db.commit()
        self.db.refresh(test)
        return test

    def delete_available_test(self, test_id: int) -> None:
        """Remove a catalogue entry. Bookings keep their name/price snapshot."""
        test = self.get_available_test(test_id)

        self.db.query(LabTestItem).filter(
            LabTestItem.available_test_id == test.id
        ).update({"available_test_id": None})

        self.db.delete(test)
        self.db.commit()

    def _ensure_unique_test_name(self, name: str):
        if self.db.query(AvailableLabTest).filter(AvailableLabTest.name == name).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A lab test with this name already exists"
            )
