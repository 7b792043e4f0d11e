from sqlalchemy import or_
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from typing import List, Optional
import base64
import binascii
import logging

from ..core.config import settings
from ..models.lab_test import AvailableLabTest, LabTest, LabTestItem, LabTestStatus
from ..models.patient import Patient
from ..schemas.lab_test import LabTestBook, ReportUpload
from .fees import lab_test_total
from .lifecycle import (
    LifecycleError, can_cancel, can_mark_as_taken, report_turnaround_hours,
    scheduled_datetime, validate_lab_test_transition
)
from .notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)

class LabTestService:
    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationService(db)

    def book(self, patient: Patient, data: LabTestBook, now: datetime) -> LabTest:
        """Book one or more catalogue tests for a single slot."""
        if scheduled_datetime(data.scheduled_date, data.scheduled_time) < now:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot schedule a test for a time that has already passed. "
                       "Please select a future time."
            )

        # Keep the patient's selection order, ignoring repeats
        test_ids = list(dict.fromkeys(data.test_ids))
        catalogue = {
            t.id: t for t in self.db.query(AvailableLabTest).filter(
                AvailableLabTest.id.in_(test_ids)
            ).all()
        }
        missing = [test_id for test_id in test_ids if test_id not in catalogue]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown lab tests: {missing}"
            )

        selected = [catalogue[test_id] for test_id in test_ids]
        lab_test = LabTest(
            patient_id=patient.id,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            special_instructions=data.special_instructions,
            total_price=lab_test_total(t.price for t in selected),
            status=LabTestStatus.SCHEDULED,
            items=[
                LabTestItem(available_test_id=t.id, name=t.name, price=t.price)
                for t in selected
            ],
        )
        self.db.add(lab_test)
        self.db.flush()

        self.notifications.notify(
            NotificationType.LAB_TEST_BOOKED,
            "New lab test booking",
            f"{patient.name} booked {', '.join(t.name for t in selected)} "
            f"on {data.scheduled_date} at {data.scheduled_time}",
            lab_test.id,
        )

        self.db.commit()
        self.db.refresh(lab_test)

        logger.info(
            f"Lab test {lab_test.id} booked for patient {patient.id}: "
            f"{len(selected)} tests, total {lab_test.total_price}"
        )
        return lab_test

    def get_lab_test(self, lab_test_id: int) -> LabTest:
        lab_test = self.db.query(LabTest).filter(LabTest.id == lab_test_id).first()
        if not lab_test:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lab test not found"
            )
        return lab_test

    def get_for_patient(self, patient: Patient, lab_test_id: int) -> LabTest:
        lab_test = self.get_lab_test(lab_test_id)
        if lab_test.patient_id != patient.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lab test not found"
            )
        return lab_test

    def list_lab_tests(
        self,
        status_filter: Optional[LabTestStatus] = None,
        search: Optional[str] = None,
        patient_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[LabTest]:
        query = self.db.query(LabTest).join(LabTest.patient)
        if status_filter is not None:
            query = query.filter(LabTest.status == status_filter)
        if patient_id is not None:
            query = query.filter(LabTest.patient_id == patient_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Patient.name.ilike(pattern),
                Patient.email.ilike(pattern),
                LabTest.items.any(LabTestItem.name.ilike(pattern)),
            ))
        return query.order_by(
            LabTest.scheduled_date.desc(), LabTest.scheduled_time.desc()
        ).offset(skip).limit(limit).all()

    def action_flags(self, lab_test: LabTest, now: datetime) -> dict:
        """Which operator actions are currently open for ``lab_test``."""
        scheduled_at = scheduled_datetime(lab_test.scheduled_date, lab_test.scheduled_time)
        return {
            "can_mark_as_taken": can_mark_as_taken(lab_test.status, scheduled_at, now),
            "can_cancel": can_cancel(lab_test.status, scheduled_at, now),
        }

    def cancel_for_patient(self, patient: Patient, lab_test_id: int, now: datetime) -> LabTest:
        lab_test = self.get_for_patient(patient, lab_test_id)
        self._transition(lab_test, LabTestStatus.CANCELLED, now)

        self.notifications.notify(
            NotificationType.LAB_TEST_CANCELLED,
            "Lab test cancelled",
            f"{patient.name} cancelled lab test {lab_test.id}",
            lab_test.id,
        )
        self.db.commit()
        self.db.refresh(lab_test)
        return lab_test

    def update_status(self, lab_test_id: int, target: LabTestStatus, now: datetime) -> LabTest:
        """Move a booking along its lifecycle from the operator console."""
        lab_test = self.get_lab_test(lab_test_id)
        self._transition(lab_test, target, now)

        if lab_test.status == LabTestStatus.TEST_TAKEN:
            lab_test.test_taken_at = now
            lab_test.report_ready_time = now + timedelta(hours=self._turnaround_hours(lab_test))

        self.db.commit()
        self.db.refresh(lab_test)
        return lab_test

    def set_report_ready_time(self, lab_test_id: int, ready_at: datetime) -> LabTest:
        lab_test = self.get_lab_test(lab_test_id)
        lab_test.report_ready_time = ready_at

        self.db.commit()
        self.db.refresh(lab_test)
        return lab_test

    def upload_report(self, lab_test_id: int, upload: ReportUpload, now: datetime) -> LabTest:
        """Attach the result file and complete the booking."""
        lab_test = self.get_lab_test(lab_test_id)

        if lab_test.status != LabTestStatus.TEST_TAKEN:
            raise LifecycleError('Reports can only be uploaded for tests marked as "Test Taken"')

        if upload.content_type not in settings.REPORT_ALLOWED_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid file type. Please upload a PDF, DOC, DOCX, or image file."
            )

        try:
            content = base64.b64decode(upload.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Report data is not valid base64"
            ) from exc

        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Report file is empty"
            )
        if len(content) > settings.REPORT_MAX_BYTES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File is too large. Maximum size is {settings.REPORT_MAX_BYTES // (1024 * 1024)}MB."
            )

        self._transition(lab_test, LabTestStatus.COMPLETED, now)
        lab_test.report_file_name = upload.file_name
        lab_test.report_content_type = upload.content_type
        lab_test.report_size = len(content)
        lab_test.report_data = content
        lab_test.report_uploaded_at = now

        self.db.commit()
        self.db.refresh(lab_test)

        logger.info(f"Report '{upload.file_name}' ({len(content)} bytes) uploaded for lab test {lab_test.id}")
        return lab_test

    def get_report(self, lab_test: LabTest) -> LabTest:
        if lab_test.report_data is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No report has been uploaded for this test yet"
            )
        return lab_test

    def _turnaround_hours(self, lab_test: LabTest) -> int:
        # First booked test whose catalogue entry carries an estimate wins
        for item in lab_test.items:
            if item.available_test and item.available_test.estimated_report_time:
                return report_turnaround_hours(
                    item.available_test.estimated_report_time,
                    default=settings.DEFAULT_REPORT_TURNAROUND_HOURS
                )
        return settings.DEFAULT_REPORT_TURNAROUND_HOURS

    def _transition(self, lab_test: LabTest, target: LabTestStatus, now: datetime):
        scheduled_at = scheduled_datetime(lab_test.scheduled_date, lab_test.scheduled_time)
        previous = lab_test.status
        lab_test.status = validate_lab_test_transition(previous, target, scheduled_at, now)
        logger.info(f"Lab test {lab_test.id}: {previous.value} -> {lab_test.status.value}")
