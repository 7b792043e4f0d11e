from pydantic import BaseModel
from typing import Dict, List, Union

from .appointment import AppointmentResponse
from .lab_test import LabTestResponse

Amount = Union[int, float]


class Series(BaseModel):
    labels: List[str]
    data: List[Amount]


class EarningsReport(BaseModel):
    total_earnings: Amount
    appointment_earnings: Amount
    lab_test_earnings: Amount
    appointments_by_month: Series
    lab_tests_by_month: Series
    by_doctor: Series
    by_department: Series


class DashboardSummary(BaseModel):
    total_patients: int
    total_doctors: int
    total_departments: int
    appointments_by_status: Dict[str, int]
    lab_tests_by_status: Dict[str, int]
    recent_appointments: List[AppointmentResponse]
    recent_lab_tests: List[LabTestResponse]
