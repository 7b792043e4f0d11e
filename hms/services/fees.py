"""
Fee and earnings arithmetic.

Appointment fees are a base fee plus a doctor markup and a department markup,
both expressed as percentages of the base fee. Lab bookings cost the sum of
the selected catalogue prices. Nothing here touches the database.
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List


def _as_decimal(value, name: str) -> Decimal:
    if value is None:
        return Decimal(0)
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"{name} must be a finite number")
    if amount < 0:
        raise ValueError(f"{name} must not be negative")
    return amount


def compute_fee(base_fee, doctor_percentage=0, department_percentage=0) -> int:
    """Return ``round(base + base*doctor%/100 + base*department%/100)``.

    Halves round up, so ``compute_fee(1005, 10, 0) == 1106``.
    """
    base = _as_decimal(base_fee, "Base fee")
    doctor_markup = base * _as_decimal(doctor_percentage, "Doctor fee percentage") / 100
    department_markup = base * _as_decimal(department_percentage, "Department fee percentage") / 100
    total = base + doctor_markup + department_markup
    return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def lab_test_total(prices: Iterable[float]) -> float:
    """Sum of the selected catalogue prices."""
    return float(sum(prices, 0.0))


def _month_label(day: date) -> str:
    return day.strftime("%b %Y")


def _by_month(records, amount_of) -> dict:
    totals = OrderedDict()
    for record in sorted(records, key=lambda r: r.scheduled_date):
        label = _month_label(record.scheduled_date)
        totals[label] = totals.get(label, 0) + amount_of(record)
    return {"labels": list(totals.keys()), "data": list(totals.values())}


def _by_entity(records, key_of, amount_of) -> dict:
    totals = {}
    for record in records:
        key = key_of(record) or "Unknown"
        totals[key] = totals.get(key, 0) + amount_of(record)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return {"labels": [k for k, _ in ranked], "data": [v for _, v in ranked]}


def _is_billable(record) -> bool:
    return getattr(record.status, "value", record.status) != "cancelled"


def summarize_earnings(appointments: List, lab_tests: List) -> dict:
    """Aggregate billable appointments and lab tests for the earnings report.

    Appointments need ``status``, ``total_fee``, ``scheduled_date``,
    ``doctor_name`` and ``department_name``; lab tests need ``status``,
    ``total_price`` and ``scheduled_date``. Cancelled records earn nothing.
    """
    billable_appointments = [a for a in appointments if _is_billable(a)]
    billable_lab_tests = [t for t in lab_tests if _is_billable(t)]

    appointment_total = sum(a.total_fee or 0 for a in billable_appointments)
    lab_test_total_amount = sum(t.total_price or 0 for t in billable_lab_tests)

    return {
        "total_earnings": appointment_total + lab_test_total_amount,
        "appointment_earnings": appointment_total,
        "lab_test_earnings": lab_test_total_amount,
        "appointments_by_month": _by_month(billable_appointments, lambda a: a.total_fee or 0),
        "lab_tests_by_month": _by_month(billable_lab_tests, lambda t: t.total_price or 0),
        "by_doctor": _by_entity(billable_appointments, lambda a: a.doctor_name, lambda a: a.total_fee or 0),
        "by_department": _by_entity(billable_appointments, lambda a: a.department_name, lambda a: a.total_fee or 0),
    }
