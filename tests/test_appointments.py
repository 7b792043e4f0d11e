from datetime import datetime

from tests.conftest import make_headers, OTHER_PATIENT_EMAIL
from hms.core.security import UserRole

SLOT_DATE = "2025-03-11"
SLOT_TIME = "10:00"
AFTER_SLOT = datetime(2025, 3, 11, 10, 30)

def book(client, hospital, headers, **overrides):
    payload = {
        "doctor_id": hospital["doctor"]["id"],
        "department_id": hospital["department"]["id"],
        "scheduled_date": SLOT_DATE,
        "scheduled_time": SLOT_TIME,
        "reason": "Chest pain",
    }
    payload.update(overrides)
    return client.post("/api/v1/appointments", json=payload, headers=headers)


class TestFees:

    def test_fee_quote(self, client, hospital):
        """Test the quote adds doctor and department percentages to the base fee."""
        response = client.get(
            "/api/v1/appointments/fee-quote",
            params={"doctor_id": hospital["doctor"]["id"], "department_id": hospital["department"]["id"]}
        )
        assert response.status_code == 200
        assert response.json() == {
            "base_fee": 1000,
            "doctor_fee_percentage": 10.0,
            "department_fee_percentage": 5.0,
            "total_fee": 1150,
        }

    def test_fee_quote_unknown_doctor(self, client, hospital):
        response = client.get(
            "/api/v1/appointments/fee-quote",
            params={"doctor_id": 999, "department_id": hospital["department"]["id"]}
        )
        assert response.status_code == 404

    def test_base_fee_change_applies_to_new_bookings_only(self, client, hospital, patient_headers, admin_headers):
        """Test existing appointments keep the fee they were booked at."""
        first = book(client, hospital, patient_headers).json()

        response = client.put("/api/v1/settings", json={"base_appointment_fee": 2000}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["base_appointment_fee"] == 2000

        second = book(client, hospital, patient_headers, scheduled_time="11:00").json()
        assert second["base_fee"] == 2000
        assert second["total_fee"] == 2300

        refreshed = client.get(f"/api/v1/appointments/{first['id']}", headers=admin_headers).json()
        assert refreshed["total_fee"] == 1150


class TestBooking:

    def test_book_appointment(self, client, hospital, patient_headers):
        """Test booking stores the computed fee and a paid status."""
        response = book(client, hospital, patient_headers)
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "scheduled"
        assert data["base_fee"] == 1000
        assert data["total_fee"] == 1150
        assert data["payment_status"] == "paid"
        assert data["payment_date"] == "2025-03-10"
        assert data["patient_name"] == "Jane Doe"
        assert data["doctor_name"] == "Dr. Gregory House"
        assert data["department_name"] == "Cardiology"

    def test_book_in_the_past(self, client, hospital, patient_headers):
        response = book(client, hospital, patient_headers, scheduled_date="2025-03-10", scheduled_time="11:59")
        assert response.status_code == 400

    def test_book_without_profile(self, client, hospital, other_patient_headers):
        """Test a patient must complete their profile before booking."""
        response = book(client, hospital, other_patient_headers)
        assert response.status_code == 404
        assert "Patient profile not found" in response.json()["message"]

    def test_book_doctor_from_other_department(self, client, hospital, patient_headers, admin_headers):
        neurology = client.post(
            "/api/v1/departments", json={"name": "Neurology", "fee_percentage": 8}, headers=admin_headers
        ).json()

        response = book(client, hospital, patient_headers, department_id=neurology["id"])
        assert response.status_code == 400

    def test_book_unavailable_doctor(self, client, hospital, patient_headers, admin_headers):
        client.patch(
            f"/api/v1/doctors/{hospital['doctor']['id']}", json={"is_available": False}, headers=admin_headers
        )

        response = book(client, hospital, patient_headers)
        assert response.status_code == 400

    def test_book_with_malformed_time(self, client, hospital, patient_headers):
        response = book(client, hospital, patient_headers, scheduled_time="25:00")
        assert response.status_code == 422

    def test_book_requires_patient_role(self, client, hospital, doctor_headers):
        response = book(client, hospital, doctor_headers)
        assert response.status_code == 403

    def test_my_appointments(self, client, hospital, patient_headers, other_patient_headers):
        book(client, hospital, patient_headers)
        client.put("/api/v1/patients/me", json={"name": "John Roe"}, headers=other_patient_headers)

        assert len(client.get("/api/v1/appointments/mine", headers=patient_headers).json()) == 1
        assert client.get("/api/v1/appointments/mine", headers=other_patient_headers).json() == []


class TestPatientActions:

    def test_cancel_before_slot(self, client, hospital, patient_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.post(f"/api/v1/appointments/{appointment['id']}/cancel", headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancel_after_slot(self, client, clock, hospital, patient_headers):
        """Test the slot start closes the cancellation window."""
        appointment = book(client, hospital, patient_headers).json()
        clock.now = AFTER_SLOT

        response = client.post(f"/api/v1/appointments/{appointment['id']}/cancel", headers=patient_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "Invalid Transition"

    def test_cancel_twice(self, client, hospital, patient_headers):
        appointment = book(client, hospital, patient_headers).json()
        client.post(f"/api/v1/appointments/{appointment['id']}/cancel", headers=patient_headers)

        response = client.post(f"/api/v1/appointments/{appointment['id']}/cancel", headers=patient_headers)
        assert response.status_code == 409

    def test_cannot_cancel_someone_elses(self, client, hospital, patient_headers, other_patient_headers):
        appointment = book(client, hospital, patient_headers).json()
        client.put("/api/v1/patients/me", json={"name": "John Roe"}, headers=other_patient_headers)

        response = client.post(f"/api/v1/appointments/{appointment['id']}/cancel", headers=other_patient_headers)
        assert response.status_code == 404

    def test_reschedule_request_then_admin_moves_it(self, client, hospital, patient_headers, admin_headers):
        """Test an admin moving a requested appointment reopens it."""
        appointment = book(client, hospital, patient_headers).json()

        response = client.post(
            f"/api/v1/appointments/{appointment['id']}/reschedule-request", headers=patient_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "reschedule_requested"

        response = client.patch(
            f"/api/v1/appointments/{appointment['id']}",
            json={"scheduled_date": "2025-03-14", "scheduled_time": "09:30"},
            headers=admin_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "scheduled"
        assert data["scheduled_date"] == "2025-03-14"
        assert data["scheduled_time"] == "09:30"

    def test_admin_cannot_move_into_the_past(self, client, hospital, patient_headers, admin_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.patch(
            f"/api/v1/appointments/{appointment['id']}",
            json={"scheduled_date": "2025-03-01"},
            headers=admin_headers
        )
        assert response.status_code == 400


class TestDoctorPortal:

    def test_doctor_sees_own_appointments(self, client, hospital, patient_headers, doctor_headers):
        book(client, hospital, patient_headers)

        response = client.get("/api/v1/doctors/me/appointments", headers=doctor_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_unknown_doctor_account(self, client, hospital):
        headers = make_headers(UserRole.DOCTOR, "locum@citygeneral.org")
        response = client.get("/api/v1/doctors/me/appointments", headers=headers)
        assert response.status_code == 403

    def test_complete_before_slot(self, client, hospital, patient_headers, doctor_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.post(
            f"/api/v1/doctors/me/appointments/{appointment['id']}/outcome",
            json={"status": "completed"},
            headers=doctor_headers
        )
        assert response.status_code == 409

    def test_complete_after_slot(self, client, clock, hospital, patient_headers, doctor_headers):
        appointment = book(client, hospital, patient_headers).json()
        clock.now = AFTER_SLOT

        response = client.post(
            f"/api/v1/doctors/me/appointments/{appointment['id']}/outcome",
            json={"status": "completed"},
            headers=doctor_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["completed_by"] == hospital["doctor"]["id"]
        assert data["completed_at"] == "2025-03-11T10:30:00"

    def test_no_show_after_slot(self, client, clock, hospital, patient_headers, doctor_headers):
        appointment = book(client, hospital, patient_headers).json()
        clock.now = AFTER_SLOT

        response = client.post(
            f"/api/v1/doctors/me/appointments/{appointment['id']}/outcome",
            json={"status": "no-show"},
            headers=doctor_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "no-show"

    def test_doctor_lists_own_patients(self, client, hospital, patient_headers, other_patient_headers, doctor_headers):
        """Test only patients with a booking appear in the doctor's list."""
        book(client, hospital, patient_headers)
        book(client, hospital, patient_headers, scheduled_time="11:00")
        client.put("/api/v1/patients/me", json={"name": "John Roe"}, headers=other_patient_headers)

        response = client.get("/api/v1/doctors/me/patients", headers=doctor_headers)
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Jane Doe"]

    def test_patient_history(self, client, hospital, patient_headers, doctor_headers):
        """Test history holds this doctor's appointments and all lab tests, newest first."""
        earlier = book(client, hospital, patient_headers).json()
        later = book(client, hospital, patient_headers, scheduled_date="2025-03-20").json()
        lab_test = client.post(
            "/api/v1/lab-tests",
            json={"test_ids": [hospital["blood_count"]["id"]], "scheduled_date": "2025-03-12", "scheduled_time": "08:00"},
            headers=patient_headers
        ).json()

        response = client.get(
            f"/api/v1/doctors/me/patients/{hospital['patient']['id']}/history", headers=doctor_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["patient"]["email"] == "jane.doe@mailbox.org"
        assert [a["id"] for a in data["appointments"]] == [later["id"], earlier["id"]]
        assert [t["id"] for t in data["lab_tests"]] == [lab_test["id"]]

    def test_history_of_unrelated_patient(self, client, hospital, other_patient_headers, doctor_headers):
        stranger = client.put("/api/v1/patients/me", json={"name": "John Roe"}, headers=other_patient_headers).json()

        response = client.get(f"/api/v1/doctors/me/patients/{stranger['id']}/history", headers=doctor_headers)
        assert response.status_code == 404

    def test_history_requires_doctor(self, client, hospital, patient_headers):
        response = client.get(
            f"/api/v1/doctors/me/patients/{hospital['patient']['id']}/history", headers=patient_headers
        )
        assert response.status_code == 403

    def test_doctor_cannot_cancel(self, client, hospital, patient_headers, doctor_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.post(
            f"/api/v1/doctors/me/appointments/{appointment['id']}/outcome",
            json={"status": "cancelled"},
            headers=doctor_headers
        )
        assert response.status_code == 400


class TestAdminManagement:

    def test_list_by_status(self, client, hospital, patient_headers, admin_headers):
        first = book(client, hospital, patient_headers).json()
        book(client, hospital, patient_headers, scheduled_time="11:00")
        client.post(f"/api/v1/appointments/{first['id']}/cancel", headers=patient_headers)

        response = client.get("/api/v1/appointments", params={"status": "cancelled"}, headers=admin_headers)
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [first["id"]]

        assert len(client.get("/api/v1/appointments", headers=admin_headers).json()) == 2

    def test_fee_recomputed_on_base_fee_edit(self, client, hospital, patient_headers, admin_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.patch(
            f"/api/v1/appointments/{appointment['id']}", json={"base_fee": 1500}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["total_fee"] == 1725

    def test_fee_recomputed_on_doctor_change(self, client, hospital, patient_headers, admin_headers):
        appointment = book(client, hospital, patient_headers).json()
        junior = client.post(
            "/api/v1/doctors",
            json={
                "name": "Dr. Robert Chase",
                "email": "r.chase@citygeneral.org",
                "specialization": "Intensive Care",
                "department_id": hospital["department"]["id"],
                "fee_percentage": 0
            },
            headers=admin_headers
        ).json()

        response = client.patch(
            f"/api/v1/appointments/{appointment['id']}", json={"doctor_id": junior["id"]}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["total_fee"] == 1050

    def test_admin_status_change_obeys_lifecycle(self, client, hospital, patient_headers, admin_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.patch(
            f"/api/v1/appointments/{appointment['id']}", json={"status": "completed"}, headers=admin_headers
        )
        assert response.status_code == 409

    def test_restating_current_status_rejected(self, client, hospital, patient_headers, admin_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.patch(
            f"/api/v1/appointments/{appointment['id']}", json={"status": "scheduled"}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Invalid Transition"

    def test_delete_appointment(self, client, hospital, patient_headers, admin_headers):
        appointment = book(client, hospital, patient_headers).json()

        response = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert client.get(f"/api/v1/appointments/{appointment['id']}", headers=admin_headers).status_code == 404

    def test_admin_routes_reject_patients(self, client, hospital, patient_headers):
        response = client.get("/api/v1/appointments", headers=patient_headers)
        assert response.status_code == 403

    def test_other_patient_token_is_not_admin(self, client, hospital):
        headers = make_headers(UserRole.PATIENT, OTHER_PATIENT_EMAIL)
        assert client.get("/api/v1/appointments", headers=headers).status_code == 403
