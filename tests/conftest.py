import os

# Set environment for testing before the application is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from datetime import datetime
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hms.main import app
from hms.api.deps import get_now
from hms.core.database import get_db, get_redis, Base
from hms.core.security import UserRole, create_access_token

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

# Wall clock pinned for every request; tests move it through the `clock` fixture
NOW = datetime(2025, 3, 10, 12, 0)

class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

frozen_clock = FrozenClock(NOW)
app.dependency_overrides[get_now] = frozen_clock

ADMIN_EMAIL = "admin@citygeneral.org"
OPERATOR_EMAIL = "lab@citygeneral.org"
DOCTOR_EMAIL = "g.house@citygeneral.org"
PATIENT_EMAIL = "jane.doe@mailbox.org"
OTHER_PATIENT_EMAIL = "john.roe@mailbox.org"

def make_headers(role: UserRole, email: str, sub: str = None) -> dict:
    token = create_access_token({"sub": sub or email, "email": email, "role": role.value})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    get_redis().flushdb()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def clock():
    frozen_clock.now = NOW
    yield frozen_clock
    frozen_clock.now = NOW

@pytest.fixture
def admin_headers():
    return make_headers(UserRole.ADMIN, ADMIN_EMAIL)

@pytest.fixture
def operator_headers():
    return make_headers(UserRole.LAB_OPERATOR, OPERATOR_EMAIL)

@pytest.fixture
def doctor_headers():
    return make_headers(UserRole.DOCTOR, DOCTOR_EMAIL)

@pytest.fixture
def patient_headers():
    return make_headers(UserRole.PATIENT, PATIENT_EMAIL)

@pytest.fixture
def other_patient_headers():
    return make_headers(UserRole.PATIENT, OTHER_PATIENT_EMAIL)

@pytest.fixture
def hospital(client, clock, admin_headers, operator_headers, patient_headers):
    """A department, a doctor, two catalogue tests and a patient profile."""
    department = client.post(
        "/api/v1/departments",
        json={"name": "Cardiology", "fee_percentage": 5},
        headers=admin_headers
    ).json()
    doctor = client.post(
        "/api/v1/doctors",
        json={
            "name": "Dr. Gregory House",
            "email": DOCTOR_EMAIL,
            "specialization": "Diagnostics",
            "department_id": department["id"],
            "fee_percentage": 10
        },
        headers=admin_headers
    ).json()
    blood_count = client.post(
        "/api/v1/lab-tests/catalog",
        json={"name": "Complete Blood Count", "price": 1500, "estimated_report_time": "24 hours"},
        headers=operator_headers
    ).json()
    lipid_panel = client.post(
        "/api/v1/lab-tests/catalog",
        json={"name": "Lipid Panel", "price": 2500, "estimated_report_time": "2 days"},
        headers=operator_headers
    ).json()
    patient = client.put(
        "/api/v1/patients/me",
        json={"name": "Jane Doe", "phone_number": "0771234567"},
        headers=patient_headers
    ).json()

    return {
        "department": department,
        "doctor": doctor,
        "blood_count": blood_count,
        "lipid_panel": lipid_panel,
        "patient": patient,
    }
