from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...core.security import UserRole, TokenPayload, AuthenticationError
from ...api.deps import get_admin_user, get_current_patient, require_role
from ...models.patient import Patient
from ...services.patient_service import PatientService
from ...schemas.patient import PatientProfile, PatientResponse

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.get("/me", response_model=PatientResponse)
async def get_my_profile(patient: Patient = Depends(get_current_patient)):
    """The signed-in patient's profile."""
    return PatientResponse.model_validate(patient)

@router.put("/me", response_model=PatientResponse)
async def save_my_profile(
    profile: PatientProfile,
    current_user: TokenPayload = Depends(require_role([UserRole.PATIENT])),
    db: Session = Depends(get_db)
):
    """Create or update the signed-in patient's profile."""
    if not current_user.email:
        raise AuthenticationError("Token carries no email address")
    patient = PatientService(db).save_profile(current_user.email, profile)
    return PatientResponse.model_validate(patient)

# Admin routes
@router.get("", response_model=List[PatientResponse], dependencies=[Depends(get_admin_user)])
async def list_patients(
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """List patients, optionally searching name and email (admin only)."""
    patients = PatientService(db).list_patients(search, skip, limit)
    return [PatientResponse.model_validate(p) for p in patients]

@router.get("/{patient_id}", response_model=PatientResponse, dependencies=[Depends(get_admin_user)])
async def get_patient(patient_id: int, db: Session = Depends(get_db)):
    return PatientResponse.model_validate(PatientService(db).get_patient(patient_id))

@router.delete("/{patient_id}", dependencies=[Depends(get_admin_user)])
async def delete_patient(patient_id: int, db: Session = Depends(get_db)):
    """Delete a patient with their appointments and lab tests (admin only)."""
    PatientService(db).delete_patient(patient_id)
    return {"message": "Patient deleted successfully"}
