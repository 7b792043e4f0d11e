from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.settings_service import SettingsService
from ...schemas.settings import HospitalSettingsUpdate, HospitalSettingsResponse

router = APIRouter(prefix="/settings", tags=["Settings"])

@router.get("", response_model=HospitalSettingsResponse)
async def get_settings(db: Session = Depends(get_db)):
    """Hospital-wide settings, including the base appointment fee."""
    return HospitalSettingsResponse.model_validate(SettingsService(db).get_settings())

@router.put("", response_model=HospitalSettingsResponse, dependencies=[Depends(get_admin_user)])
async def update_settings(data: HospitalSettingsUpdate, db: Session = Depends(get_db)):
    """Change the base appointment fee for future bookings (admin only)."""
    row = SettingsService(db).update_base_appointment_fee(data.base_appointment_fee)
    return HospitalSettingsResponse.model_validate(row)
