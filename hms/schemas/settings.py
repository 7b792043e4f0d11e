from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class HospitalSettingsUpdate(BaseModel):
    base_appointment_fee: int = Field(..., ge=0)


class HospitalSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_appointment_fee: int
    updated_at: Optional[datetime] = None
