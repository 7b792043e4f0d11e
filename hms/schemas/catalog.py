from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime

from ..core.config import settings


class DepartmentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    fee_percentage: float = Field(settings.DEFAULT_DEPARTMENT_FEE_PERCENTAGE, ge=0, allow_inf_nan=False)


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    fee_percentage: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class DepartmentResponse(DepartmentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None


class DoctorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    specialization: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = None
    department_id: int
    fee_percentage: float = Field(settings.DEFAULT_DOCTOR_FEE_PERCENTAGE, ge=0, allow_inf_nan=False)
    is_available: bool = True


class DoctorCreate(DoctorBase):
    pass


class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    specialization: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    department_id: Optional[int] = None
    fee_percentage: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    is_available: Optional[bool] = None


class DoctorResponse(DoctorBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    department_name: Optional[str] = None
    created_at: Optional[datetime] = None


class AvailableLabTestBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., ge=0, allow_inf_nan=False)
    preparation_instructions: Optional[str] = None
    estimated_report_time: Optional[str] = Field(None, max_length=50)


class AvailableLabTestCreate(AvailableLabTestBase):
    pass


class AvailableLabTestUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    preparation_instructions: Optional[str] = None
    estimated_report_time: Optional[str] = Field(None, max_length=50)


class AvailableLabTestResponse(AvailableLabTestBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
