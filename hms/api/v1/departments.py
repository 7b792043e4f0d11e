from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.catalog_service import CatalogService
from ...schemas.catalog import DepartmentCreate, DepartmentUpdate, DepartmentResponse

router = APIRouter(prefix="/departments", tags=["Departments"])

@router.get("", response_model=List[DepartmentResponse])
async def list_departments(db: Session = Depends(get_db)):
    """List all departments with their fee percentages."""
    departments = CatalogService(db).list_departments()
    return [DepartmentResponse.model_validate(d) for d in departments]

@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(department_id: int, db: Session = Depends(get_db)):
    return DepartmentResponse.model_validate(CatalogService(db).get_department(department_id))

@router.post("", response_model=DepartmentResponse, status_code=201, dependencies=[Depends(get_admin_user)])
async def create_department(data: DepartmentCreate, db: Session = Depends(get_db)):
    """Create a department (admin only)."""
    return DepartmentResponse.model_validate(CatalogService(db).create_department(data))

@router.patch("/{department_id}", response_model=DepartmentResponse, dependencies=[Depends(get_admin_user)])
async def update_department(department_id: int, data: DepartmentUpdate, db: Session = Depends(get_db)):
    """Update a department (admin only)."""
    return DepartmentResponse.model_validate(CatalogService(db).update_department(department_id, data))

@router.delete("/{department_id}", dependencies=[Depends(get_admin_user)])
async def delete_department(department_id: int, db: Session = Depends(get_db)):
    """Delete a department that has no doctors (admin only)."""
    CatalogService(db).delete_department(department_id)
    return {"message": "Department deleted successfully"}
