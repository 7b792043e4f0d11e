from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.report_service import ReportService
from ...schemas.dashboard import DashboardSummary, EarningsReport

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(get_admin_user)])

@router.get("/earnings", response_model=EarningsReport)
async def earnings(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """Earnings from appointments and lab tests scheduled in the date range."""
    return EarningsReport(**ReportService(db).earnings(start_date, end_date))

@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(db: Session = Depends(get_db)):
    """Headline counts and the latest bookings."""
    return DashboardSummary.model_validate(ReportService(db).dashboard(), from_attributes=True)
