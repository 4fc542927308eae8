from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crud import reports as crud_reports
from database import clinic_now, get_db
from schemas.reports import DailyPharmacyReport
from utils.context import ClinicContext, get_clinic_context

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
)


@router.get("/pharmacy/daily", response_model=DailyPharmacyReport)
def get_daily_pharmacy_report(
    report_date: Optional[date] = None,
    db: Session = Depends(get_db),
    context: ClinicContext = Depends(get_clinic_context),
):
    """Pharmacy revenue for one day (today in clinic time when no date is given)."""
    return crud_reports.get_daily_pharmacy_report(db, context.tenant_id, report_date or clinic_now().date())
