from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from vendorsettle.api.deps import enforce_business_scope, require_permission
from vendorsettle.db.database import get_db
from vendorsettle.models.settlement import DailySalesRecord
from vendorsettle.models.user import User
from vendorsettle.schemas.reports import DashboardStatsOut, MonthlyReportOut
from vendorsettle.schemas.settlement import DailySalesRecordOut
from vendorsettle.services.recording import record_out, records_out
from vendorsettle.services.reporting import dashboard_stats, monthly_report

router = APIRouter(tags=["Sales"])


@router.get("/sales", response_model=list[DailySalesRecordOut])
def list_sales(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    current_user: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    query = (
        select(DailySalesRecord)
        .where(DailySalesRecord.business_id == current_user.business_id)
        .order_by(DailySalesRecord.sale_date.desc(), DailySalesRecord.id.desc())
    )
    if date_from is not None:
        query = query.where(DailySalesRecord.sale_date >= date_from)
    if date_to is not None:
        query = query.where(DailySalesRecord.sale_date <= date_to)
    return records_out(db, list(db.scalars(query).all()))


@router.get("/sales/daily/{sale_date}", response_model=list[DailySalesRecordOut])
def daily_sales_report(
    sale_date: date,
    current_user: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    records = db.scalars(
        select(DailySalesRecord)
        .where(
            DailySalesRecord.business_id == current_user.business_id,
            DailySalesRecord.sale_date == sale_date,
        )
        .order_by(DailySalesRecord.id.asc())
    ).all()
    return records_out(db, list(records))


@router.get("/sales/{record_id}", response_model=DailySalesRecordOut)
def get_sales_record(
    record_id: int,
    current_user: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    record = db.get(DailySalesRecord, record_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales record not found")
    enforce_business_scope(record.business_id, current_user)
    return record_out(db, record)


@router.get("/reports/dashboard", response_model=DashboardStatsOut)
def dashboard(
    current_user: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    return dashboard_stats(db, current_user.business_id)


@router.get("/reports/monthly", response_model=MonthlyReportOut)
def monthly(
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    current_user: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    target = month or date.today().strftime("%Y-%m")
    try:
        return monthly_report(db, current_user.business_id, target)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
