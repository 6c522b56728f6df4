import calendar
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vendorsettle.models.catalog import Item
from vendorsettle.models.settlement import DailySalesRecord, SettlementLine, VendorSettlement
from vendorsettle.models.vendor import Vendor, VendorStatus
from vendorsettle.schemas.reports import (
    CategoryBreakdownOut,
    DashboardStatsOut,
    MonthlyReportOut,
    VendorPerformanceOut,
)


def month_bounds(month: str) -> tuple[date, date]:
    """First and last day of a ``YYYY-MM`` month."""
    year_text, month_text = month.split("-", 1)
    year, month_number = int(year_text), int(month_text)
    if not 1 <= month_number <= 12:
        raise ValueError(f"invalid month: {month}")
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def dashboard_stats(db: Session, business_id: int) -> DashboardStatsOut:
    revenue, net_profit = db.execute(
        select(
            func.coalesce(func.sum(DailySalesRecord.total_revenue), 0),
            func.coalesce(func.sum(DailySalesRecord.total_net_profit), 0),
        ).where(DailySalesRecord.business_id == business_id)
    ).one()
    active_vendors = db.scalar(
        select(func.count(Vendor.id)).where(
            Vendor.business_id == business_id,
            Vendor.status == VendorStatus.ACTIVE,
        )
    )
    active_items = db.scalar(
        select(func.count(Item.id)).where(Item.business_id == business_id, Item.is_active.is_(True))
    )
    low_stock_items = db.scalar(
        select(func.count(Item.id)).where(
            Item.business_id == business_id,
            Item.is_active.is_(True),
            Item.stock <= Item.low_stock_threshold,
        )
    )
    return DashboardStatsOut(
        business_id=business_id,
        total_revenue=Decimal(revenue or 0),
        total_profit=Decimal(net_profit or 0),
        total_vendors=int(active_vendors or 0),
        total_products=int(active_items or 0),
        low_stock_items=int(low_stock_items or 0),
    )


def monthly_report(db: Session, business_id: int, month: str) -> MonthlyReportOut:
    period_from, period_to = month_bounds(month)
    in_period = (
        VendorSettlement.business_id == business_id,
        VendorSettlement.sale_date >= period_from,
        VendorSettlement.sale_date <= period_to,
    )

    totals = db.execute(
        select(
            func.coalesce(func.sum(VendorSettlement.total_revenue), 0),
            func.coalesce(func.sum(VendorSettlement.total_cost), 0),
            func.coalesce(func.sum(VendorSettlement.gross_profit), 0),
            func.coalesce(func.sum(VendorSettlement.vendor_commission), 0),
            func.coalesce(func.sum(VendorSettlement.net_profit), 0),
            func.count(VendorSettlement.id),
        ).where(*in_period)
    ).one()

    category_rows = db.execute(
        select(
            SettlementLine.item_category,
            func.coalesce(func.sum(SettlementLine.unit_price * SettlementLine.quantity_sold), 0),
            func.coalesce(
                func.sum((SettlementLine.unit_price - SettlementLine.unit_cost) * SettlementLine.quantity_sold),
                0,
            ),
            func.coalesce(func.sum(SettlementLine.quantity_sold), 0),
        )
        .join(VendorSettlement, VendorSettlement.id == SettlementLine.vendor_settlement_id)
        .where(*in_period)
        .group_by(SettlementLine.item_category)
    ).all()
    categories = sorted(
        (
            CategoryBreakdownOut(
                category=category,
                total_revenue=Decimal(revenue or 0),
                gross_profit=Decimal(profit or 0),
                quantity_sold=int(quantity or 0),
            )
            for category, revenue, profit, quantity in category_rows
        ),
        key=lambda row: row.total_revenue,
        reverse=True,
    )

    vendor_rows = db.execute(
        select(
            VendorSettlement.vendor_id,
            VendorSettlement.vendor_name,
            func.coalesce(func.sum(VendorSettlement.total_revenue), 0),
            func.coalesce(func.sum(VendorSettlement.vendor_commission), 0),
            func.count(VendorSettlement.id),
        )
        .where(*in_period)
        .group_by(VendorSettlement.vendor_id, VendorSettlement.vendor_name)
    ).all()
    vendors = sorted(
        (
            VendorPerformanceOut(
                vendor_id=vendor_id,
                vendor_name=vendor_name,
                total_revenue=Decimal(revenue or 0),
                vendor_commission=Decimal(commission or 0),
                settlements=int(count or 0),
            )
            for vendor_id, vendor_name, revenue, commission, count in vendor_rows
        ),
        key=lambda row: row.total_revenue,
        reverse=True,
    )

    return MonthlyReportOut(
        business_id=business_id,
        month=f"{period_from.year:04d}-{period_from.month:02d}",
        period_from=period_from,
        period_to=period_to,
        total_revenue=Decimal(totals[0] or 0),
        total_cost=Decimal(totals[1] or 0),
        gross_profit=Decimal(totals[2] or 0),
        total_vendor_commission=Decimal(totals[3] or 0),
        net_profit=Decimal(totals[4] or 0),
        total_settlements=int(totals[5] or 0),
        categories=categories,
        vendors=vendors,
    )
