from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class DashboardStatsOut(BaseModel):
    business_id: int
    total_revenue: Decimal
    total_profit: Decimal
    total_vendors: int
    total_products: int
    low_stock_items: int


class CategoryBreakdownOut(BaseModel):
    category: str
    total_revenue: Decimal
    gross_profit: Decimal
    quantity_sold: int


class VendorPerformanceOut(BaseModel):
    vendor_id: int | None
    vendor_name: str
    total_revenue: Decimal
    vendor_commission: Decimal
    settlements: int


class MonthlyReportOut(BaseModel):
    business_id: int
    month: str
    period_from: date
    period_to: date
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    total_vendor_commission: Decimal
    net_profit: Decimal
    total_settlements: int
    categories: list[CategoryBreakdownOut]
    vendors: list[VendorPerformanceOut]
