from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from vendorsettle.services.settlement import MAX_QUANTITY


class SessionCreateRequest(BaseModel):
    session_date: date | None = Field(default=None, validation_alias=AliasChoices("session_date", "date"))


class VendorSelectRequest(BaseModel):
    vendor_id: int


class QuantityRequest(BaseModel):
    quantity: int = Field(le=MAX_QUANTITY, description="Negative values are treated as zero")


class LineItemOut(BaseModel):
    item_id: int
    item_name: str
    category: str
    unit_price: Decimal
    unit_cost: Decimal
    quantity_taken: int
    quantity_returned: int
    quantity_sold: int

    model_config = {"from_attributes": True}


class VendorTotalsOut(BaseModel):
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    commission: Decimal
    net_profit: Decimal

    model_config = {"from_attributes": True}


class SessionTotalsOut(BaseModel):
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    total_vendor_commission: Decimal
    total_net_profit: Decimal

    model_config = {"from_attributes": True}


class SessionVendorOut(BaseModel):
    vendor_id: int
    vendor_name: str
    commission_rate: Decimal
    items: list[LineItemOut]
    totals: VendorTotalsOut


class SessionOut(BaseModel):
    session_id: str
    session_key: str
    date: date
    phase: Literal["open", "locked"]
    morning_locked: bool
    created_at: datetime
    vendors: list[SessionVendorOut]
    totals: SessionTotalsOut


class SettlementLineOut(BaseModel):
    item_id: int | None
    item_name: str
    item_category: str
    unit_price: Decimal
    unit_cost: Decimal
    quantity_taken: int
    quantity_returned: int
    quantity_sold: int

    model_config = {"from_attributes": True}


class VendorSettlementOut(BaseModel):
    id: int
    record_id: int
    vendor_id: int | None
    vendor_name: str
    commission_rate: Decimal
    sale_date: date
    items: list[SettlementLineOut] = Field(default_factory=list)
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    vendor_commission: Decimal
    net_profit: Decimal

    model_config = {"from_attributes": True}


class DailySalesRecordOut(BaseModel):
    id: int
    business_id: int
    session_key: str
    sale_date: date
    recorded_by_user_id: int | None
    recorded_at: datetime
    vendors: list[VendorSettlementOut] = Field(default_factory=list)
    total_revenue: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    total_vendor_commission: Decimal
    total_net_profit: Decimal

    model_config = {"from_attributes": True}


class SubmitOut(BaseModel):
    record: DailySalesRecordOut
    already_recorded: bool
    session: SessionOut
