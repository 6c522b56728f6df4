from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from vendorsettle.models.vendor import VendorStatus
from vendorsettle.services.settlement import VENDOR_NAME_REQUIRED, parse_commission_rate


def _normalize_rate(value):
    if value is None:
        return value
    return parse_commission_rate(value)


class AdHocVendorCreate(BaseModel):
    name: str = Field(max_length=160)
    commission_rate: Decimal = Field(max_digits=5, decimal_places=2)

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, value):
        cleaned = value.strip() if isinstance(value, str) else ""
        if not cleaned:
            raise ValueError(VENDOR_NAME_REQUIRED)
        return cleaned

    @field_validator("commission_rate", mode="before")
    @classmethod
    def validate_commission_rate(cls, value):
        return parse_commission_rate(value)


class VendorCreate(AdHocVendorCreate):
    email: str | None = Field(default=None, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = Field(default=None, max_length=40)
    item_ids: list[int] = Field(default_factory=list)


class VendorUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = Field(default=None, max_length=40)
    commission_rate: Decimal | None = Field(default=None, max_digits=5, decimal_places=2)
    status: VendorStatus | None = None
    item_ids: list[int] | None = None

    @field_validator("commission_rate", mode="before")
    @classmethod
    def validate_commission_rate(cls, value):
        return _normalize_rate(value)


class VendorOut(BaseModel):
    id: int
    business_id: int
    name: str
    email: str | None
    phone: str | None
    commission_rate: Decimal
    status: VendorStatus
    joined_on: date
    item_ids: list[int] = Field(default_factory=list)
    total_sales: Decimal = Decimal("0")
    monthly_commission: Decimal = Decimal("0")
    created_at: datetime

    model_config = {"from_attributes": True}
