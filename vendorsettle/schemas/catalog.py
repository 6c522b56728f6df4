from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator


class ItemCreate(BaseModel):
    name: str = Field(min_length=2, max_length=160)
    category: str = Field(default="General", min_length=1, max_length=120)
    unit_price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    unit_cost: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)
    description: str | None = None


class ItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=160)
    category: str | None = Field(default=None, min_length=1, max_length=120)
    unit_price: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    low_stock_threshold: int | None = Field(default=None, ge=0)
    description: str | None = None
    is_active: bool | None = None


class StockUpdateRequest(BaseModel):
    stock: int = Field(ge=0)


class ItemOut(BaseModel):
    id: int
    business_id: int
    name: str
    category: str
    unit_price: Decimal
    unit_cost: Decimal
    unit_margin: Decimal = Decimal("0")
    stock: int
    low_stock_threshold: int
    is_low_stock: bool = False
    description: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def derive_stock_fields(self):
        self.unit_margin = self.unit_price - self.unit_cost
        self.is_low_stock = self.stock <= self.low_stock_threshold
        return self
