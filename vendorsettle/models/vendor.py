from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vendorsettle.db.database import Base


class VendorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Vendor(Base):
    __tablename__ = "vendors"
    __table_args__ = (UniqueConstraint("business_id", "name", name="uq_vendors_business_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    status: Mapped[VendorStatus] = mapped_column(
        SQLEnum(VendorStatus),
        default=VendorStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    joined_on: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class VendorItem(Base):
    __tablename__ = "vendor_items"
    __table_args__ = (UniqueConstraint("vendor_id", "item_id", name="uq_vendor_items_vendor_item"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id", ondelete="CASCADE"), index=True, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), index=True, nullable=False)
