from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vendorsettle.db.database import Base


class DailySalesRecord(Base):
    __tablename__ = "daily_sales_records"
    __table_args__ = (UniqueConstraint("business_id", "session_key", name="uq_daily_sales_business_session"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    session_key: Mapped[str] = mapped_column(String(64), nullable=False)
    recorded_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    sale_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    gross_profit: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    total_vendor_commission: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    total_net_profit: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class VendorSettlement(Base):
    __tablename__ = "vendor_settlements"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("daily_sales_records.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendors.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    vendor_name: Mapped[str] = mapped_column(String(160), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    sale_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    gross_profit: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    vendor_commission: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    net_profit: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)


class SettlementLine(Base):
    __tablename__ = "settlement_lines"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    vendor_settlement_id: Mapped[int] = mapped_column(
        ForeignKey("vendor_settlements.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    item_id: Mapped[int | None] = mapped_column(ForeignKey("items.id", ondelete="SET NULL"), index=True, nullable=True)
    item_name: Mapped[str] = mapped_column(String(160), nullable=False)
    item_category: Mapped[str] = mapped_column(String(120), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity_taken: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_returned: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)
