"""daily settlement records

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 10:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0003"
down_revision: Union[str, Sequence[str], None] = "20261019_0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "daily_sales_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("session_key", sa.String(length=64), nullable=False),
        sa.Column("recorded_by_user_id", sa.Integer(), nullable=True),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("total_revenue", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("total_cost", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("gross_profit", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("total_vendor_commission", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("total_net_profit", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recorded_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "session_key", name="uq_daily_sales_business_session"),
    )
    op.create_index(op.f("ix_daily_sales_records_business_id"), "daily_sales_records", ["business_id"], unique=False)
    op.create_index(op.f("ix_daily_sales_records_id"), "daily_sales_records", ["id"], unique=False)
    op.create_index(op.f("ix_daily_sales_records_recorded_at"), "daily_sales_records", ["recorded_at"], unique=False)
    op.create_index(
        op.f("ix_daily_sales_records_recorded_by_user_id"),
        "daily_sales_records",
        ["recorded_by_user_id"],
        unique=False,
    )
    op.create_index(op.f("ix_daily_sales_records_sale_date"), "daily_sales_records", ["sale_date"], unique=False)

    op.create_table(
        "vendor_settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=True),
        sa.Column("vendor_name", sa.String(length=160), nullable=False),
        sa.Column("commission_rate", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("total_revenue", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("total_cost", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("gross_profit", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("vendor_commission", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.Column("net_profit", sa.Numeric(precision=16, scale=6), nullable=False),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["record_id"], ["daily_sales_records.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_vendor_settlements_business_id"), "vendor_settlements", ["business_id"], unique=False)
    op.create_index(op.f("ix_vendor_settlements_id"), "vendor_settlements", ["id"], unique=False)
    op.create_index(op.f("ix_vendor_settlements_record_id"), "vendor_settlements", ["record_id"], unique=False)
    op.create_index(op.f("ix_vendor_settlements_sale_date"), "vendor_settlements", ["sale_date"], unique=False)
    op.create_index(op.f("ix_vendor_settlements_vendor_id"), "vendor_settlements", ["vendor_id"], unique=False)

    op.create_table(
        "settlement_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_settlement_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=True),
        sa.Column("item_name", sa.String(length=160), nullable=False),
        sa.Column("item_category", sa.String(length=120), nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("quantity_taken", sa.Integer(), nullable=False),
        sa.Column("quantity_returned", sa.Integer(), nullable=False),
        sa.Column("quantity_sold", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["vendor_settlement_id"], ["vendor_settlements.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_settlement_lines_id"), "settlement_lines", ["id"], unique=False)
    op.create_index(op.f("ix_settlement_lines_item_id"), "settlement_lines", ["item_id"], unique=False)
    op.create_index(
        op.f("ix_settlement_lines_vendor_settlement_id"),
        "settlement_lines",
        ["vendor_settlement_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_settlement_lines_vendor_settlement_id"), table_name="settlement_lines")
    op.drop_index(op.f("ix_settlement_lines_item_id"), table_name="settlement_lines")
    op.drop_index(op.f("ix_settlement_lines_id"), table_name="settlement_lines")
    op.drop_table("settlement_lines")

    op.drop_index(op.f("ix_vendor_settlements_vendor_id"), table_name="vendor_settlements")
    op.drop_index(op.f("ix_vendor_settlements_sale_date"), table_name="vendor_settlements")
    op.drop_index(op.f("ix_vendor_settlements_record_id"), table_name="vendor_settlements")
    op.drop_index(op.f("ix_vendor_settlements_id"), table_name="vendor_settlements")
    op.drop_index(op.f("ix_vendor_settlements_business_id"), table_name="vendor_settlements")
    op.drop_table("vendor_settlements")

    op.drop_index(op.f("ix_daily_sales_records_sale_date"), table_name="daily_sales_records")
    op.drop_index(op.f("ix_daily_sales_records_recorded_by_user_id"), table_name="daily_sales_records")
    op.drop_index(op.f("ix_daily_sales_records_recorded_at"), table_name="daily_sales_records")
    op.drop_index(op.f("ix_daily_sales_records_id"), table_name="daily_sales_records")
    op.drop_index(op.f("ix_daily_sales_records_business_id"), table_name="daily_sales_records")
    op.drop_table("daily_sales_records")
