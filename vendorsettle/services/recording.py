from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.orm import Session

from vendorsettle.models.settlement import DailySalesRecord, SettlementLine, VendorSettlement
from vendorsettle.schemas.settlement import DailySalesRecordOut, SettlementLineOut, VendorSettlementOut
from vendorsettle.services.settlement import SettlementRecord


def find_recorded(db: Session, business_id: int, session_key: str) -> DailySalesRecord | None:
    return db.scalar(
        select(DailySalesRecord).where(
            DailySalesRecord.business_id == business_id,
            DailySalesRecord.session_key == session_key,
        )
    )


def store_settlement_record(
    db: Session,
    business_id: int,
    recorded_by_user_id: int | None,
    record: SettlementRecord,
) -> DailySalesRecord:
    """Add the rows of a finished settlement; the caller commits."""
    stored = DailySalesRecord(
        business_id=business_id,
        session_key=record.session_key,
        recorded_by_user_id=recorded_by_user_id,
        sale_date=record.date,
        total_revenue=record.total_revenue,
        total_cost=record.total_cost,
        gross_profit=record.gross_profit,
        total_vendor_commission=record.total_vendor_commission,
        total_net_profit=record.total_net_profit,
    )
    db.add(stored)
    db.flush()

    for vendor in record.vendors:
        settlement = VendorSettlement(
            record_id=stored.id,
            business_id=business_id,
            vendor_id=vendor.vendor_id,
            vendor_name=vendor.vendor_name,
            commission_rate=vendor.commission_rate,
            sale_date=record.date,
            total_revenue=vendor.total_revenue,
            total_cost=vendor.total_cost,
            gross_profit=vendor.gross_profit,
            vendor_commission=vendor.vendor_commission,
            net_profit=vendor.net_profit,
        )
        db.add(settlement)
        db.flush()
        for line in vendor.items:
            db.add(
                SettlementLine(
                    vendor_settlement_id=settlement.id,
                    item_id=line.item_id,
                    item_name=line.item_name,
                    item_category=line.category,
                    unit_price=line.unit_price,
                    unit_cost=line.unit_cost,
                    quantity_taken=line.quantity_taken,
                    quantity_returned=line.quantity_returned,
                    quantity_sold=line.quantity_sold,
                )
            )
    db.flush()
    return stored


def settlements_out(db: Session, settlements: list[VendorSettlement]) -> list[VendorSettlementOut]:
    lines_by_settlement: dict[int, list[SettlementLine]] = defaultdict(list)
    settlement_ids = [settlement.id for settlement in settlements]
    if settlement_ids:
        lines = db.scalars(
            select(SettlementLine)
            .where(SettlementLine.vendor_settlement_id.in_(settlement_ids))
            .order_by(SettlementLine.id.asc())
        ).all()
        for line in lines:
            lines_by_settlement[line.vendor_settlement_id].append(line)

    result = []
    for settlement in settlements:
        out = VendorSettlementOut.model_validate(settlement)
        out.items = [SettlementLineOut.model_validate(line) for line in lines_by_settlement[settlement.id]]
        result.append(out)
    return result


def records_out(db: Session, records: list[DailySalesRecord]) -> list[DailySalesRecordOut]:
    record_ids = [record.id for record in records]
    settlements_by_record: dict[int, list[VendorSettlementOut]] = defaultdict(list)
    if record_ids:
        settlements = db.scalars(
            select(VendorSettlement)
            .where(VendorSettlement.record_id.in_(record_ids))
            .order_by(VendorSettlement.id.asc())
        ).all()
        for out in settlements_out(db, list(settlements)):
            settlements_by_record[out.record_id].append(out)

    result = []
    for record in records:
        out = DailySalesRecordOut.model_validate(record)
        out.vendors = settlements_by_record[record.id]
        result.append(out)
    return result


def record_out(db: Session, record: DailySalesRecord) -> DailySalesRecordOut:
    return records_out(db, [record])[0]
