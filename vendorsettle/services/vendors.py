from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from vendorsettle.models.catalog import Item
from vendorsettle.models.settlement import VendorSettlement
from vendorsettle.models.vendor import Vendor, VendorItem, VendorStatus
from vendorsettle.schemas.vendor import VendorOut
from vendorsettle.services.settlement import UnknownEntityError, VendorProfile, validate_vendor_input


def create_vendor(
    db: Session,
    business_id: int,
    name: str,
    commission_rate,
    email: str | None = None,
    phone: str | None = None,
    item_ids: Iterable[int] = (),
) -> Vendor:
    """Validate and add a vendor; the caller commits."""
    cleaned_name, rate = validate_vendor_input(name, commission_rate)
    vendor = Vendor(
        business_id=business_id,
        name=cleaned_name,
        email=email.strip().lower() if email else None,
        phone=phone.strip() if phone else None,
        commission_rate=rate,
        status=VendorStatus.ACTIVE,
    )
    db.add(vendor)
    db.flush()
    set_vendor_items(db, vendor, item_ids)
    return vendor


def set_vendor_items(db: Session, vendor: Vendor, item_ids: Iterable[int]) -> None:
    wanted = list(dict.fromkeys(item_ids))
    if wanted:
        found = set(
            db.scalars(
                select(Item.id).where(Item.id.in_(wanted), Item.business_id == vendor.business_id)
            ).all()
        )
        missing = [item_id for item_id in wanted if item_id not in found]
        if missing:
            raise UnknownEntityError(f"items not found: {missing}")
    db.execute(delete(VendorItem).where(VendorItem.vendor_id == vendor.id))
    for item_id in wanted:
        db.add(VendorItem(vendor_id=vendor.id, item_id=item_id))


def vendor_profile(vendor: Vendor) -> VendorProfile:
    return VendorProfile(id=vendor.id, name=vendor.name, commission_rate=Decimal(vendor.commission_rate))


def _item_ids_by_vendor(db: Session, vendor_ids: list[int]) -> dict[int, list[int]]:
    result: dict[int, list[int]] = defaultdict(list)
    if not vendor_ids:
        return result
    rows = db.execute(
        select(VendorItem.vendor_id, VendorItem.item_id)
        .where(VendorItem.vendor_id.in_(vendor_ids))
        .order_by(VendorItem.item_id.asc())
    ).all()
    for vendor_id, item_id in rows:
        result[vendor_id].append(item_id)
    return result


def _sales_by_vendor(db: Session, vendor_ids: list[int], today: date) -> dict[int, tuple[Decimal, Decimal]]:
    if not vendor_ids:
        return {}
    month_start = today.replace(day=1)
    totals = dict(
        db.execute(
            select(VendorSettlement.vendor_id, func.coalesce(func.sum(VendorSettlement.total_revenue), 0))
            .where(VendorSettlement.vendor_id.in_(vendor_ids))
            .group_by(VendorSettlement.vendor_id)
        ).all()
    )
    monthly = dict(
        db.execute(
            select(VendorSettlement.vendor_id, func.coalesce(func.sum(VendorSettlement.vendor_commission), 0))
            .where(
                VendorSettlement.vendor_id.in_(vendor_ids),
                VendorSettlement.sale_date >= month_start,
                VendorSettlement.sale_date <= today,
            )
            .group_by(VendorSettlement.vendor_id)
        ).all()
    )
    return {
        vendor_id: (Decimal(totals.get(vendor_id) or 0), Decimal(monthly.get(vendor_id) or 0))
        for vendor_id in vendor_ids
    }


def vendors_out(db: Session, vendors: list[Vendor], today: date | None = None) -> list[VendorOut]:
    vendor_ids = [vendor.id for vendor in vendors]
    item_ids = _item_ids_by_vendor(db, vendor_ids)
    sales = _sales_by_vendor(db, vendor_ids, today or date.today())
    result = []
    for vendor in vendors:
        total_sales, monthly_commission = sales.get(vendor.id, (Decimal("0"), Decimal("0")))
        out = VendorOut.model_validate(vendor)
        out.item_ids = item_ids.get(vendor.id, [])
        out.total_sales = total_sales
        out.monthly_commission = monthly_commission
        result.append(out)
    return result


def vendor_out(db: Session, vendor: Vendor) -> VendorOut:
    return vendors_out(db, [vendor])[0]
