from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendorsettle.api.deps import enforce_business_scope, get_active_business, require_permission
from vendorsettle.db.database import get_db
from vendorsettle.models.settlement import VendorSettlement
from vendorsettle.models.user import User
from vendorsettle.models.vendor import Vendor, VendorStatus
from vendorsettle.schemas.settlement import VendorSettlementOut
from vendorsettle.schemas.vendor import VendorCreate, VendorOut, VendorUpdate
from vendorsettle.services.audit import log_audit
from vendorsettle.services.recording import settlements_out
from vendorsettle.services.settlement import SettlementValidationError, UnknownEntityError
from vendorsettle.services.vendors import create_vendor, set_vendor_items, vendor_out, vendors_out

router = APIRouter(prefix="/vendors", tags=["Vendors"])


def _get_scoped_vendor(db: Session, vendor_id: int, current_user: User) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    enforce_business_scope(vendor.business_id, current_user)
    return vendor


@router.post("", response_model=VendorOut, status_code=status.HTTP_201_CREATED)
def register_vendor(
    payload: VendorCreate,
    request: Request,
    current_user: User = Depends(require_permission("vendors:manage")),
    db: Session = Depends(get_db),
):
    business = get_active_business(db, current_user)
    try:
        vendor = create_vendor(
            db,
            business_id=business.id,
            name=payload.name,
            commission_rate=payload.commission_rate,
            email=payload.email,
            phone=payload.phone,
            item_ids=payload.item_ids,
        )
        log_audit(
            db=db,
            event_type="vendors.created",
            actor_user_id=current_user.id,
            business_id=business.id,
            request=request,
            details={"vendor_id": vendor.id, "commission_rate": str(vendor.commission_rate)},
        )
        db.commit()
    except SettlementValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UnknownEntityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor name already exists") from exc
    db.refresh(vendor)
    return vendor_out(db, vendor)


@router.patch("/{vendor_id}", response_model=VendorOut)
def update_vendor(
    vendor_id: int,
    payload: VendorUpdate,
    request: Request,
    current_user: User = Depends(require_permission("vendors:manage")),
    db: Session = Depends(get_db),
):
    vendor = _get_scoped_vendor(db, vendor_id, current_user)

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="vendor name is required")
        vendor.name = name
    if payload.email is not None:
        vendor.email = payload.email.strip().lower() or None
    if payload.phone is not None:
        vendor.phone = payload.phone.strip() or None
    if payload.commission_rate is not None:
        vendor.commission_rate = payload.commission_rate
    if payload.status is not None:
        vendor.status = payload.status
    try:
        if payload.item_ids is not None:
            set_vendor_items(db, vendor, payload.item_ids)
        log_audit(
            db=db,
            event_type="vendors.updated",
            actor_user_id=current_user.id,
            business_id=vendor.business_id,
            request=request,
            details={"vendor_id": vendor.id, "fields": sorted(payload.model_dump(exclude_unset=True))},
        )
        db.commit()
    except UnknownEntityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor name already exists") from exc
    db.refresh(vendor)
    return vendor_out(db, vendor)


@router.delete("/{vendor_id}", response_model=VendorOut)
def deactivate_vendor(
    vendor_id: int,
    request: Request,
    current_user: User = Depends(require_permission("vendors:manage")),
    db: Session = Depends(get_db),
):
    vendor = _get_scoped_vendor(db, vendor_id, current_user)
    vendor.status = VendorStatus.INACTIVE
    log_audit(
        db=db,
        event_type="vendors.deactivated",
        actor_user_id=current_user.id,
        business_id=vendor.business_id,
        request=request,
        details={"vendor_id": vendor.id},
    )
    db.commit()
    db.refresh(vendor)
    return vendor_out(db, vendor)


@router.post("/{vendor_id}/activate", response_model=VendorOut)
def activate_vendor(
    vendor_id: int,
    request: Request,
    current_user: User = Depends(require_permission("vendors:manage")),
    db: Session = Depends(get_db),
):
    vendor = _get_scoped_vendor(db, vendor_id, current_user)
    vendor.status = VendorStatus.ACTIVE
    log_audit(
        db=db,
        event_type="vendors.activated",
        actor_user_id=current_user.id,
        business_id=vendor.business_id,
        request=request,
        details={"vendor_id": vendor.id},
    )
    db.commit()
    db.refresh(vendor)
    return vendor_out(db, vendor)


@router.get("", response_model=list[VendorOut])
def list_vendors(
    vendor_status: VendorStatus | None = Query(default=None, alias="status"),
    current_user: User = Depends(require_permission("vendors:view")),
    db: Session = Depends(get_db),
):
    query = select(Vendor).where(Vendor.business_id == current_user.business_id).order_by(Vendor.name.asc())
    if vendor_status is not None:
        query = query.where(Vendor.status == vendor_status)
    return vendors_out(db, list(db.scalars(query).all()))


@router.get("/{vendor_id}", response_model=VendorOut)
def get_vendor(
    vendor_id: int,
    current_user: User = Depends(require_permission("vendors:view")),
    db: Session = Depends(get_db),
):
    return vendor_out(db, _get_scoped_vendor(db, vendor_id, current_user))


@router.get("/{vendor_id}/sales", response_model=list[VendorSettlementOut])
def list_vendor_sales(
    vendor_id: int,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    current_user: User = Depends(require_permission("sales:view")),
    db: Session = Depends(get_db),
):
    vendor = _get_scoped_vendor(db, vendor_id, current_user)
    query = (
        select(VendorSettlement)
        .where(VendorSettlement.vendor_id == vendor.id)
        .order_by(VendorSettlement.sale_date.desc(), VendorSettlement.id.desc())
    )
    if date_from is not None:
        query = query.where(VendorSettlement.sale_date >= date_from)
    if date_to is not None:
        query = query.where(VendorSettlement.sale_date <= date_to)
    return settlements_out(db, list(db.scalars(query).all()))
