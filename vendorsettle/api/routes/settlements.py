from dataclasses import replace
from decimal import Decimal

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from vendorsettle.api.deps import enforce_business_scope, get_active_business, require_permission
from vendorsettle.db.database import get_db
from vendorsettle.models.catalog import Item
from vendorsettle.models.settlement import DailySalesRecord
from vendorsettle.models.user import User
from vendorsettle.models.vendor import Vendor, VendorStatus
from vendorsettle.schemas.auth import GenericMessageResponse
from vendorsettle.schemas.settlement import (
    LineItemOut,
    QuantityRequest,
    SessionCreateRequest,
    SessionOut,
    SessionTotalsOut,
    SessionVendorOut,
    SubmitOut,
    VendorSelectRequest,
    VendorTotalsOut,
)
from vendorsettle.schemas.vendor import AdHocVendorCreate
from vendorsettle.services.audit import log_audit
from vendorsettle.services.recording import find_recorded, record_out, store_settlement_record
from vendorsettle.services.session_registry import RegisteredSession, settlement_sessions
from vendorsettle.services.settlement import (
    CatalogItem,
    SettlementRecord,
    SettlementSession,
    SettlementValidationError,
    UnknownEntityError,
)
from vendorsettle.services.vendors import create_vendor, vendor_profile

router = APIRouter(prefix="/settlements", tags=["Settlements"])


def _session_out(entry: RegisteredSession) -> SessionOut:
    session = entry.session
    vendors = [
        SessionVendorOut(
            vendor_id=state.vendor.id,
            vendor_name=state.vendor.name,
            commission_rate=state.vendor.commission_rate,
            items=[LineItemOut.model_validate(line) for line in state.lines.values()],
            totals=VendorTotalsOut.model_validate(session.compute_vendor_totals(vendor_id)),
        )
        for vendor_id, state in session.settlements.items()
    ]
    return SessionOut(
        session_id=entry.session_id,
        session_key=session.session_key,
        date=session.date,
        phase=session.phase.name,
        morning_locked=session.morning_locked,
        created_at=entry.created_at,
        vendors=vendors,
        totals=SessionTotalsOut.model_validate(session.compute_session_totals()),
    )


def _get_owned_session(session_id: str, current_user: User) -> RegisteredSession:
    entry = settlement_sessions.get(session_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settlement session not found")
    enforce_business_scope(entry.business_id, current_user)
    if entry.owner_user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Settlement session belongs to another user",
        )
    return entry


def _get_selectable_vendor(db: Session, vendor_id: int, current_user: User) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    enforce_business_scope(vendor.business_id, current_user)
    if vendor.status != VendorStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Vendor is inactive")
    return vendor


def _vendor_selection_frozen() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Morning stock is locked; vendor selection is frozen",
    )


@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def start_session(
    payload: SessionCreateRequest,
    current_user: User = Depends(require_permission("sales:record")),
    db: Session = Depends(get_db),
):
    business = get_active_business(db, current_user)
    items = db.scalars(
        select(Item)
        .where(Item.business_id == business.id, Item.is_active.is_(True))
        .order_by(Item.name.asc())
    ).all()
    catalog = [
        CatalogItem(
            id=item.id,
            name=item.name,
            category=item.category,
            unit_price=Decimal(item.unit_price),
            unit_cost=Decimal(item.unit_cost),
        )
        for item in items
    ]
    session = SettlementSession(catalog, session_date=payload.session_date)
    entry = settlement_sessions.open(business.id, current_user.id, session)
    return _session_out(entry)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(
    session_id: str,
    current_user: User = Depends(require_permission("sales:record")),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        return _session_out(entry)


@router.delete("/sessions/{session_id}", response_model=GenericMessageResponse)
def abandon_session(
    session_id: str,
    current_user: User = Depends(require_permission("sales:record")),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        settlement_sessions.discard(entry.session_id)
    return GenericMessageResponse(message="Settlement session abandoned")


@router.post("/sessions/{session_id}/vendors", response_model=SessionOut)
def select_vendor(
    session_id: str,
    payload: VendorSelectRequest,
    current_user: User = Depends(require_permission("sales:record")),
    db: Session = Depends(get_db),
):
    entry = _get_owned_session(session_id, current_user)
    vendor = _get_selectable_vendor(db, payload.vendor_id, current_user)
    with entry.lock:
        if not entry.session.select_vendor(vendor_profile(vendor)):
            raise _vendor_selection_frozen()
        return _session_out(entry)


@router.post("/sessions/{session_id}/vendors/ad-hoc", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_ad_hoc_vendor(
    session_id: str,
    payload: AdHocVendorCreate,
    request: Request,
    current_user: User = Depends(require_permission("sales:record")),
    db: Session = Depends(get_db),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        if entry.session.morning_locked:
            raise _vendor_selection_frozen()
        try:
            vendor = create_vendor(
                db,
                business_id=entry.business_id,
                name=payload.name,
                commission_rate=payload.commission_rate,
            )
            log_audit(
                db=db,
                event_type="vendors.created.ad_hoc",
                actor_user_id=current_user.id,
                business_id=entry.business_id,
                request=request,
                details={"vendor_id": vendor.id, "commission_rate": str(vendor.commission_rate)},
            )
            db.commit()
        except SettlementValidationError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except IntegrityError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor name already exists") from exc
        db.refresh(vendor)
        entry.session.select_vendor(vendor_profile(vendor))
        return _session_out(entry)


@router.delete("/sessions/{session_id}/vendors/{vendor_id}", response_model=SessionOut)
def deselect_vendor(
    session_id: str,
    vendor_id: int,
    current_user: User = Depends(require_permission("sales:record")),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        try:
            changed = entry.session.deselect_vendor(vendor_id)
        except UnknownEntityError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        if not changed:
            raise _vendor_selection_frozen()
        return _session_out(entry)


@router.put("/sessions/{session_id}/vendors/{vendor_id}/items/{item_id}/taken", response_model=SessionOut)
def set_quantity_taken(
    session_id: str,
    vendor_id: int,
    item_id: int,
    payload: QuantityRequest,
    current_user: User = Depends(require_permission("sales:record")),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        try:
            changed = entry.session.set_quantity_taken(vendor_id, item_id, payload.quantity)
        except SettlementValidationError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except UnknownEntityError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        if not changed:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Morning stock is locked; taken quantities can no longer change",
            )
        return _session_out(entry)


@router.put("/sessions/{session_id}/vendors/{vendor_id}/items/{item_id}/returned", response_model=SessionOut)
def set_quantity_returned(
    session_id: str,
    vendor_id: int,
    item_id: int,
    payload: QuantityRequest,
    current_user: User = Depends(require_permission("sales:record")),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        try:
            changed = entry.session.set_quantity_returned(vendor_id, item_id, payload.quantity)
        except SettlementValidationError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except UnknownEntityError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        if not changed:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Returned quantities can only be entered after the morning lock",
            )
        return _session_out(entry)


@router.post("/sessions/{session_id}/lock", response_model=SessionOut)
def lock_morning_stock(
    session_id: str,
    request: Request,
    current_user: User = Depends(require_permission("sales:record")),
    db: Session = Depends(get_db),
):
    entry = _get_owned_session(session_id, current_user)
    with entry.lock:
        try:
            changed = entry.session.lock_morning_stock()
        except SettlementValidationError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if not changed:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Morning stock is already locked")
        log_audit(
            db=db,
            event_type="settlements.locked",
            actor_user_id=current_user.id,
            business_id=entry.business_id,
            request=request,
            details={"session_key": entry.session.session_key, "vendor_ids": sorted(entry.session.selected_vendor_ids)},
        )
        db.commit()
        return _session_out(entry)


@router.post("/sessions/{session_id}/submit", response_model=SubmitOut)
def submit_session(
    session_id: str,
    request: Request,
    idempotency_key: str | None = Header(default=None, max_length=64),
    current_user: User = Depends(require_permission("sales:record")),
    db: Session = Depends(get_db),
):
    entry = _get_owned_session(session_id, current_user)
    client_key = idempotency_key.strip() if idempotency_key else None

    def persist(record: SettlementRecord) -> tuple[DailySalesRecord, bool]:
        if client_key:
            record = replace(record, session_key=client_key)
        existing = find_recorded(db, entry.business_id, record.session_key)
        if existing:
            return existing, True
        try:
            stored = store_settlement_record(db, entry.business_id, current_user.id, record)
            log_audit(
                db=db,
                event_type="settlements.submitted",
                actor_user_id=current_user.id,
                business_id=entry.business_id,
                request=request,
                details={
                    "record_id": stored.id,
                    "session_key": record.session_key,
                    "sale_date": record.date.isoformat(),
                    "total_revenue": str(record.total_revenue),
                },
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = find_recorded(db, entry.business_id, record.session_key)
            if existing is None:
                raise
            return existing, True
        except DataError as exc:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Settlement amounts exceed the storable range",
            ) from exc
        db.refresh(stored)
        return stored, False

    with entry.lock:
        if client_key:
            existing = find_recorded(db, entry.business_id, client_key)
            if existing:
                return SubmitOut(record=record_out(db, existing), already_recorded=True, session=_session_out(entry))
        try:
            stored, already_recorded = entry.session.submit(persist)
        except SettlementValidationError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return SubmitOut(record=record_out(db, stored), already_recorded=already_recorded, session=_session_out(entry))
