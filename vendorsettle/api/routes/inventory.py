from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendorsettle.api.deps import enforce_business_scope, get_active_business, require_permission
from vendorsettle.core.config import settings
from vendorsettle.db.database import get_db
from vendorsettle.models.catalog import Item
from vendorsettle.models.user import User
from vendorsettle.schemas.catalog import ItemCreate, ItemOut, ItemUpdate, StockUpdateRequest

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _get_scoped_item(db: Session, item_id: int, current_user: User) -> Item:
    item = db.get(Item, item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    enforce_business_scope(item.business_id, current_user)
    return item


def _commit_item(db: Session, item: Item) -> Item:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Item name already exists for this business",
        ) from exc
    db.refresh(item)
    return item


@router.post("/items", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: ItemCreate,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    business = get_active_business(db, current_user)
    item = Item(
        business_id=business.id,
        name=payload.name.strip(),
        category=payload.category.strip(),
        unit_price=payload.unit_price,
        unit_cost=payload.unit_cost,
        stock=payload.stock,
        low_stock_threshold=(
            payload.low_stock_threshold
            if payload.low_stock_threshold is not None
            else settings.default_low_stock_threshold
        ),
        description=payload.description,
    )
    db.add(item)
    return _commit_item(db, item)


@router.patch("/items/{item_id}", response_model=ItemOut)
def update_item(
    item_id: int,
    payload: ItemUpdate,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    item = _get_scoped_item(db, item_id, current_user)

    if payload.name is not None:
        item.name = payload.name.strip()
    if payload.category is not None:
        item.category = payload.category.strip()
    if payload.unit_price is not None:
        item.unit_price = payload.unit_price
    if payload.unit_cost is not None:
        item.unit_cost = payload.unit_cost
    if payload.low_stock_threshold is not None:
        item.low_stock_threshold = payload.low_stock_threshold
    if payload.description is not None:
        item.description = payload.description.strip() or None
    if payload.is_active is not None:
        item.is_active = payload.is_active
    return _commit_item(db, item)


@router.put("/items/{item_id}/stock", response_model=ItemOut)
def update_item_stock(
    item_id: int,
    payload: StockUpdateRequest,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    item = _get_scoped_item(db, item_id, current_user)
    item.stock = payload.stock
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", response_model=ItemOut)
def archive_item(
    item_id: int,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    item = _get_scoped_item(db, item_id, current_user)
    item.is_active = False
    db.commit()
    db.refresh(item)
    return item


@router.post("/items/{item_id}/activate", response_model=ItemOut)
def activate_item(
    item_id: int,
    current_user: User = Depends(require_permission("catalog:manage")),
    db: Session = Depends(get_db),
):
    item = _get_scoped_item(db, item_id, current_user)
    item.is_active = True
    db.commit()
    db.refresh(item)
    return item


@router.get("/items", response_model=list[ItemOut])
def list_items(
    include_inactive: bool = False,
    category: str | None = None,
    current_user: User = Depends(require_permission("catalog:view")),
    db: Session = Depends(get_db),
):
    query = select(Item).where(Item.business_id == current_user.business_id).order_by(Item.name.asc())
    if not include_inactive:
        query = query.where(Item.is_active.is_(True))
    if category:
        query = query.where(Item.category == category)
    return list(db.scalars(query).all())


@router.get("/items/{item_id}", response_model=ItemOut)
def get_item(
    item_id: int,
    current_user: User = Depends(require_permission("catalog:view")),
    db: Session = Depends(get_db),
):
    return _get_scoped_item(db, item_id, current_user)
