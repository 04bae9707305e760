from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import AuthUser, current_active_user
from core.error_reporting import report_error
from core.errors import internal_error_response
from core.realtime import RealtimeHub, get_realtime_hub
from core.thresholds import StockStatus
from db.database import get_async_session
from db.inventory.category import InventoryCategory as InventoryCategoryModel
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.location import InventoryLocation as InventoryLocationModel
from schemas.inventory import (
    CategoryOut,
    CategoryThresholdUpdate,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    LocationCreate,
    LocationOut,
    LocationUpdate,
    StockSaveRequest,
    StockSaveResult,
)
from services.alerts import LowStockNotifier, get_low_stock_notifier
from services.stock_actions import (
    DuplicateSkuError,
    ItemNotFoundError,
    create_item,
    delete_item,
    handle_stock_save,
    item_out,
    load_threshold_context,
    update_item,
)

router = APIRouter()


def _not_found(item_id: UUID) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Inventory item {item_id} not found")


def _conflict(e: DuplicateSkuError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# Items

@router.get("/items", response_model=List[InventoryItemOut])
async def list_inventory_items(
    q: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    stock_status: Optional[StockStatus] = Query(None, alias="status"),
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List items ordered by name, with their effective threshold and stock status.

    `status` filters on the resolved status (item -> category -> caller's global threshold).
    """
    stmt = select(InventoryItemModel).options(selectinload(InventoryItemModel.stock_locations))
    if q:
        qq = f"%{q.strip().lower()}%"
        stmt = stmt.where(or_(
            func.lower(InventoryItemModel.name).like(qq),
            func.lower(InventoryItemModel.sku).like(qq),
        ))
    if category:
        stmt = stmt.where(InventoryItemModel.category == category)
    if location:
        stmt = stmt.where(InventoryItemModel.location == location)

    res = await db.execute(stmt.order_by(func.lower(InventoryItemModel.name).asc()))
    items = res.scalars().all()

    category_thresholds, global_threshold = await load_threshold_context(db, user.id)
    out = [item_out(item, category_thresholds, global_threshold) for item in items]
    if stock_status is not None:
        out = [item for item in out if item.status == stock_status]
    return out


@router.get("/items/{item_id}", response_model=InventoryItemOut)
async def get_inventory_item(
    item_id: UUID,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(InventoryItemModel)
        .options(selectinload(InventoryItemModel.stock_locations))
        .where(InventoryItemModel.id == item_id)
    )
    item = res.scalar_one_or_none()
    if not item:
        raise _not_found(item_id)
    category_thresholds, global_threshold = await load_threshold_context(db, user.id)
    return item_out(item, category_thresholds, global_threshold)


@router.post("/items", response_model=StockSaveResult, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    data: InventoryItemCreate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: LowStockNotifier = Depends(get_low_stock_notifier),
):
    try:
        return await create_item(db, hub, user, data, notifier=notifier)
    except DuplicateSkuError as e:
        raise _conflict(e)
    except SQLAlchemyError as e:
        await db.rollback()
        report_error(e, {"step": "create item"})
        return internal_error_response()


@router.put("/items/{item_id}", response_model=StockSaveResult)
async def update_inventory_item(
    item_id: UUID,
    data: InventoryItemUpdate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: LowStockNotifier = Depends(get_low_stock_notifier),
):
    try:
        return await update_item(db, hub, user, item_id, data, notifier=notifier)
    except ItemNotFoundError:
        raise _not_found(item_id)
    except DuplicateSkuError as e:
        raise _conflict(e)
    except SQLAlchemyError as e:
        await db.rollback()
        report_error(e, {"step": "update item", "item_id": str(item_id)})
        return internal_error_response()


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(
    item_id: UUID,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    try:
        await delete_item(db, hub, user, item_id)
    except ItemNotFoundError:
        raise _not_found(item_id)
    except SQLAlchemyError as e:
        await db.rollback()
        report_error(e, {"step": "delete item", "item_id": str(item_id)})
        return internal_error_response()
    return None


@router.post("/items/{item_id}/stock", response_model=StockSaveResult)
async def save_item_stock(
    item_id: UUID,
    data: StockSaveRequest,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    notifier: LowStockNotifier = Depends(get_low_stock_notifier),
):
    """Set the stock of one item (add/remove/adjust dialog)."""
    try:
        return await handle_stock_save(
            db,
            hub,
            user,
            item_id,
            data.stock,
            location=data.location,
            action_type=data.action_type,
            parent_location=data.parent_location,
            recipient=data.recipient,
            destination_location=data.destination_location,
            notifier=notifier,
        )
    except ItemNotFoundError:
        raise _not_found(item_id)
    except SQLAlchemyError as e:
        await db.rollback()
        report_error(e, {"step": "stock save", "item_id": str(item_id)})
        return internal_error_response()


# Categories

@router.get("/categories", response_model=List[CategoryOut])
async def list_categories(
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(InventoryCategoryModel).order_by(InventoryCategoryModel.name.asc()))
    return [c.to_schema for c in res.scalars().all()]


@router.put("/categories/{name}", response_model=CategoryOut)
async def upsert_category_threshold(
    name: str,
    data: CategoryThresholdUpdate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    """Create the category if needed and set its threshold (null = inherit the global threshold)."""
    name = name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category name is required")
    category = await db.get(InventoryCategoryModel, name)
    if category is None:
        category = InventoryCategoryModel(name=name)
        db.add(category)
    category.low_stock_threshold = data.low_stock_threshold
    await db.commit()
    hub.broadcast_inventory_updated(action="category-updated", sender=user.id)
    return category.to_schema


@router.delete("/categories/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    name: str,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    """Items keep their category string; they fall back to the global threshold."""
    category = await db.get(InventoryCategoryModel, name)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    await db.delete(category)
    await db.commit()
    hub.broadcast_inventory_updated(action="category-deleted", sender=user.id)
    return None


# Locations

@router.get("/locations", response_model=List[LocationOut])
async def list_locations(
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(InventoryLocationModel).order_by(InventoryLocationModel.name.asc()))
    return [loc.to_schema for loc in res.scalars().all()]


async def _check_parent(db: AsyncSession, parent_id: Optional[UUID], location_id: Optional[UUID] = None):
    if parent_id is None:
        return
    if location_id is not None and parent_id == location_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A location cannot be its own parent")
    if await db.get(InventoryLocationModel, parent_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent location not found")


@router.post("/locations", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
async def create_location(
    data: LocationCreate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _check_parent(db, data.parent_id)
    location = InventoryLocationModel(name=data.name, description=data.description, parent_id=data.parent_id)
    db.add(location)
    await db.commit()
    return location.to_schema


@router.put("/locations/{location_id}", response_model=LocationOut)
async def update_location(
    location_id: UUID,
    data: LocationUpdate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    location = await db.get(InventoryLocationModel, location_id)
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    updates = data.model_dump(exclude_unset=True)
    if "parent_id" in updates:
        await _check_parent(db, updates["parent_id"], location_id)
    if "name" in updates:
        name = (updates["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location name is required")
        updates["name"] = name
    for key, value in updates.items():
        setattr(location, key, value)
    await db.commit()
    return location.to_schema


@router.delete("/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: UUID,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    location = await db.get(InventoryLocationModel, location_id)
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    # children are re-parented to the root
    await db.execute(
        InventoryLocationModel.__table__.update()
        .where(InventoryLocationModel.parent_id == location_id)
        .values(parent_id=None)
    )
    await db.execute(delete(InventoryLocationModel).where(InventoryLocationModel.id == location_id))
    await db.commit()
    return None
