"""
Item and stock mutations.

Every mutation runs the same sequence: persist (errors propagate), append an
activity entry (best effort), run the low-stock check (create/update/stock
only, failures become warnings), then broadcast `inventory-updated` to
connected clients (best effort). Writes are last-write-wins; there is no
version check.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import AuthUser
from core.error_reporting import report_error
from core.realtime import RealtimeHub
from core.thresholds import DEFAULT_GLOBAL_THRESHOLD, effective_threshold, stock_status
from db.inventory.activity import InventoryActivity
from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem
from db.inventory.location import InventoryStockLocation
from db.user_settings import UserSettings
from schemas.activity import ItemEditChanges, StockMovementChanges, dump_changes
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    StockLocationIn,
    StockSaveResult,
)

logger = logging.getLogger(__name__)

DUPLICATE_SKU_MESSAGE = "An item with this SKU already exists"
UNIQUE_VIOLATION = "23505"

Notifier = Callable[[AsyncSession, InventoryItem, AuthUser], Awaitable[Optional[str]]]


class ItemNotFoundError(LookupError):
    pass


class DuplicateSkuError(Exception):
    def __init__(self, message: str = DUPLICATE_SKU_MESSAGE):
        super().__init__(message)


def is_unique_violation(error: IntegrityError) -> bool:
    orig = getattr(error, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNIQUE_VIOLATION:
        return True
    # SQLite reports "UNIQUE constraint failed: inventory.sku"
    return "unique" in str(orig or error).lower()


# Thresholds

async def load_threshold_context(db: AsyncSession, user_id: Optional[str]) -> Tuple[Dict[str, Optional[int]], int]:
    """Category thresholds by name, plus the user's global fallback."""
    result = await db.execute(select(InventoryCategory.name, InventoryCategory.low_stock_threshold))
    category_thresholds = {name: threshold for name, threshold in result.all()}

    global_threshold = DEFAULT_GLOBAL_THRESHOLD
    if user_id:
        result = await db.execute(
            select(UserSettings.low_stock_threshold).where(UserSettings.user_id == user_id).limit(1)
        )
        value = result.scalar_one_or_none()
        if value is not None:
            global_threshold = value
    return category_thresholds, global_threshold


def item_out(
    item: InventoryItem,
    category_thresholds: Dict[str, Optional[int]],
    global_threshold: int,
) -> InventoryItemOut:
    threshold = effective_threshold(
        item.low_stock_threshold,
        category_thresholds.get(item.category or ""),
        global_threshold,
    )
    return InventoryItemOut(
        **item.to_schema,
        effective_threshold=threshold,
        status=stock_status(item.stock, threshold),
        stock_locations=[StockLocationIn(**sl.to_schema) for sl in item.stock_locations],
    )


# Best-effort side effects

async def log_activity(
    db: AsyncSession,
    *,
    inventory_id: Optional[UUID],
    user_id: Optional[str],
    action: str,
    item_name: str,
    changes: dict,
) -> Optional[InventoryActivity]:
    """Append an activity entry. Failures are reported and swallowed."""
    try:
        entry = InventoryActivity(
            inventory_id=inventory_id,
            user_id=user_id,
            action=action,
            item_name=item_name,
            changes=changes,
        )
        db.add(entry)
        await db.commit()
        return entry
    except Exception as e:
        await db.rollback()
        report_error(e, {"inventory_id": str(inventory_id), "action": action, "step": "activity log"})
        return None


def broadcast_change(hub: Optional[RealtimeHub], item_id: Optional[UUID], action: str, user: AuthUser) -> None:
    if hub is None:
        return
    try:
        hub.broadcast_inventory_updated(item_id, action=action, sender=user.id)
    except Exception as e:
        report_error(e, {"item_id": str(item_id), "step": "realtime broadcast"})


async def _notify(notifier: Optional[Notifier], db: AsyncSession, item: InventoryItem, user: AuthUser) -> List[str]:
    if notifier is None:
        return []
    warning = await notifier(db, item, user)
    return [warning] if warning else []


# Persistence helpers

async def get_item(db: AsyncSession, item_id: UUID) -> InventoryItem:
    result = await db.execute(
        select(InventoryItem)
        .options(selectinload(InventoryItem.stock_locations))
        .where(InventoryItem.id == item_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise ItemNotFoundError(f"Inventory item {item_id} not found")
    return item


async def ensure_category(db: AsyncSession, name: Optional[str]) -> None:
    """Create an unknown category with a NULL threshold. Call before dirtying the session; caller commits."""
    if not name:
        return
    if await db.get(InventoryCategory, name) is None:
        db.add(InventoryCategory(name=name, low_stock_threshold=None))
        logger.info("Auto-creating category %r", name)


def _stock_locations(rows: Optional[List[StockLocationIn]]) -> List[InventoryStockLocation]:
    return [
        InventoryStockLocation(
            location=row.location.strip(),
            parent_location=row.parent_location,
            quantity=row.quantity or 0,
        )
        for row in rows or []
        if row.location and row.location.strip()
    ]


async def _commit_item(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise DuplicateSkuError() from e
        raise


async def _after_save(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    item_id: UUID,
    item_name: str,
    action: str,
    changes: dict,
    notifier: Optional[Notifier],
) -> StockSaveResult:
    await log_activity(
        db,
        inventory_id=item_id,
        user_id=user.id,
        action=action,
        item_name=item_name,
        changes=changes,
    )
    # a failed side effect rolls back, which expires loaded instances; reload before use
    item = await get_item(db, item_id)
    warnings = await _notify(notifier, db, item, user)
    broadcast_change(hub, item_id, action, user)

    item = await get_item(db, item_id)
    category_thresholds, global_threshold = await load_threshold_context(db, user.id)
    return StockSaveResult(item=item_out(item, category_thresholds, global_threshold), warnings=warnings)


# Mutations

async def create_item(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    data: InventoryItemCreate,
    *,
    notifier: Optional[Notifier] = None,
) -> StockSaveResult:
    fields = data.model_dump(exclude={"stock_locations"})
    await ensure_category(db, fields.get("category"))
    item = InventoryItem(**fields)
    item.stock_locations = _stock_locations(data.stock_locations)
    db.add(item)
    await _commit_item(db)

    changes = data.model_dump(mode="json", exclude_unset=True)
    changes["stock"] = item.stock
    changes = dump_changes(ItemEditChanges(**changes))
    return await _after_save(db, hub, user, item.id, item.name, "created", changes, notifier)


async def update_item(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    item_id: UUID,
    data: InventoryItemUpdate,
    *,
    notifier: Optional[Notifier] = None,
) -> StockSaveResult:
    item = await get_item(db, item_id)
    old_stock = item.stock

    updates = data.model_dump(exclude_unset=True, exclude={"stock_locations"})
    await ensure_category(db, updates.get("category", item.category))
    for key, value in updates.items():
        if key == "category":
            value = value or ""
        setattr(item, key, value)
    if "stock_locations" in data.model_fields_set:
        # replaced wholesale; delete-orphan drops the old rows
        item.stock_locations = _stock_locations(data.stock_locations)
    await _commit_item(db)

    changes = data.model_dump(mode="json", exclude_unset=True)
    changes["stock"] = item.stock
    changes["old_stock"] = old_stock
    return await _after_save(
        db, hub, user, item_id, item.name, "updated", dump_changes(ItemEditChanges(**changes)), notifier
    )


async def delete_item(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    item_id: UUID,
) -> None:
    item = await get_item(db, item_id)
    item_name = item.name or "Unknown"
    await db.delete(item)
    await db.commit()

    await log_activity(
        db,
        inventory_id=item_id,
        user_id=user.id,
        action="deleted",
        item_name=item_name,
        changes=dump_changes(ItemEditChanges(id=str(item_id))),
    )
    broadcast_change(hub, item_id, "deleted", user)


async def handle_stock_save(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    item_id: UUID,
    new_stock: int,
    location: Optional[str] = None,
    action_type: Optional[str] = None,
    parent_location: Optional[str] = None,
    recipient: Optional[str] = None,
    destination_location: Optional[str] = None,
    *,
    notifier: Optional[Notifier] = None,
) -> StockSaveResult:
    """
    Set an item's stock to `new_stock` and run the post-save steps.

    Raises ItemNotFoundError for an unknown id; any persistence error
    propagates and nothing else runs.
    """
    item = await get_item(db, item_id)
    old_stock = item.stock
    item.stock = new_stock
    await db.commit()

    changes: Dict[str, object] = {"stock": new_stock, "old_stock": old_stock}
    optional = {
        "action_type": action_type,
        "location": location,
        "parent_location": parent_location,
        "recipient": recipient,
        "destination_location": destination_location,
    }
    changes.update({key: value for key, value in optional.items() if value})
    if action_type:
        validated = StockMovementChanges(**changes)
    else:
        validated = ItemEditChanges(**changes)

    return await _after_save(
        db, hub, user, item_id, item.name or "Unknown Item", "updated", dump_changes(validated), notifier
    )
