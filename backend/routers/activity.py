from datetime import datetime, timezone
from typing import List, Optional

from dateutil import parser as date_parser
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser, current_active_user
from db.database import get_async_session
from db.inventory.activity import InventoryActivity
from schemas.activity import ActivityCreate, ActivityCreated, ActivityOut, dump_changes

router = APIRouter()


def parse_date_param(value: Optional[str], name: str) -> Optional[datetime]:
    """ISO date/datetime query value -> aware UTC datetime. Naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, OverflowError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {name}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def action_type_of():
    return InventoryActivity.changes["action_type"].as_string()


def destination_of():
    return InventoryActivity.changes["destination_location"].as_string()


@router.post("", response_model=ActivityCreated, status_code=status.HTTP_201_CREATED)
async def create_activity(
    data: ActivityCreate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    entry = InventoryActivity(
        inventory_id=data.inventory_id,
        user_id=data.user_id or user.id,
        action=data.action,
        item_name=data.item_name,
        changes=dump_changes(data.changes),
    )
    db.add(entry)
    await db.commit()
    return ActivityCreated(id=entry.id)


@router.get("", response_model=List[ActivityOut])
async def list_activity(
    page: int = Query(0, ge=0),
    page_size: int = Query(10, ge=1, le=500, alias="pageSize"),
    action_filter: str = Query("all", alias="actionFilter"),
    search_term: str = Query("", alias="searchTerm"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    location: Optional[str] = None,
    action_type: Optional[str] = Query(None, alias="actionType"),
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Paginated activity log, newest first.

    - actionFilter: "all", "stock" (entries that carry an action_type), or an action name.
    - searchTerm matches item name or user id.
    - startDate is inclusive, endDate exclusive.
    - location matches the destination_location of stock movements ("all" disables it).
    """
    stmt = select(InventoryActivity)

    if action_filter == "stock":
        stmt = stmt.where(action_type_of().isnot(None))
    elif action_filter and action_filter != "all":
        stmt = stmt.where(InventoryActivity.action == action_filter)

    if search_term:
        pattern = f"%{search_term}%"
        stmt = stmt.where(or_(InventoryActivity.item_name.like(pattern), InventoryActivity.user_id.like(pattern)))

    start = parse_date_param(start_date, "startDate")
    end = parse_date_param(end_date, "endDate")
    if start:
        stmt = stmt.where(InventoryActivity.created_at >= start)
    if end:
        stmt = stmt.where(InventoryActivity.created_at < end)

    if location and location != "all":
        stmt = stmt.where(destination_of() == location)
    if action_type:
        stmt = stmt.where(action_type_of() == action_type)

    stmt = stmt.order_by(InventoryActivity.created_at.desc()).limit(page_size).offset(page * page_size)
    res = await db.execute(stmt)
    return [row.to_schema for row in res.scalars().all()]
