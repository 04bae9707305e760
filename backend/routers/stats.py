from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser, current_active_user
from core.thresholds import StockStatus, effective_threshold, stock_status
from db.database import get_async_session
from db.inventory.activity import InventoryActivity
from db.inventory.item import InventoryItem
from routers.activity import action_type_of, destination_of, parse_date_param
from schemas.activity import DashboardStats, ReportStatsRow
from schemas.inventory import InventoryStatsOut
from services.stock_actions import load_threshold_context

router = APIRouter()


def _number(changes: Dict[str, Any], key: str) -> float:
    value = changes.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _coerce(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0


def aggregate_dashboard(rows: Iterable[Tuple[str, Optional[dict]]]) -> Dict[str, int]:
    """
    Stock in/out totals from (action, changes) rows.

    created counts its stock as in, deleted as out, updated by the sign of
    stock - old_stock. Non-numeric values count as 0.
    """
    stock_in = 0
    stock_out = 0
    for action, changes in rows:
        changes = changes or {}
        if action == "created":
            stock_in += _number(changes, "stock")
        elif action == "deleted":
            stock_out += _number(changes, "stock")
        elif action == "updated":
            diff = _number(changes, "stock") - _number(changes, "old_stock")
            if diff > 0:
                stock_in += diff
            elif diff < 0:
                stock_out += abs(diff)
    return {"in": int(stock_in), "out": int(stock_out)}


def aggregate_removals(rows: Iterable[Tuple[Optional[str], Optional[dict]]]) -> List[Dict[str, Any]]:
    totals: Dict[str, float] = defaultdict(float)
    for item_name, changes in rows:
        changes = changes or {}
        count = abs(_coerce(changes.get("stock")) - _coerce(changes.get("old_stock")))
        totals[item_name or "Unknown Item"] += count
    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [{"itemName": name, "total": int(total)} for name, total in ordered]


async def _dashboard_stats(db: AsyncSession) -> DashboardStats:
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    res = await db.execute(
        select(InventoryActivity.action, InventoryActivity.changes)
        .where(InventoryActivity.created_at >= today)
    )
    return DashboardStats(**aggregate_dashboard(res.all()))


@router.get("/stats/dashboard", response_model=DashboardStats, response_model_by_alias=True)
async def dashboard_stats(
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Today's (UTC) stock in/out."""
    return await _dashboard_stats(db)


@router.get("/activity/dashboard-stats", response_model=DashboardStats, response_model_by_alias=True)
async def dashboard_stats_legacy(
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return await _dashboard_stats(db)


@router.get("/activity/report-stats", response_model=List[ReportStatsRow])
async def report_stats(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    location: Optional[str] = None,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Quantity removed per item over [startDate, endDate), largest first."""
    if not start_date or not end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing startDate or endDate")
    start = parse_date_param(start_date, "startDate")
    end = parse_date_param(end_date, "endDate")

    stmt = (
        select(InventoryActivity.item_name, InventoryActivity.changes)
        .where(InventoryActivity.created_at >= start)
        .where(InventoryActivity.created_at < end)
        .where(action_type_of() == "remove")
    )
    if location and location != "all":
        stmt = stmt.where(destination_of() == location)
    res = await db.execute(stmt)
    return aggregate_removals(res.all())


@router.get("/stats/inventory", response_model=InventoryStatsOut)
async def inventory_stats(
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Item counts by status. An item at 0 counts as out of stock only, never as low stock."""
    category_thresholds, global_threshold = await load_threshold_context(db, user.id)
    res = await db.execute(select(InventoryItem.stock, InventoryItem.category, InventoryItem.low_stock_threshold))

    counts = {s: 0 for s in StockStatus}
    total = 0
    for stock, category, item_threshold in res.all():
        threshold = effective_threshold(item_threshold, category_thresholds.get(category or ""), global_threshold)
        counts[stock_status(stock, threshold)] += 1
        total += 1
    return InventoryStatsOut(
        total=total,
        low_stock=counts[StockStatus.LOW_STOCK],
        out_of_stock=counts[StockStatus.OUT_OF_STOCK],
    )
