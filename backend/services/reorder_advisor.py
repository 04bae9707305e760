"""
Scheduled reorder advisor.

Loads every item with its category threshold and six months of restock
history, keeps the items at or below their effective threshold, groups both
sets by supplier, and decides per supplier whether to push a "reorder"
notification to every registered device:

* Amazon can always be ordered from: one count-based notification.
* Restricted suppliers (BOD, Staples, CIUSS) have minimum-order habits: the
  LLM compares the pending set with past restocks and answers
  {"should_order": bool, "reason": str}. Its output is untrusted; anything
  that does not parse means "do not order".

Suppliers are processed one after another. Re-running with the same stock
state gives the same decisions, modulo LLM non-determinism.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.error_reporting import log_info, report_error
from core.llm_client import LLMClient, extract_json_object
from core.push_client import PushPayload, PushSender
from core.suppliers import AMAZON, SUPPLIERS, classify_supplier
from core.thresholds import effective_threshold, is_low_stock
from db.database import utcnow
from db.inventory.activity import InventoryActivity
from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem

logger = logging.getLogger(__name__)

# The job has no acting user, so the per-user global threshold is replaced by a constant.
REORDER_GLOBAL_THRESHOLD = 5
HISTORY_MONTHS = 6
HISTORY_PROMPT_LIMIT = 20


@dataclass
class StockRow:
    id: Any
    name: str
    category: str
    stock: int
    low_stock_threshold: Optional[int] = None
    category_threshold: Optional[int] = None


@dataclass
class RestockEvent:
    date: str
    name: str
    stock_left_before: int
    qty_ordered: int


@dataclass
class SupplierBucket:
    current: List[StockRow] = field(default_factory=list)
    history: List[RestockEvent] = field(default_factory=list)


@dataclass
class ReorderDecision:
    should_order: bool = False
    reason: str = ""


@dataclass
class SupplierOutcome:
    supplier: str
    low_stock_count: int = 0
    notified: bool = False
    message: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ReorderRunSummary:
    low_stock_count: int = 0
    outcomes: Dict[str, SupplierOutcome] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def notified_suppliers(self) -> List[str]:
        return [name for name, outcome in self.outcomes.items() if outcome.notified]


# Loading

def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return None
    return None


async def load_stock_rows(db: AsyncSession) -> List[StockRow]:
    result = await db.execute(
        select(
            InventoryItem.id,
            InventoryItem.name,
            func.coalesce(InventoryItem.category, "").label("category"),
            InventoryItem.stock,
            InventoryItem.low_stock_threshold,
            InventoryCategory.low_stock_threshold.label("category_threshold"),
        ).outerjoin(InventoryCategory, InventoryItem.category == InventoryCategory.name)
    )
    return [
        StockRow(
            id=row.id,
            name=row.name or "",
            category=row.category or "",
            stock=row.stock or 0,
            low_stock_threshold=row.low_stock_threshold,
            category_threshold=row.category_threshold,
        )
        for row in result.all()
    ]


async def load_restock_history(db: AsyncSession, now: datetime) -> List[Dict[str, Any]]:
    """
    `updated` entries from the last six months whose new stock is above the
    old stock, oldest first. The category comes from the item when it still exists.
    """
    since = now - relativedelta(months=HISTORY_MONTHS)
    result = await db.execute(
        select(
            InventoryActivity.item_name,
            func.coalesce(InventoryItem.category, "").label("category"),
            InventoryActivity.created_at,
            InventoryActivity.changes,
        )
        .outerjoin(InventoryItem, InventoryActivity.inventory_id == InventoryItem.id)
        .where(InventoryActivity.action == "updated")
        .where(InventoryActivity.created_at > since)
        .order_by(InventoryActivity.created_at.asc())
    )

    history = []
    for row in result.all():
        changes = row.changes or {}
        if isinstance(changes, str):
            try:
                changes = json.loads(changes)
            except ValueError:
                continue
        stock = _as_int(changes.get("stock"))
        old_stock = _as_int(changes.get("old_stock"))
        if stock is None or old_stock is None or stock <= old_stock:
            continue
        history.append({
            "item_name": row.item_name or "",
            "category": row.category or "",
            "created_at": row.created_at,
            "stock": stock,
            "old_stock": old_stock,
        })
    return history


# Pure steps

def filter_low_stock(rows: Sequence[StockRow], global_threshold: int = REORDER_GLOBAL_THRESHOLD) -> List[StockRow]:
    return [
        row for row in rows
        if is_low_stock(row.stock, effective_threshold(row.low_stock_threshold, row.category_threshold, global_threshold))
    ]


def group_by_supplier(current: Sequence[StockRow], history: Sequence[Dict[str, Any]]) -> Dict[str, SupplierBucket]:
    buckets = {supplier: SupplierBucket() for supplier in SUPPLIERS}
    for row in current:
        buckets[classify_supplier(row.name, row.category)].current.append(row)
    for event in history:
        name = event.get("item_name") or ""
        created_at = event.get("created_at")
        old_stock = event.get("old_stock") or 0
        buckets[classify_supplier(name, event.get("category") or "")].history.append(RestockEvent(
            date=created_at.isoformat() if isinstance(created_at, datetime) else str(created_at or ""),
            name=name,
            stock_left_before=old_stock,
            qty_ordered=(event.get("stock") or 0) - old_stock,
        ))
    return buckets


def build_reorder_prompt(supplier: str, bucket: SupplierBucket) -> str:
    history = [event.__dict__ for event in bucket.history[-HISTORY_PROMPT_LIMIT:]]
    proposed = [{"name": row.name, "stock": row.stock} for row in bucket.current]
    return f"""
Supplier: {supplier}
Goal: Determine if we should place a bulk order now based on historical rules.

History of RESTOCKS (When we actually received orders):
{json.dumps(history, ensure_ascii=False)}

Current Low Stock Items (Proposed Order):
{json.dumps(proposed, ensure_ascii=False)}

Task:
1. Analyze the history. How many items do we usually order at once from {supplier}? What is the total volume?
2. Look at the Proposed Order. Does it meet that "minimum viable order" threshold implied by history?
3. IMPORTANT: Look at "stock_left_before" in history. Do we usually wait until we are this low?

Return JSON: {{ "should_order": boolean, "reason": "string (short explanation for user)" }}
"""


def parse_reorder_decision(text: Optional[str]) -> ReorderDecision:
    data = extract_json_object(text)
    if data is None:
        report_error(ValueError("AI Parse Fail"), {"response": text})
        return ReorderDecision()
    reason = data.get("reason")
    return ReorderDecision(
        should_order=data.get("should_order") is True,
        reason=reason if isinstance(reason, str) else "",
    )


# Effects

async def send_reorder_notification(
    db: AsyncSession,
    push_sender: PushSender,
    supplier: str,
    reason: Optional[str] = None,
) -> None:
    payload = PushPayload(
        title=f"Reorder Needed: {supplier}",
        body=reason or f"Items from {supplier} are low and ready to order.",
        url="/inventory",
        tag=f"reorder-{supplier}-{int(time.time() * 1000)}",
        require_interaction=False,
    )
    result = await push_sender.broadcast_all(db, payload)
    logger.info("Reorder notification for %s: sent=%d removed=%d failed=%d",
                supplier, result.sent, len(result.removed), result.failed)


async def analyze_supplier(
    db: AsyncSession,
    supplier: str,
    bucket: SupplierBucket,
    llm: LLMClient,
    push_sender: PushSender,
) -> SupplierOutcome:
    outcome = SupplierOutcome(supplier=supplier, low_stock_count=len(bucket.current))
    if not bucket.current:
        return outcome

    if supplier == AMAZON:
        outcome.message = f"Amazon items ({len(bucket.current)}) can be ordered anytime."
    else:
        try:
            text = await llm.complete([{"role": "user", "content": build_reorder_prompt(supplier, bucket)}])
        except Exception as e:
            report_error(e, {"context": "AI Analysis", "supplier": supplier})
            outcome.error = str(e)
            return outcome
        decision = parse_reorder_decision(text)
        if not decision.should_order:
            return outcome
        outcome.message = decision.reason

    try:
        await send_reorder_notification(db, push_sender, supplier, outcome.message)
        outcome.notified = True
    except Exception as e:
        report_error(e, {"context": "Notification failed", "supplier": supplier})
        outcome.error = str(e)
    return outcome


async def run_reorder_advisor(
    session_factory: Optional[Callable[[], AsyncSession]],
    llm: LLMClient,
    push_sender: PushSender,
    now: Optional[datetime] = None,
) -> ReorderRunSummary:
    """Run one pass. Never raises; problems are reported and reflected in the summary."""
    summary = ReorderRunSummary()
    if session_factory is None:
        report_error(RuntimeError("Database is not configured"))
        summary.error = "Database is not configured"
        return summary

    now = now or utcnow()
    try:
        async with session_factory() as db:
            rows = await load_stock_rows(db)
            low_stock = filter_low_stock(rows)
            summary.low_stock_count = len(low_stock)
            if not low_stock:
                log_info("Reorder advisor: no low-stock items")
                return summary

            history = await load_restock_history(db, now)
            buckets = group_by_supplier(low_stock, history)
            for supplier in SUPPLIERS:
                summary.outcomes[supplier] = await analyze_supplier(
                    db, supplier, buckets[supplier], llm, push_sender
                )
    except Exception as e:
        report_error(e, {"context": "Reorder advisor"})
        summary.error = str(e)
    return summary
