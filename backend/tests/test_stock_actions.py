import uuid

import pytest
from sqlalchemy import select

from core.realtime import INVENTORY_UPDATED
from db.inventory.activity import InventoryActivity
from db.inventory.item import InventoryItem
from fakes import TEST_USER
from schemas.inventory import InventoryItemCreate
from services.stock_actions import (
    DuplicateSkuError,
    ItemNotFoundError,
    create_item,
    handle_stock_save,
    log_activity,
)


async def _item(db, **fields) -> InventoryItem:
    values = {"name": "Toner", "category": "Other", "stock": 10}
    values.update(fields)
    item = InventoryItem(**values)
    db.add(item)
    await db.commit()
    return item


async def _activity(db):
    res = await db.execute(select(InventoryActivity).order_by(InventoryActivity.created_at))
    return res.scalars().all()


async def test_stock_movement_is_logged_with_details(db, hub):
    item = await _item(db)
    queue = hub.subscribe()

    result = await handle_stock_save(
        db, hub, TEST_USER, item.id, 7,
        location="Shelf A", action_type="remove", recipient="Reception",
        destination_location="Front desk",
    )

    assert result.item.stock == 7
    assert result.warnings == []
    [entry] = await _activity(db)
    assert entry.action == "updated"
    assert entry.user_id == TEST_USER.id
    assert entry.changes == {
        "action_type": "remove",
        "stock": 7,
        "old_stock": 10,
        "location": "Shelf A",
        "recipient": "Reception",
        "destination_location": "Front desk",
    }
    event = queue.get_nowait()
    assert event.type == INVENTORY_UPDATED
    assert event.payload == {"action": "updated", "item_id": str(item.id)}
    assert event.sender == TEST_USER.id


async def test_plain_stock_edit_has_no_action_type(db, hub):
    item = await _item(db)
    await handle_stock_save(db, hub, TEST_USER, item.id, 12)
    [entry] = await _activity(db)
    assert entry.changes == {"stock": 12, "old_stock": 10}


async def test_unknown_item(db, hub):
    with pytest.raises(ItemNotFoundError):
        await handle_stock_save(db, hub, TEST_USER, uuid.uuid4(), 3)


async def test_notifier_failure_becomes_warning(db, hub):
    item = await _item(db)

    async def notifier(db, item, user):
        return "Low stock alert could not be sent: boom"

    result = await handle_stock_save(db, hub, TEST_USER, item.id, 1, notifier=notifier)

    assert result.item.stock == 1
    assert result.warnings == ["Low stock alert could not be sent: boom"]


async def test_notifier_receives_saved_item(db, hub):
    item = await _item(db)
    seen = []

    async def notifier(db, item, user):
        seen.append((item.stock, user.id))
        return None

    await handle_stock_save(db, hub, TEST_USER, item.id, 2, notifier=notifier)
    assert seen == [(2, TEST_USER.id)]


async def test_activity_log_failure_does_not_fail_the_save(db, hub, monkeypatch):
    item = await _item(db)

    def broken_entry(**kwargs):
        raise RuntimeError("log store down")

    monkeypatch.setattr("services.stock_actions.InventoryActivity", broken_entry)

    result = await handle_stock_save(db, hub, TEST_USER, item.id, 4)

    assert result.item.stock == 4
    assert await _activity(db) == []


async def test_log_activity_swallows_errors(db):
    entry = await log_activity(
        db, inventory_id=None, user_id="u", action="updated", item_name=None, changes={},
    )
    assert entry is None


async def test_duplicate_sku(db, hub):
    await create_item(db, hub, TEST_USER, InventoryItemCreate(name="A", sku="X-1"))
    with pytest.raises(DuplicateSkuError):
        await create_item(db, hub, TEST_USER, InventoryItemCreate(name="B", sku="X-1"))


async def test_broadcast_failure_is_swallowed(db):
    class BrokenHub:
        def broadcast_inventory_updated(self, *args, **kwargs):
            raise RuntimeError("channel closed")

    item = await _item(db)
    result = await handle_stock_save(db, BrokenHub(), TEST_USER, item.id, 9)
    assert result.item.stock == 9
