from datetime import datetime, timedelta, timezone

from db.inventory.activity import InventoryActivity
from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem
from routers.stats import aggregate_dashboard, aggregate_removals


def test_aggregate_dashboard():
    rows = [
        ("created", {"stock": 10}),
        ("updated", {"stock": 4, "old_stock": 10}),
        ("updated", {"stock": 9, "old_stock": 4}),
        ("deleted", {"stock": 3}),
        ("deleted", {"id": "x"}),
        ("updated", None),
    ]
    assert aggregate_dashboard(rows) == {"in": 15, "out": 9}


def test_aggregate_removals_sorted_and_named():
    rows = [
        ("Paper", {"stock": 8, "old_stock": 10}),
        ("Gloves", {"stock": 0, "old_stock": 5}),
        ("Paper", {"stock": 5, "old_stock": 8}),
        (None, {"stock": 1, "old_stock": 2}),
    ]
    assert aggregate_removals(rows) == [
        {"itemName": "Paper", "total": 5},
        {"itemName": "Gloves", "total": 5},
        {"itemName": "Unknown Item", "total": 1},
    ]


async def test_dashboard_counts_today_only(client, db):
    now = datetime.now(timezone.utc)
    db.add_all([
        InventoryActivity(action="created", item_name="A", changes={"stock": 6}, created_at=now),
        InventoryActivity(action="updated", item_name="A", changes={"stock": 2, "old_stock": 6}, created_at=now),
        InventoryActivity(action="created", item_name="B", changes={"stock": 50}, created_at=now - timedelta(days=2)),
    ])
    await db.commit()

    for path in ("/api/stats/dashboard", "/api/activity/dashboard-stats"):
        resp = await client.get(path)
        assert resp.status_code == 200
        assert resp.json() == {"in": 6, "out": 4}


async def test_report_stats(client, db):
    now = datetime.now(timezone.utc)
    db.add_all([
        InventoryActivity(
            action="updated", item_name="Paper", created_at=now - timedelta(hours=1),
            changes={"action_type": "remove", "stock": 7, "old_stock": 10, "destination_location": "Lab"},
        ),
        InventoryActivity(
            action="updated", item_name="Gloves", created_at=now - timedelta(hours=1),
            changes={"action_type": "remove", "stock": 0, "old_stock": 1, "destination_location": "Office"},
        ),
        InventoryActivity(
            action="updated", item_name="Paper", created_at=now - timedelta(hours=1),
            changes={"action_type": "add", "stock": 20, "old_stock": 7},
        ),
    ])
    await db.commit()
    params = {
        "startDate": (now - timedelta(days=1)).isoformat(),
        "endDate": (now + timedelta(days=1)).isoformat(),
    }

    resp = await client.get("/api/activity/report-stats", params=params)
    assert resp.json() == [{"itemName": "Paper", "total": 3}, {"itemName": "Gloves", "total": 1}]

    resp = await client.get("/api/activity/report-stats", params={**params, "location": "Office"})
    assert resp.json() == [{"itemName": "Gloves", "total": 1}]


async def test_report_stats_requires_range(client):
    resp = await client.get("/api/activity/report-stats", params={"startDate": "2026-01-01"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing startDate or endDate"}


async def test_inventory_stats_never_double_counts_zero(client, db):
    db.add(InventoryCategory(name="Spare", low_stock_threshold=1))
    db.add_all([
        InventoryItem(name="A", category="", stock=0),
        InventoryItem(name="B", category="", stock=5),
        InventoryItem(name="C", category="", stock=6),
        InventoryItem(name="D", category="Spare", stock=2),
        InventoryItem(name="E", category="Spare", stock=1),
    ])
    await db.commit()

    resp = await client.get("/api/stats/inventory")
    assert resp.json() == {"total": 5, "low_stock": 2, "out_of_stock": 1}
