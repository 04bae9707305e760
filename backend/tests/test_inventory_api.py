from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from db.inventory.activity import InventoryActivity
from db.inventory.category import InventoryCategory
from db.user_settings import UserSettings
from fakes import TEST_USER


async def _create(client, **fields):
    body = {"name": "Printer paper", "category": "Papeterie", "sku": "PAP-001", "stock": 40}
    body.update(fields)
    resp = await client.post("/inventory/items", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["item"]


async def test_create_then_list_round_trip(client):
    created = await _create(client)

    resp = await client.get("/inventory/items")
    assert resp.status_code == 200
    items = resp.json()
    assert len(items) == 1
    assert items[0]["id"] == created["id"]
    assert items[0]["sku"] == "PAP-001"
    assert items[0]["stock"] == 40
    assert items[0]["category"] == "Papeterie"
    assert items[0]["status"] == "in_stock"
    assert items[0]["effective_threshold"] == 5


async def test_duplicate_sku_is_a_conflict(client):
    await _create(client)
    resp = await client.post("/inventory/items", json={"name": "Other paper", "sku": "PAP-001"})
    assert resp.status_code == 409
    assert resp.json() == {"error": "An item with this SKU already exists"}


async def test_unknown_category_is_created(client, db):
    await _create(client, category="Brand new")
    category = await db.get(InventoryCategory, "Brand new")
    assert category is not None
    assert category.low_stock_threshold is None


async def test_create_logs_activity(client, db):
    created = await _create(client)
    res = await db.execute(select(InventoryActivity))
    entries = res.scalars().all()
    assert len(entries) == 1
    assert entries[0].action == "created"
    assert entries[0].user_id == TEST_USER.id
    assert str(entries[0].inventory_id) == created["id"]
    assert entries[0].changes["sku"] == "PAP-001"


async def test_invalid_item_is_rejected(client):
    resp = await client.post("/inventory/items", json={"name": "  ", "stock": 1})
    assert resp.status_code == 400
    assert "name is required" in resp.json()["error"]

    resp = await client.post("/inventory/items", json={"name": "Glue", "stock": -1})
    assert resp.status_code == 400


async def test_update_item_records_old_stock(client, db):
    created = await _create(client)
    resp = await client.put(f"/inventory/items/{created['id']}", json={"stock": 12, "location": "Shelf A"})
    assert resp.status_code == 200
    assert resp.json()["item"]["stock"] == 12
    assert resp.json()["item"]["location"] == "Shelf A"

    res = await db.execute(select(InventoryActivity).where(InventoryActivity.action == "updated"))
    entry = res.scalar_one()
    assert entry.changes["stock"] == 12
    assert entry.changes["old_stock"] == 40


async def test_editing_other_fields_leaves_dashboard_unchanged(client, db):
    created = await _create(client, stock=10)
    before = (await client.get("/api/stats/dashboard")).json()

    resp = await client.put(f"/inventory/items/{created['id']}", json={"notes": "moved shelf"})
    assert resp.status_code == 200

    after = (await client.get("/api/stats/dashboard")).json()
    assert after == before
    res = await db.execute(select(InventoryActivity).where(InventoryActivity.action == "updated"))
    entry = res.scalar_one()
    assert entry.changes["stock"] == 10
    assert entry.changes["old_stock"] == 10


async def test_update_rejects_null_name(client, db):
    created = await _create(client)
    resp = await client.put(f"/inventory/items/{created['id']}", json={"name": None})
    assert resp.status_code == 400
    assert "name cannot be empty" in resp.json()["error"]

    resp = await client.put(f"/inventory/items/{created['id']}", json={"category": None})
    assert resp.status_code == 200
    assert resp.json()["item"]["name"] == "Printer paper"
    assert resp.json()["item"]["category"] == ""


async def test_update_replaces_stock_locations(client):
    created = await _create(client, stock_locations=[{"location": "A", "quantity": 10}])
    assert [sl["location"] for sl in created["stock_locations"]] == ["A"]

    resp = await client.put(
        f"/inventory/items/{created['id']}",
        json={"stock_locations": [{"location": "B", "parent_location": "Main", "quantity": 3}]},
    )
    assert resp.status_code == 200
    assert resp.json()["item"]["stock_locations"] == [{"location": "B", "parent_location": "Main", "quantity": 3}]


async def test_missing_item_is_404(client):
    resp = await client.get("/inventory/items/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    resp = await client.delete("/inventory/items/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


async def test_delete_item(client, db):
    created = await _create(client)
    resp = await client.delete(f"/inventory/items/{created['id']}")
    assert resp.status_code == 204

    resp = await client.get("/inventory/items")
    assert resp.json() == []
    res = await db.execute(select(InventoryActivity).where(InventoryActivity.action == "deleted"))
    assert res.scalar_one().item_name == "Printer paper"


async def test_threshold_precedence_in_listing(client, db):
    db.add(UserSettings(user_id=TEST_USER.id, low_stock_threshold=2))
    await db.commit()
    await client.put("/inventory/categories/Bureau", json={"low_stock_threshold": 10})

    await _create(client, name="Stapler", category="Bureau", sku="S1", stock=8)
    await _create(client, name="Folder", category="Bureau", sku="S2", stock=8, low_stock_threshold=3)
    await _create(client, name="Cable", category="", sku="S3", stock=2)
    await _create(client, name="Toner", category="", sku="S4", stock=0)

    resp = await client.get("/inventory/items")
    by_name = {item["name"]: item for item in resp.json()}
    assert by_name["Stapler"]["effective_threshold"] == 10
    assert by_name["Stapler"]["status"] == "low_stock"
    assert by_name["Folder"]["effective_threshold"] == 3
    assert by_name["Folder"]["status"] == "in_stock"
    assert by_name["Cable"]["effective_threshold"] == 2
    assert by_name["Cable"]["status"] == "low_stock"
    assert by_name["Toner"]["status"] == "out_of_stock"

    resp = await client.get("/inventory/items", params={"status": "low_stock"})
    assert sorted(item["name"] for item in resp.json()) == ["Cable", "Stapler"]

    resp = await client.get("/inventory/items", params={"q": "stap"})
    assert [item["name"] for item in resp.json()] == ["Stapler"]


async def test_category_endpoints(client, hub):
    queue = hub.subscribe()
    resp = await client.put("/inventory/categories/Bureau", json={"low_stock_threshold": 7})
    assert resp.status_code == 200
    assert resp.json() == {"name": "Bureau", "low_stock_threshold": 7}
    assert queue.get_nowait().payload["action"] == "category-updated"

    resp = await client.put("/inventory/categories/Bureau", json={"low_stock_threshold": None})
    assert resp.json()["low_stock_threshold"] is None

    resp = await client.get("/inventory/categories")
    assert resp.json() == [{"name": "Bureau", "low_stock_threshold": None}]

    resp = await client.delete("/inventory/categories/Bureau")
    assert resp.status_code == 204
    resp = await client.delete("/inventory/categories/Bureau")
    assert resp.status_code == 404


async def test_location_endpoints(client):
    resp = await client.post("/inventory/locations", json={"name": "Building A"})
    assert resp.status_code == 201
    parent = resp.json()

    resp = await client.post("/inventory/locations", json={"name": "Room 1", "parent_id": parent["id"]})
    assert resp.status_code == 201
    child = resp.json()
    assert child["parent_id"] == parent["id"]

    resp = await client.put(f"/inventory/locations/{parent['id']}", json={"parent_id": parent["id"]})
    assert resp.status_code == 400

    resp = await client.post(
        "/inventory/locations",
        json={"name": "Orphan", "parent_id": "00000000-0000-0000-0000-000000000000"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Parent location not found"}

    resp = await client.delete(f"/inventory/locations/{parent['id']}")
    assert resp.status_code == 204

    resp = await client.get("/inventory/locations")
    assert resp.json() == [{"id": child["id"], "name": "Room 1", "description": None, "parent_id": None}]


async def test_database_error_hides_driver_message(client, monkeypatch):
    created = await _create(client)

    async def broken_update(*args, **kwargs):
        raise OperationalError("UPDATE inventory SET name=?", {}, Exception("disk I/O error"))

    monkeypatch.setattr("routers.inventory.update_item", broken_update)

    resp = await client.put(f"/inventory/items/{created['id']}", json={"notes": "x"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Internal server error"
    assert "timestamp" in body
    assert "disk I/O error" not in resp.text
    assert "UPDATE inventory" not in resp.text
