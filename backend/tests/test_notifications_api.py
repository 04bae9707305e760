import pytest
from sqlalchemy import select

from core.push_client import PushSender, get_push_sender
from db.push_subscription import PushSubscription
from db.user_settings import UserSettings
from fakes import TEST_USER, subscription_info
from main import app

ALERT = {
    "itemName": "Paper",
    "currentStock": 2,
    "threshold": 5,
    "userEmail": "owner@example.com",
    "userId": TEST_USER.id,
}


async def _subscribe(db, user_id=TEST_USER.id, endpoint="https://push.example/1"):
    db.add(PushSubscription(user_id=user_id, endpoint=endpoint, subscription=subscription_info(endpoint)))
    await db.commit()


@pytest.mark.parametrize(
    "override, message",
    [
        ({"itemName": ""}, "Invalid item name"),
        ({"currentStock": -1}, "Invalid stock value"),
        ({"currentStock": "2"}, "Invalid stock value"),
        ({"threshold": 10_000}, "Invalid threshold value"),
        ({"userEmail": "nope"}, "Invalid email address"),
        ({"userId": ""}, "Invalid user ID"),
    ],
)
async def test_alert_validation(client, override, message):
    resp = await client.post("/api/send-low-stock-alert", json={**ALERT, **override})
    assert resp.status_code == 400
    assert resp.json() == {"error": message}


async def test_alert_requires_json_object(client):
    resp = await client.post("/api/send-low-stock-alert", content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid or missing JSON body"}

    resp = await client.post("/api/send-low-stock-alert", json=[1, 2])
    assert resp.json() == {"error": "Invalid or missing JSON body"}


async def test_alert_sends_email_and_push(client, db, email_client, push_sender):
    await _subscribe(db)

    resp = await client.post("/api/send-low-stock-alert", json={**ALERT, "itemName": "<Paper>"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "email_sent": True, "push_sent": 1}
    [email] = email_client.sent
    assert email["to"] == "owner@example.com"
    assert email["subject"] == "Low Stock Alert: &lt;Paper&gt;"
    assert "&lt;Paper&gt;" in email["html"]
    assert "<Paper>" not in email["html"]
    [(_, payload)] = push_sender.sent
    assert payload.url == "/inventory?filter=lowStock"
    assert payload.tag == "low-stock-<Paper>"


async def test_alert_uses_user_language(client, db, email_client, push_sender):
    db.add(UserSettings(user_id=TEST_USER.id, language="fr"))
    await db.commit()
    await _subscribe(db)

    await client.post("/api/send-low-stock-alert", json=ALERT)

    assert email_client.sent[0]["subject"] == "Alerte Stock Faible: Paper"
    assert push_sender.sent[0][1].title == "Alerte Stock Faible"


async def test_email_failure_does_not_block_push(client, db, email_client, push_sender):
    email_client.fail = True
    await _subscribe(db)

    resp = await client.post("/api/send-low-stock-alert", json=ALERT)

    assert resp.status_code == 200
    assert resp.json()["email_sent"] is False
    assert len(push_sender.sent) == 1


async def test_alert_without_email_or_devices(client, email_client):
    resp = await client.post("/api/send-low-stock-alert", json={**ALERT, "userEmail": None})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "email_sent": False, "push_sent": 0}
    assert email_client.sent == []


async def test_test_push_without_subscriptions(client):
    resp = await client.post("/api/test-push", json={"userId": TEST_USER.id})
    assert resp.status_code == 400
    assert resp.json()["errorType"] == "NO_SUBSCRIPTION"


async def test_test_push_without_vapid_keys(client):
    app.dependency_overrides[get_push_sender] = lambda: PushSender(public_key="", private_key="")
    resp = await client.post("/api/send-test-push", json={"userId": TEST_USER.id})
    assert resp.status_code == 500
    assert resp.json()["errorType"] == "CONFIG_ERROR"


async def test_test_push_checks_user(client):
    resp = await client.post("/api/test-push", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing userId"}

    resp = await client.post("/api/test-push", json={"userId": "someone-else"})
    assert resp.status_code == 403


async def test_test_push_delivers(client, db, push_sender):
    await _subscribe(db)
    resp = await client.post("/api/test-push", json={"userId": TEST_USER.id})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "sent": 1, "removed": [], "failed": 0}
    assert push_sender.sent[0][1].tag == "test-notification"


async def test_register_and_remove_subscription(client, db):
    body = {"subscription": subscription_info("https://push.example/device"), "device_info": "Firefox"}
    resp = await client.post("/api/push/subscriptions", json=body)
    assert resp.status_code == 201
    assert resp.json()["endpoint"] == "https://push.example/device"

    resp = await client.post("/api/push/subscriptions", json=body)
    assert resp.status_code == 201
    rows = (await db.execute(select(PushSubscription))).scalars().all()
    assert len(rows) == 1
    assert rows[0].user_id == TEST_USER.id

    resp = await client.delete("/api/push/subscriptions", params={"endpoint": "https://push.example/device"})
    assert resp.status_code == 204
    resp = await client.delete("/api/push/subscriptions", params={"endpoint": "https://push.example/device"})
    assert resp.status_code == 404


async def test_low_stock_save_notifies_owner(client, db, email_client, push_sender):
    await _subscribe(db)
    resp = await client.post("/inventory/items", json={"name": "Toner", "stock": 20})
    item_id = resp.json()["item"]["id"]
    assert email_client.sent == []

    resp = await client.post(f"/inventory/items/{item_id}/stock", json={"stock": 3, "action_type": "remove"})

    assert resp.status_code == 200
    assert resp.json()["warnings"] == []
    assert email_client.sent[0]["subject"] == "Low Stock Alert: Toner"
    assert push_sender.sent[0][1].tag == "low-stock-Toner"


async def test_email_alerts_off_skips_email(client, db, email_client, push_sender):
    db.add(UserSettings(user_id=TEST_USER.id, email_alerts=False))
    await db.commit()
    await _subscribe(db)

    await client.post("/inventory/items", json={"name": "Toner", "stock": 1})

    assert email_client.sent == []
    assert len(push_sender.sent) == 1


async def test_failed_delivery_becomes_save_warning(client, db, email_client, push_sender):
    await _subscribe(db)
    resp = await client.post("/inventory/items", json={"name": "Toner", "stock": 20})
    item_id = resp.json()["item"]["id"]
    email_client.fail = True
    push_sender.errors["https://push.example/1"] = RuntimeError("push service down")

    resp = await client.post(f"/inventory/items/{item_id}/stock", json={"stock": 3, "action_type": "remove"})

    assert resp.status_code == 200
    assert resp.json()["item"]["stock"] == 3
    assert resp.json()["warnings"] == ["Low stock alert could not be delivered by email and push"]


async def test_failed_channels_stay_out_of_alert_body(client, db, email_client):
    email_client.fail = True
    await _subscribe(db)

    resp = await client.post("/api/send-low-stock-alert", json=ALERT)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "email_sent": False, "push_sent": 1}
