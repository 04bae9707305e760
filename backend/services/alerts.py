"""
Low-stock alerting: email (Brevo) plus push to the user's devices.

`send_low_stock_alert` backs POST /api/send-low-stock-alert.
`check_low_stock_and_notify` is what stock mutations call after saving; it
goes through the same validation and delivery path as the endpoint.
"""

import logging
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser
from core.email_client import EmailClient, get_email_client
from core.error_reporting import report_error
from core.push_client import NoSubscriptionsError, PushConfigError, PushPayload, PushSender, get_push_sender
from core.thresholds import DEFAULT_GLOBAL_THRESHOLD, effective_threshold, is_low_stock
from core.translations import get_translation
from core.validators import (
    sanitize_html,
    validate_email,
    validate_item_name,
    validate_stock,
    validate_threshold,
)
from db.inventory.category import InventoryCategory
from db.inventory.item import InventoryItem
from db.user_settings import UserSettings
from schemas.notifications import AlertResult, LowStockAlertRequest

logger = logging.getLogger(__name__)


class AlertValidationError(ValueError):
    pass


def _as_number(value: Any):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def parse_low_stock_alert(body: Any) -> LowStockAlertRequest:
    """Validate a raw alert body. Raises AlertValidationError with the user-facing message."""
    if not isinstance(body, dict):
        raise AlertValidationError("Invalid or missing JSON body")

    item_name = body.get("itemName")
    current_stock = body.get("currentStock")
    threshold = body.get("threshold")
    user_email = body.get("userEmail")
    user_id = body.get("userId")

    if not validate_item_name(item_name):
        raise AlertValidationError("Invalid item name")
    if not validate_stock(current_stock):
        raise AlertValidationError("Invalid stock value")
    if not validate_threshold(threshold):
        raise AlertValidationError("Invalid threshold value")
    if user_email and not validate_email(user_email):
        raise AlertValidationError("Invalid email address")
    if not user_id or not isinstance(user_id, str):
        raise AlertValidationError("Invalid user ID")

    return LowStockAlertRequest(
        item_name=item_name,
        current_stock=_as_number(current_stock),
        threshold=_as_number(threshold),
        user_email=user_email or None,
        user_id=user_id,
    )


async def get_user_settings(db: AsyncSession, user_id: str) -> Optional[UserSettings]:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id).limit(1))
    return result.scalar_one_or_none()


async def _user_language(db: AsyncSession, user_id: str) -> str:
    try:
        user_settings = await get_user_settings(db, user_id)
    except Exception as e:
        report_error(e, {"user_id": user_id, "step": "language lookup"})
        return "en"
    if user_settings is None:
        return "en"
    return user_settings.language or "en"


def _email_html(language: str, item_name: str, stock: str, threshold: str) -> str:
    return f"""
<div style="font-family: sans-serif; padding: 20px; color: #333;">
  <h2 style="color: #d32f2f;">{get_translation(language, "emailTitle")}</h2>
  <p>{get_translation(language, "emailIntro", threshold=threshold)}</p>
  <div style="background: #f5f5f5; padding: 15px; border-radius: 8px; margin: 20px 0;">
    <p style="margin: 5px 0;"><strong>{get_translation(language, "emailItem")}</strong> {item_name}</p>
    <p style="margin: 5px 0;"><strong>{get_translation(language, "emailStock")}</strong> {stock}</p>
  </div>
  <p>{get_translation(language, "emailFooter")}</p>
</div>
"""


async def send_low_stock_alert(
    db: AsyncSession,
    alert: LowStockAlertRequest,
    *,
    email_client: EmailClient,
    push_sender: PushSender,
) -> AlertResult:
    """
    Deliver one alert. Email and push are independent: a failure in one is
    reported and does not stop the other. Failed channels land in
    `failed_channels`.
    """
    result = AlertResult()
    language = await _user_language(db, alert.user_id)

    item_name = sanitize_html(alert.item_name)
    stock = sanitize_html(alert.current_stock)
    threshold = sanitize_html(alert.threshold)

    if alert.user_email:
        try:
            result.email_sent = await email_client.send(
                to=alert.user_email,
                subject=get_translation(language, "subject", itemName=item_name),
                html_content=_email_html(language, item_name, stock, threshold),
            )
        except Exception as e:
            report_error(e, {"user_id": alert.user_id, "step": "email"})
            result.failed_channels.append("email")

    payload = PushPayload(
        title=get_translation(language, "title"),
        body=get_translation(language, "body", itemName=item_name, currentStock=stock),
        url="/inventory?filter=lowStock",
        tag=f"low-stock-{alert.item_name}",
    )
    try:
        push_result = await push_sender.broadcast_to_user(db, alert.user_id, payload)
        result.push_sent = push_result.sent
        if push_result.failed and not push_result.sent:
            result.failed_channels.append("push")
    except (NoSubscriptionsError, PushConfigError) as e:
        logger.info("Low-stock push skipped for %s: %s", alert.user_id, e)
    except Exception as e:
        report_error(e, {"user_id": alert.user_id, "step": "push"})
        result.failed_channels.append("push")

    return result


async def check_low_stock_and_notify(
    db: AsyncSession,
    item: InventoryItem,
    user: AuthUser,
    *,
    email_client: EmailClient,
    push_sender: PushSender,
) -> Optional[str]:
    """
    Alert the acting user when `item` is at or below its effective threshold.

    Never raises. Returns a warning string when the check or delivery failed,
    None otherwise. At most one attempt per call.
    """
    item_id = item.id
    try:
        category_threshold = None
        if item.category:
            category = await db.get(InventoryCategory, item.category)
            category_threshold = category.low_stock_threshold if category else None

        user_settings = await get_user_settings(db, user.id)
        global_threshold = DEFAULT_GLOBAL_THRESHOLD
        if user_settings is not None and user_settings.low_stock_threshold is not None:
            global_threshold = user_settings.low_stock_threshold

        threshold = effective_threshold(item.low_stock_threshold, category_threshold, global_threshold)
        if not is_low_stock(item.stock, threshold):
            return None

        user_email = user.email
        if user_settings is not None and user_settings.email_alerts is False:
            user_email = None

        alert = parse_low_stock_alert({
            "itemName": item.name,
            "currentStock": int(item.stock or 0),
            "threshold": threshold,
            "userEmail": user_email,
            "userId": user.id,
        })
        result = await send_low_stock_alert(db, alert, email_client=email_client, push_sender=push_sender)
        if result.failed_channels:
            return f"Low stock alert could not be delivered by {' and '.join(result.failed_channels)}"
        return None
    except Exception as e:
        report_error(e, {"item_id": str(item_id), "step": "low stock check"})
        return f"Low stock alert could not be sent: {e}"


class LowStockNotifier:
    """Binds the delivery clients so mutations only pass (db, item, user)."""

    def __init__(self, email_client: EmailClient, push_sender: PushSender):
        self.email_client = email_client
        self.push_sender = push_sender

    async def __call__(self, db: AsyncSession, item: InventoryItem, user: AuthUser) -> Optional[str]:
        return await check_low_stock_and_notify(
            db, item, user, email_client=self.email_client, push_sender=self.push_sender
        )


def get_low_stock_notifier(
    email_client: EmailClient = Depends(get_email_client),
    push_sender: PushSender = Depends(get_push_sender),
) -> LowStockNotifier:
    return LowStockNotifier(email_client, push_sender)
