import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser, current_active_user
from core.email_client import EmailClient, get_email_client
from core.error_reporting import report_error
from core.push_client import (
    NoSubscriptionsError,
    PushConfigError,
    PushPayload,
    PushSender,
    get_push_sender,
)
from db.database import get_async_session
from db.push_subscription import PushSubscription
from schemas.notifications import AlertResult, PushSubscriptionCreate, PushSubscriptionOut, PushTestRequest
from services.alerts import AlertValidationError, parse_low_stock_alert, send_low_stock_alert

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send-low-stock-alert", response_model=AlertResult)
async def low_stock_alert(
    request: Request,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    email_client: EmailClient = Depends(get_email_client),
    push_sender: PushSender = Depends(get_push_sender),
):
    """Email (when an address is given) and push the low-stock alert to the user's devices."""
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or missing JSON body")
    try:
        alert = parse_low_stock_alert(body)
    except AlertValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return await send_low_stock_alert(db, alert, email_client=email_client, push_sender=push_sender)


async def _test_push(
    data: Optional[PushTestRequest],
    user: AuthUser,
    db: AsyncSession,
    push_sender: PushSender,
):
    user_id = data.userId if data else None
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing userId")
    if user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    payload = PushPayload(
        title="Push Notification Test",
        body="This is a test notification sent from the server!",
        url="/settings",
        tag="test-notification",
    )
    try:
        result = await push_sender.broadcast_to_user(db, user_id, payload)
    except NoSubscriptionsError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "No push subscriptions found. Please enable push notifications in settings first.",
                "errorType": "NO_SUBSCRIPTION",
            },
        )
    except PushConfigError as e:
        report_error(e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Push notifications are not properly configured on the server.",
                "errorType": "CONFIG_ERROR",
            },
        )
    except SQLAlchemyError as e:
        report_error(e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Database connection error. Please try again later.",
                "errorType": "DB_ERROR",
            },
        )
    return {"success": True, **result.as_dict()}


@router.post("/test-push")
async def test_push(
    data: Optional[PushTestRequest] = None,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    push_sender: PushSender = Depends(get_push_sender),
):
    return await _test_push(data, user, db, push_sender)


@router.post("/send-test-push")
async def send_test_push(
    data: Optional[PushTestRequest] = None,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    push_sender: PushSender = Depends(get_push_sender),
):
    return await _test_push(data, user, db, push_sender)


@router.post("/push/subscriptions", response_model=PushSubscriptionOut, status_code=status.HTTP_201_CREATED)
async def register_push_subscription(
    data: PushSubscriptionCreate,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Register this device. Re-registering an endpoint moves it to the caller."""
    info = data.subscription.model_dump(mode="json", exclude_none=True)
    res = await db.execute(select(PushSubscription).where(PushSubscription.endpoint == data.subscription.endpoint))
    row = res.scalar_one_or_none()
    if row is None:
        row = PushSubscription(endpoint=data.subscription.endpoint)
        db.add(row)
    row.user_id = user.id
    row.subscription = info
    row.device_info = data.device_info
    await db.commit()
    logger.info("Registered push subscription %s for %s", row.id, user.id)
    return PushSubscriptionOut(id=str(row.id), endpoint=row.endpoint, device_info=row.device_info)


@router.delete("/push/subscriptions", status_code=status.HTTP_204_NO_CONTENT)
async def remove_push_subscription(
    endpoint: str = Query(..., min_length=1),
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        delete(PushSubscription)
        .where(PushSubscription.endpoint == endpoint)
        .where(PushSubscription.user_id == user.id)
    )
    if not res.rowcount:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    await db.commit()
    return None
