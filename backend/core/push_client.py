"""
Web push delivery (VAPID) on top of pywebpush.

pywebpush is synchronous; each send runs in a worker thread so a fan-out
across subscriptions does not block the event loop.
"""

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pywebpush import webpush
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.error_reporting import report_error
from db.push_subscription import PushSubscription

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icons/icon.svg"
GONE_STATUSES = (404, 410)


class PushConfigError(Exception):
    """VAPID keys are not configured."""


class NoSubscriptionsError(Exception):
    """The target user has no registered device."""


@dataclass
class PushPayload:
    title: str
    body: str
    url: str = "/"
    tag: Optional[str] = None
    icon: str = DEFAULT_ICON
    require_interaction: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "data": {"url": self.url},
            "tag": self.tag,
            "requireInteraction": self.require_interaction,
        }


@dataclass
class PushResult:
    sent: int = 0
    removed: List[str] = field(default_factory=list)
    failed: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _status_of(error: BaseException) -> Optional[int]:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


class PushSender:
    def __init__(
        self,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        subject: Optional[str] = None,
    ):
        self.public_key = settings.vapid_public_key if public_key is None else public_key
        self.private_key = settings.vapid_private_key if private_key is None else private_key
        self.subject = subject or settings.vapid_subject

    @property
    def configured(self) -> bool:
        return bool(self.public_key and self.private_key)

    def _send_blocking(self, subscription_info: Dict[str, Any], data: str) -> None:
        webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=self.private_key,
            vapid_claims={"sub": self.subject},
        )

    async def send(self, subscription_info: Dict[str, Any], payload: PushPayload) -> None:
        """Deliver to one device. Raises WebPushException on delivery failure."""
        await asyncio.to_thread(self._send_blocking, subscription_info, json.dumps(payload.to_dict()))

    async def deliver(
        self,
        db: AsyncSession,
        subscriptions: Sequence[PushSubscription],
        payload: PushPayload,
    ) -> PushResult:
        """
        Send to every subscription concurrently. One failure never blocks the others.

        A 404/410 answer means the endpoint is gone: that row is deleted.
        Any other failure is reported and otherwise ignored.
        """
        result = PushResult()
        if not subscriptions:
            return result

        outcomes = await asyncio.gather(
            *(self.send(sub.subscription, payload) for sub in subscriptions),
            return_exceptions=True,
        )
        gone_ids = []
        for sub, outcome in zip(subscriptions, outcomes):
            if not isinstance(outcome, BaseException):
                result.sent += 1
                continue
            if _status_of(outcome) in GONE_STATUSES:
                gone_ids.append(sub.id)
                result.removed.append(str(sub.id))
            else:
                result.failed += 1
                report_error(outcome, {"subscription_id": str(sub.id), "tag": payload.tag})

        if gone_ids:
            try:
                await db.execute(delete(PushSubscription).where(PushSubscription.id.in_(gone_ids)))
                await db.commit()
                logger.info("Removed %d expired push subscriptions", len(gone_ids))
            except Exception as e:
                await db.rollback()
                report_error(e, {"subscription_ids": [str(i) for i in gone_ids]})
        return result

    async def broadcast_to_user(self, db: AsyncSession, user_id: str, payload: PushPayload) -> PushResult:
        """Send to all devices of one user. Raises when unconfigured or when the user has no device."""
        if not self.configured:
            raise PushConfigError("VAPID keys are not configured for push notifications")
        rows = await db.execute(select(PushSubscription).where(PushSubscription.user_id == user_id))
        subscriptions = rows.scalars().all()
        if not subscriptions:
            raise NoSubscriptionsError("No push subscriptions found for this user")
        return await self.deliver(db, subscriptions, payload)

    async def broadcast_all(self, db: AsyncSession, payload: PushPayload) -> PushResult:
        """Send to every registered device. Silently does nothing when VAPID keys are missing."""
        if not self.configured:
            logger.info("VAPID keys missing, skipping push for %s", payload.tag)
            return PushResult()
        rows = await db.execute(select(PushSubscription))
        return await self.deliver(db, rows.scalars().all(), payload)


def get_push_sender() -> PushSender:
    return PushSender()
