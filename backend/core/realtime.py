"""
In-process publish/subscribe hub for connected inventory clients.

Carries two kinds of events: `inventory-updated` after any item mutation, and
`presence-sync` whenever someone joins, leaves or starts/stops editing an
item. Presence is advisory only; it never locks anything.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

from fastapi.requests import HTTPConnection

from db.database import utcnow

logger = logging.getLogger(__name__)

INVENTORY_UPDATED = "inventory-updated"
PRESENCE_SYNC = "presence-sync"

_QUEUE_SIZE = 100


@dataclass
class RealtimeEvent:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    sender: Optional[str] = None
    sent_at: datetime = field(default_factory=utcnow)

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "payload": self.payload,
            "sender": self.sender,
            "sent_at": self.sent_at.isoformat(),
        }


@dataclass
class PresenceState:
    client_id: str
    user_id: str
    email: Optional[str] = None
    editing_item_id: Optional[str] = None
    online_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["online_at"] = self.online_at.isoformat()
        return data


class RealtimeHub:
    def __init__(self):
        self._subscribers: Set[asyncio.Queue] = set()
        self._presence: Dict[str, PresenceState] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=_QUEUE_SIZE)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def publish(self, event: RealtimeEvent) -> int:
        """Fan the event out to every subscriber. Slow subscribers lose events. Returns deliveries."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping %s event for a slow realtime subscriber", event.type)
        return delivered

    def broadcast_inventory_updated(
        self,
        item_id: Optional[UUID] = None,
        action: str = "updated",
        sender: Optional[str] = None,
    ) -> int:
        payload = {"action": action, "item_id": str(item_id) if item_id else None}
        return self.publish(RealtimeEvent(type=INVENTORY_UPDATED, payload=payload, sender=sender))

    # Presence

    def presence(self) -> List[PresenceState]:
        return list(self._presence.values())

    def editors_of(self, item_id: str) -> List[PresenceState]:
        return [p for p in self._presence.values() if p.editing_item_id == item_id]

    def _sync_presence(self, sender: Optional[str]) -> None:
        self.publish(RealtimeEvent(
            type=PRESENCE_SYNC,
            payload={"presence": [p.to_dict() for p in self._presence.values()]},
            sender=sender,
        ))

    def join(self, client_id: str, user_id: str, email: Optional[str] = None) -> PresenceState:
        state = PresenceState(client_id=client_id, user_id=user_id, email=email)
        self._presence[client_id] = state
        self._sync_presence(user_id)
        return state

    def set_editing(self, client_id: str, item_id: Optional[str]) -> None:
        state = self._presence.get(client_id)
        if state is None:
            return
        state.editing_item_id = item_id
        self._sync_presence(state.user_id)

    def leave(self, client_id: str) -> None:
        state = self._presence.pop(client_id, None)
        if state is not None:
            self._sync_presence(state.user_id)


def get_realtime_hub(conn: HTTPConnection) -> RealtimeHub:
    return conn.app.state.realtime_hub
