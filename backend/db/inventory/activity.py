import uuid
from sqlalchemy import Column, DateTime, String, Uuid

from ..database import Base, JSONType, utcnow


class InventoryActivity(Base):
    """Append-only. Rows are never updated after insert."""
    __tablename__ = "inventory_activity"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # No FK: the log outlives deleted items.
    inventory_id = Column(Uuid, nullable=True, index=True)
    user_id = Column(String, nullable=True, index=True)

    # 'created' | 'updated' | 'deleted'
    action = Column(String, nullable=False, index=True)
    item_name = Column(String, nullable=False)
    changes = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "user_id": self.user_id,
            "action": self.action,
            "item_name": self.item_name,
            "changes": self.changes or {},
            "created_at": self.created_at,
        }
