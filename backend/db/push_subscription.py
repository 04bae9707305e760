import uuid

from sqlalchemy import Column, DateTime, String, Text, Uuid

from .database import Base, JSONType, utcnow


class PushSubscription(Base):
    """A browser push endpoint registered by one of a user's devices."""
    __tablename__ = "push_subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, index=True)
    endpoint = Column(Text, nullable=False, unique=True)
    # {"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}
    subscription = Column(JSONType, nullable=False)
    device_info = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
