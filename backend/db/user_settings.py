import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from .database import Base, utcnow


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, nullable=False, unique=True, index=True)

    display_name = Column(String, nullable=True)
    role = Column(String, nullable=True)
    language = Column(String, nullable=True, default="en")

    # Per-user global fallback threshold (last step of item -> category -> global)
    low_stock_threshold = Column(Integer, nullable=True, default=5)
    email_alerts = Column(Boolean, nullable=True, default=True)
    notifications = Column(Boolean, nullable=True, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
