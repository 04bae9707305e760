from sqlalchemy import Column, DateTime, Integer, String

from ..database import Base, utcnow


class InventoryCategory(Base):
    __tablename__ = "inventory_categories"

    name = Column(String, primary_key=True)
    # NULL means "inherit from the user's global threshold"
    low_stock_threshold = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def to_schema(self):
        return {
            "name": self.name,
            "low_stock_threshold": self.low_stock_threshold,
        }
