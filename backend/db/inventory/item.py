import uuid
from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base, utcnow
from .location import InventoryStockLocation


class InventoryItem(Base):
    __tablename__ = "inventory"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, index=True)

    # Matches InventoryCategory.name; no FK, categories are referenced by name.
    category = Column(String, nullable=False, default="", index=True)
    sku = Column(String, nullable=True, unique=True)

    stock = Column(Integer, nullable=True, default=0)
    # NULL means "inherit from category, then from the user's global threshold"
    low_stock_threshold = Column(Integer, nullable=True)

    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    unit_cost = Column(Numeric(12, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    stock_locations = relationship(
        InventoryStockLocation,
        back_populates="inventory_item",
        cascade="all, delete-orphan",
    )

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category or "",
            "sku": self.sku,
            "stock": int(self.stock or 0),
            "low_stock_threshold": self.low_stock_threshold,
            "location": self.location,
            "notes": self.notes,
            "image_url": self.image_url,
            "unit_cost": float(self.unit_cost) if self.unit_cost is not None else None,
            "created_at": self.created_at,
        }
