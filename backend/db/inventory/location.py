import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class InventoryLocation(Base):
    __tablename__ = "inventory_locations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(Uuid, ForeignKey("inventory_locations.id", ondelete="SET NULL"), nullable=True, index=True)

    parent = relationship("InventoryLocation", remote_side=[id])

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
        }


class InventoryStockLocation(Base):
    __tablename__ = "inventory_stock_locations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inventory_id = Column(
        Uuid,
        ForeignKey("inventory.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location = Column(String, nullable=False)
    parent_location = Column(String, nullable=True)
    quantity = Column(Integer, nullable=True, default=0)

    inventory_item = relationship("InventoryItem", back_populates="stock_locations")

    @property
    def to_schema(self):
        return {
            "location": self.location,
            "parent_location": self.parent_location,
            "quantity": int(self.quantity or 0),
        }
