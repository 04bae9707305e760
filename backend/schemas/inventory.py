from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from core.thresholds import StockStatus
from core.validators import MAX_NAME_LENGTH, MAX_STOCK, MAX_THRESHOLD


StockActionType = Literal["add", "remove", "adjust"]


def _check_stock(v: Optional[int]) -> Optional[int]:
    if v is None:
        return None
    if v < 0 or v >= MAX_STOCK:
        raise ValueError(f"stock must be between 0 and {MAX_STOCK - 1}")
    return v


def _check_threshold(v: Optional[int]) -> Optional[int]:
    if v is None:
        return None
    if v < 0 or v >= MAX_THRESHOLD:
        raise ValueError(f"low_stock_threshold must be between 0 and {MAX_THRESHOLD - 1}")
    return v


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class StockLocationIn(BaseModel):
    location: str
    parent_location: Optional[str] = None
    quantity: int = 0

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: int) -> int:
        return _check_stock(v)


class InventoryItemCreate(BaseModel):
    name: str
    category: str = ""
    sku: Optional[str] = None
    stock: int = 0
    low_stock_threshold: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None
    unit_cost: Optional[float] = None
    stock_locations: Optional[List[StockLocationIn]] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"name must be at most {MAX_NAME_LENGTH} characters")
        return v

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: Optional[str]) -> str:
        return (v or "").strip()

    @field_validator("sku", "location", "notes", "image_url")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)

    @field_validator("stock")
    @classmethod
    def _stock(cls, v: int) -> int:
        return _check_stock(v)

    @field_validator("low_stock_threshold")
    @classmethod
    def _threshold(cls, v: Optional[int]) -> Optional[int]:
        return _check_threshold(v)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    stock: Optional[int] = None
    low_stock_threshold: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None
    unit_cost: Optional[float] = None
    stock_locations: Optional[List[StockLocationIn]] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> str:
        # explicit null counts as empty
        v = (v or "").strip()
        if not v:
            raise ValueError("name cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"name must be at most {MAX_NAME_LENGTH} characters")
        return v

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: Optional[str]) -> str:
        return (v or "").strip()

    @field_validator("sku", "location", "notes", "image_url")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)

    @field_validator("stock")
    @classmethod
    def _stock(cls, v: Optional[int]) -> Optional[int]:
        return _check_stock(v)

    @field_validator("low_stock_threshold")
    @classmethod
    def _threshold(cls, v: Optional[int]) -> Optional[int]:
        return _check_threshold(v)


class StockSaveRequest(BaseModel):
    stock: int
    location: Optional[str] = None
    action_type: Optional[StockActionType] = None
    parent_location: Optional[str] = None
    recipient: Optional[str] = None
    destination_location: Optional[str] = None

    @field_validator("stock")
    @classmethod
    def _stock(cls, v: int) -> int:
        return _check_stock(v)

    @field_validator("location", "parent_location", "recipient", "destination_location")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class InventoryItemOut(BaseModel):
    id: UUID
    name: str
    category: str
    sku: Optional[str] = None
    stock: int
    low_stock_threshold: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None
    unit_cost: Optional[float] = None
    created_at: Optional[datetime] = None

    # computed from item -> category -> user global threshold
    effective_threshold: Optional[int] = None
    status: Optional[StockStatus] = None
    stock_locations: List[StockLocationIn] = []

    model_config = ConfigDict(from_attributes=True)


class StockSaveResult(BaseModel):
    item: InventoryItemOut
    warnings: List[str] = []


class CategoryThresholdUpdate(BaseModel):
    low_stock_threshold: Optional[int] = None

    @field_validator("low_stock_threshold")
    @classmethod
    def _threshold(cls, v: Optional[int]) -> Optional[int]:
        return _check_threshold(v)


class CategoryOut(BaseModel):
    name: str
    low_stock_threshold: Optional[int] = None


class LocationCreate(BaseModel):
    name: str
    description: Optional[str] = None
    parent_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class LocationUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[UUID] = None


class LocationOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    parent_id: Optional[UUID] = None


class InventoryStatsOut(BaseModel):
    total: int
    low_stock: int
    out_of_stock: int
