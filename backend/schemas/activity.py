from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


ActivityAction = Literal["created", "updated", "deleted"]


class StockMovementChanges(BaseModel):
    """A stock adjustment made through the stock dialog (add/remove/adjust)."""
    model_config = ConfigDict(extra="forbid")

    action_type: Literal["add", "remove", "adjust"]
    stock: int
    old_stock: Optional[int] = None
    location: Optional[str] = None
    parent_location: Optional[str] = None
    recipient: Optional[str] = None
    destination_location: Optional[str] = None


class ItemEditChanges(BaseModel):
    """Item create/edit/delete snapshot. Extra item fields are kept as-is."""
    model_config = ConfigDict(extra="allow")

    stock: Optional[int] = None
    old_stock: Optional[int] = None


def _changes_kind(value: Any) -> str:
    if isinstance(value, dict):
        action_type = value.get("action_type")
    else:
        action_type = getattr(value, "action_type", None)
    return "stock" if action_type is not None else "edit"


ActivityChanges = Annotated[
    Union[
        Annotated[StockMovementChanges, Tag("stock")],
        Annotated[ItemEditChanges, Tag("edit")],
    ],
    Discriminator(_changes_kind),
]


def dump_changes(changes: Union[StockMovementChanges, ItemEditChanges]) -> Dict[str, Any]:
    """JSON-ready dict with only the keys that were actually provided."""
    return changes.model_dump(mode="json", exclude_unset=True)


class ActivityCreate(BaseModel):
    inventory_id: Optional[UUID] = None
    # Defaults to the authenticated caller
    user_id: Optional[str] = None
    action: ActivityAction
    item_name: str = Field(min_length=1, max_length=255)
    changes: ActivityChanges = Field(default_factory=ItemEditChanges)


class ActivityCreated(BaseModel):
    success: bool = True
    id: UUID


class ActivityOut(BaseModel):
    id: UUID
    inventory_id: Optional[UUID] = None
    user_id: Optional[str] = None
    action: str
    item_name: str
    changes: Dict[str, Any] = {}
    created_at: datetime


class DashboardStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stock_in: int = Field(0, alias="in")
    stock_out: int = Field(0, alias="out")


class ReportStatsRow(BaseModel):
    itemName: str
    total: int
