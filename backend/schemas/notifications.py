from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class LowStockAlertRequest(BaseModel):
    """Payload of POST /api/send-low-stock-alert, also built in-process by the notifier."""
    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field(alias="itemName")
    current_stock: Union[int, float] = Field(alias="currentStock")
    threshold: Union[int, float]
    user_email: Optional[str] = Field(None, alias="userEmail")
    user_id: str = Field(alias="userId")


class AlertResult(BaseModel):
    success: bool = True
    email_sent: bool = False
    push_sent: int = 0
    # channels whose delivery raised; not part of the response body
    failed_channels: List[str] = Field(default_factory=list, exclude=True)


class PushTestRequest(BaseModel):
    userId: Optional[str] = None


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class SubscriptionInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys
    expirationTime: Optional[Any] = None


class PushSubscriptionCreate(BaseModel):
    subscription: SubscriptionInfo
    device_info: Optional[str] = None


class PushSubscriptionOut(BaseModel):
    id: str
    endpoint: str
    device_info: Optional[str] = None
