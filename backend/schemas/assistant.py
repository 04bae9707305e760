from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    language: str = "en"


class ChatResponse(BaseModel):
    response: str


class VoiceResponse(BaseModel):
    text: str
    transcript: str
    # base64 encoded speech, None when synthesis is unavailable
    audio: Optional[str] = None


class ProductParams(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = None
    stock: Optional[int] = None
    unit_cost: Optional[float] = None
    notes: Optional[str] = None
