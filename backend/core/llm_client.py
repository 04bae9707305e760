"""LLM integration. Chat, transcription and speech calls all go through this module."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from core.config import settings

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


async def acompletion(**kwargs: Any) -> Any:
    """Pass-through to litellm.acompletion."""
    import litellm

    return await litellm.acompletion(**kwargs)


async def atranscription(**kwargs: Any) -> Any:
    """Pass-through to litellm.atranscription."""
    import litellm

    return await litellm.atranscription(**kwargs)


async def aspeech(**kwargs: Any) -> Any:
    """Pass-through to litellm.aspeech."""
    import litellm

    return await litellm.aspeech(**kwargs)


def extract_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Pull the outermost {...} block out of free text and parse it.

    LLM output is untrusted: returns None when there is no block, when it is
    not valid JSON, or when it does not decode to an object.
    """
    if not text:
        return None
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        value = json.loads(match.group(0))
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


class LLMClient:
    """Thin stateful wrapper so handlers and the reorder job can receive a replaceable client."""

    def __init__(
        self,
        model: Optional[str] = None,
        transcription_model: Optional[str] = None,
        speech_model: Optional[str] = None,
    ):
        self.model = model or settings.llm_model
        self.transcription_model = transcription_model or settings.transcription_model
        self.speech_model = speech_model or settings.speech_model

    async def complete(self, messages: list[dict[str, Any]], **kwargs: Any) -> str:
        response = await acompletion(model=self.model, messages=messages, **kwargs)
        content = response.choices[0].message.content
        return content or ""

    async def transcribe(self, filename: str, data: bytes, content_type: str = "audio/webm") -> str:
        response = await atranscription(
            model=self.transcription_model,
            file=(filename, data, content_type),
        )
        text = getattr(response, "text", None)
        if text is None and isinstance(response, dict):
            text = response.get("text")
        return (text or "").strip()

    async def speak(self, text: str) -> bytes:
        response = await aspeech(model=self.speech_model, voice=settings.speech_voice, input=text)
        return response.content


def get_llm_client() -> LLMClient:
    return LLMClient()
