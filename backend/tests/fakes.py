"""Test doubles for the delivery clients and the LLM."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from core.auth import AuthUser
from core.push_client import PushPayload, PushSender

TEST_USER = AuthUser(id="user-1", email="owner@example.com", token="token-1")


class FakePushSender(PushSender):
    """Configured sender that records deliveries instead of calling push services."""

    def __init__(self, configured: bool = True):
        keys = "test-key" if configured else ""
        super().__init__(public_key=keys, private_key=keys, subject="mailto:test@example.com")
        self.sent: list[tuple[dict[str, Any], PushPayload]] = []
        self.errors: dict[str, Exception] = {}

    async def send(self, subscription_info: dict[str, Any], payload: PushPayload) -> None:
        error = self.errors.get(subscription_info.get("endpoint"))
        if error is not None:
            raise error
        self.sent.append((subscription_info, payload))


@dataclass
class FakeEmailClient:
    sent: list[dict[str, str]] = field(default_factory=list)
    fail: bool = False

    async def send(self, to: str, subject: str, html_content: str) -> bool:
        if self.fail:
            raise RuntimeError("brevo down")
        self.sent.append({"to": to, "subject": subject, "html": html_content})
        return True


class FakeLLM:
    """Returns queued replies in order; records every prompt."""

    def __init__(self, *replies: Any, transcript: str = "", speech: bytes = b"audio"):
        self.replies = list(replies)
        self.prompts: list[list[dict[str, Any]]] = []
        self.transcript = transcript
        self.speech = speech

    async def complete(self, messages: list[dict[str, Any]], **kwargs: Any) -> str:
        self.prompts.append(messages)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def transcribe(self, filename: str, data: bytes, content_type: str = "audio/webm") -> str:
        return self.transcript

    async def speak(self, text: str) -> bytes:
        return self.speech


def subscription_info(endpoint: str) -> dict[str, Any]:
    return {"endpoint": endpoint, "keys": {"p256dh": "p256dh-key", "auth": "auth-key"}}

