"""Chat assistant: language-pinned system prompt plus the [[TOOL_CALL: ...]] tag protocol."""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser
from core.config import settings
from core.error_reporting import report_error
from core.llm_client import LLMClient
from core.realtime import RealtimeHub
from schemas.assistant import ChatMessage, ProductParams
from schemas.inventory import InventoryItemCreate
from services.stock_actions import create_item

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {"fr": "French", "en": "English"}

TOOL_CALL_RE = re.compile(r"\[\[TOOL_CALL:\s*(\w+)\s*(\{.*\})\]\]")


def language_name(code: Optional[str]) -> str:
    return LANGUAGE_NAMES.get((code or "en").lower(), "English")


def build_system_prompt(language: str, company_name: Optional[str] = None) -> str:
    company_name = company_name or settings.company_name
    name = language_name(language)
    return f"""You are an AI assistant for the Inventory Management System of {company_name}.
You help users manage their inventory: stock levels, categories and locations.

You have the ability to ADD products to the system.
To use a tool, you MUST output a special tag in your response: [[TOOL_CALL: name {{params}}]].
Do NOT use markdown for the tool call tag itself, but you can use markdown for the rest of your message.

AVAILABLE TOOLS:
1. [[TOOL_CALL: add_product {{"name": string, "category": string, "stock": number, "unit_cost": number, "notes": string}}]]

When a user asks to add something, acknowledge it and then include the TOOL_CALL tag.
Example: "Certainly! I'll add that product for you. [[TOOL_CALL: add_product {{"name": "Hammer", "category": "Tools", "stock": 10}}]]"

Be concise, professional, and friendly.
IMPORTANT: You must answer in {name} even if the user asks in another language. Do not use any other language."""


def prepare_messages(messages: Sequence[ChatMessage], language: str) -> List[Dict[str, str]]:
    """System prompt first; the last user message gets the language reminder appended."""
    prepared = [{"role": "system", "content": build_system_prompt(language)}]
    prepared.extend({"role": m.role, "content": m.content} for m in messages)
    for message in reversed(prepared):
        if message["role"] == "user":
            message["content"] += f"\n\n(IMPORTANT: Answer in {language_name(language)} ONLY)"
            break
    return prepared


async def _add_product(db: AsyncSession, hub: Optional[RealtimeHub], user: AuthUser, params: Dict[str, Any]) -> str:
    product = ProductParams(**params)
    data = InventoryItemCreate(
        name=product.name,
        category=product.category or "Uncategorized",
        stock=product.stock or 0,
        unit_cost=product.unit_cost or 0,
        notes=product.notes or "",
    )
    await create_item(db, hub, user, data)
    return f"\n\n(Confirmed: {product.name} has been added to inventory.)"


async def apply_tool_call(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    text: str,
) -> str:
    """Run the first tool call tag found in `text` and replace the tag with its outcome."""
    match = TOOL_CALL_RE.search(text)
    if not match:
        return text

    tool_name, raw_params = match.group(1), match.group(2)
    try:
        params = json.loads(raw_params)
        if not isinstance(params, dict):
            raise ValueError("Tool parameters must be a JSON object")
        if tool_name == "add_product":
            outcome = await _add_product(db, hub, user, params)
        else:
            raise ValueError(f"Unknown tool: {tool_name}")
    except (ValueError, ValidationError) as e:
        report_error(e, {"context": "Tool execution", "tool": tool_name})
        outcome = f"\n\n(Error adding item: {e})"
    except Exception as e:
        report_error(e, {"context": "Tool execution", "tool": tool_name})
        outcome = f"\n\n(Error adding item: {e or 'Internal error'})"
    return text.replace(match.group(0), outcome, 1)


async def process_assistant_message(
    db: AsyncSession,
    hub: Optional[RealtimeHub],
    user: AuthUser,
    llm: LLMClient,
    messages: Sequence[ChatMessage],
    language: str = "en",
) -> str:
    reply = await llm.complete(prepare_messages(messages, language))
    return await apply_tool_call(db, hub, user, reply)


def parse_history(raw: Optional[str]) -> List[ChatMessage]:
    """Chat history sent with a voice request. A trailing user placeholder is dropped."""
    if not raw:
        return []
    try:
        items = json.loads(raw)
        history = [ChatMessage(**item) for item in items]
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning("Failed to parse voice history: %s", e)
        return []
    if history and history[-1].role == "user":
        history.pop()
    return history
