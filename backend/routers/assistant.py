import base64
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthUser, current_active_user
from core.error_reporting import report_error
from core.llm_client import LLMClient, get_llm_client
from core.realtime import RealtimeHub, get_realtime_hub
from db.database import get_async_session
from schemas.assistant import ChatMessage, ChatRequest, ChatResponse, VoiceResponse
from services.assistant import parse_history, process_assistant_message

router = APIRouter()


@router.post("/chat", response_model=ChatResponse)
async def assistant_chat(
    data: ChatRequest,
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    llm: LLMClient = Depends(get_llm_client),
):
    try:
        reply = await process_assistant_message(db, hub, user, llm, data.messages, data.language)
    except Exception as e:
        report_error(e, {"context": "Assistant chat"})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to generate AI response", "details": str(e)},
        )
    return ChatResponse(response=reply)


@router.post("/voice", response_model=VoiceResponse)
async def assistant_voice(
    audio: Optional[UploadFile] = File(None),
    language: str = Form("en"),
    messages: Optional[str] = Form(None),
    user: AuthUser = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    hub: RealtimeHub = Depends(get_realtime_hub),
    llm: LLMClient = Depends(get_llm_client),
):
    """Transcribe the audio, answer it like a chat message, and synthesize the answer."""
    if audio is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No audio file provided")

    try:
        data = await audio.read()
        transcript = await llm.transcribe(audio.filename or "audio.webm", data, audio.content_type or "audio/webm")
        if not transcript:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to transcribe audio"},
            )
        history = parse_history(messages)
        history.append(ChatMessage(role="user", content=transcript))
        reply = await process_assistant_message(db, hub, user, llm, history, language)
    except Exception as e:
        report_error(e, {"context": "Assistant voice"})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Voice processing failed", "details": str(e)},
        )

    audio_b64 = None
    try:
        audio_b64 = base64.b64encode(await llm.speak(reply)).decode("ascii")
    except Exception as e:
        report_error(e, {"context": "Speech synthesis"})
    return VoiceResponse(text=reply, transcript=transcript, audio=audio_b64)
