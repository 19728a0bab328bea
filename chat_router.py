# backend/chat_router.py

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends

import providers
from auth import get_current_user
from errors import ValidationError
from schemas import ChatMessageIn, ChatRequest, ChatResponse, TokenData

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly AI assistant helping an IT undergraduate. "
    "Explain things simply with examples."
)

router = APIRouter(
    prefix="/api/chat",
    tags=["chat"]
)


def build_messages(message: Optional[str], messages: Optional[List[ChatMessageIn]]) -> List[Dict[str, str]]:
    """Full history wins; a lone message is wrapped with the default system prompt."""
    if messages:
        return [{"role": m.role, "content": m.content} for m in messages]
    if message and message.strip():
        return [
            {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": message},
        ]
    raise ValidationError("Either `message` or `messages` is required")


def chat(provider_id: Optional[str], message: Optional[str] = None,
         messages: Optional[List[ChatMessageIn]] = None) -> ChatResponse:
    chat_messages = build_messages(message, messages)
    reply = providers.send(provider_id, chat_messages)
    return ChatResponse(reply=reply.text, provider=reply.provider)


# ─── POST /api/chat ────────────────────────────────────────────────────────────
@router.post("", response_model=ChatResponse)
def chat_route(
    body: ChatRequest,
    current_user: TokenData = Depends(get_current_user)
):
    logger.info(
        "Chat request user=%s provider=%s messages=%s",
        current_user.user_id, body.provider, len(body.messages or []) or 1,
    )
    return chat(body.provider, body.message, body.messages)
