import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from paperlenz.core.exceptions import LLMConfigurationError, LLMServiceError
from paperlenz.models import User
from paperlenz.schemas import ChatRequest, ChatResponse
from paperlenz.api.v1.auth import get_current_user
from paperlenz.services.chat_service import ChatService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_chat_service() -> ChatService:
    return ChatService.from_settings()


@router.post("", response_model=ChatResponse)
async def chat(
    chat_request: ChatRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
):
    """Answer a help-desk question. The full conversation is sent on every call."""
    try:
        reply = await chat_service.get_chat_response(chat_request.messages)
    except LLMConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except LLMServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ChatResponse(reply=reply)
