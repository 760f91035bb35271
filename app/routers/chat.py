# =============================================================================
# app/routers/chat.py - AI Chat Endpoints
# =============================================================================
# Endpoints:
#   POST /ai/chat              - Send a message (JSON reply)
#   POST /ai/chat?stream=true  - Send a message (Server-Sent Events)
#   GET  /ai/chat              - Message history for a tank (or general chat)
#
# Handlers are plain `def`; FastAPI runs them in its threadpool while the
# Anthropic call blocks.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from app.dependencies import CurrentUser, LLMDep
from app.responses import success_response
from core.models.chat import ChatRequest
from core.services.chat_service import HISTORY_PAGE_DEFAULT, HISTORY_PAGE_MAX, ChatService

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@router.post("/chat")
def send_message(
    body: ChatRequest,
    request: Request,
    user: CurrentUser,
    llm: LLMDep,
    stream: Annotated[bool, Query(description="Stream the reply as Server-Sent Events")] = False,
):
    """
    Ask the assistant a question, optionally about one tank.

    Counts against the daily AI message allowance before the model is called.
    """
    turn = ChatService.prepare_turn(user.id, body, model=llm.model)

    if stream:
        return StreamingResponse(
            ChatService.stream_events(turn, llm),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    reply = ChatService.complete(turn, llm)
    return success_response(reply, request=request)


@router.get("/chat")
def get_history(
    request: Request,
    user: CurrentUser,
    tank_id: Annotated[UUID | None, Query(description="Tank scope; omit for general chat")] = None,
    limit: Annotated[int, Query(ge=1, le=HISTORY_PAGE_MAX)] = HISTORY_PAGE_DEFAULT,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """Stored messages in chronological order."""
    history = ChatService.get_history(user.id, tank_id, limit=limit, offset=offset)
    return success_response(history, request=request)
