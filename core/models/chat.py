# =============================================================================
# core/models/chat.py - AI Chat Schemas
# =============================================================================
# These models define the API contract for the AI assistant:
# - ChatRequest: user sends a message, optionally scoped to a tank
# - ChatResponse: the assistant's reply plus token usage
# - ChatMessage: one stored row of the ai_messages table
#
# Flow:
# 1. POST /ai/chat -> daily limit checked -> user message stored
# 2. LLM called with tank context + recent history
# 3. Assistant message stored -> token usage recorded -> ChatResponse
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """
    Who sent the message.

    Only user and assistant rows are replayed to the LLM as history.
    """
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatRequest(BaseModel):
    """
    Schema for sending a chat message.

    Example:
        {
            "message": "My nitrates are creeping up, what should I do?",
            "tank_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """

    message: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="The user's question or request"
    )

    # Scopes history and context to one tank; None means general chat
    tank_id: UUID | None = Field(
        default=None,
        description="Tank the conversation is about"
    )


class TokenUsage(BaseModel):
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)


class ChatResponse(BaseModel):
    """
    The assistant's reply.

    Example:
        {
            "id": "7c9e6679-...",
            "role": "assistant",
            "content": "Your nitrate is 40 ppm ...",
            "usage": {"input_tokens": 1830, "output_tokens": 212}
        }
    """
    id: str
    role: MessageRole = MessageRole.ASSISTANT
    content: str
    usage: TokenUsage


class ChatMessage(BaseModel):
    """One row of the ai_messages table."""
    id: str | None = None
    user_id: str | None = None
    tank_id: str | None = None
    role: MessageRole
    content: str
    model: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    created_at: datetime | None = None
