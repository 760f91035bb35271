# =============================================================================
# core/services/chat_service.py - AI Chat
# =============================================================================
# The assistant conversation, optionally scoped to one tank.
#
# Flow for POST /ai/chat:
#   1. prepare_turn(): tank check -> daily usage RPC -> system prompt ->
#      history -> user message stored
#   2a. complete(): one retried Messages API call -> assistant stored
#   2b. stream_events(): SSE text deltas -> assistant stored on completion
#
# History is per tank scope: messages for the given tank, or messages with
# no tank for general chat.
# =============================================================================

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator
from uuid import UUID

from app.exceptions import AIUnavailableError, DailyLimitReachedError, InternalError
from core.models.chat import ChatRequest, ChatResponse, MessageRole, TokenUsage
from core.models.tier import Tier
from core.services.tank_service import TankService
from core.services.tier_service import TierService
from core.services.usage_service import UsageService
from lib.context import build_tank_context, generate_system_prompt
from lib.llm import LLMClient, LLMError, LLMResult
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

HISTORY_PAGE_DEFAULT = 50
HISTORY_PAGE_MAX = 100


def daily_limit_message(tier: Tier) -> str:
    message = "You've reached your daily AI message limit."
    if tier != Tier.PRO:
        message += " Upgrade your plan for more messages."
    return message


def sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@dataclass
class ChatTurn:
    """Everything needed to answer one user message."""
    user_id: str
    tank_id: str | None
    system: str
    messages: list[dict[str, str]] = field(default_factory=list)


class ChatService:
    """Service for the AI chat endpoints."""

    @staticmethod
    def _scoped_messages(user_id: str, tank_id: str | None, columns: str):
        client = SupabaseClient.get_client()
        query = (
            client.table("ai_messages")
            .select(columns)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
        )
        if tank_id:
            return query.eq("tank_id", tank_id)
        return query.is_("tank_id", "null")

    @staticmethod
    def load_history(user_id: str, tank_id: str | None, limit: int) -> list[dict[str, str]]:
        """Recent user/assistant turns, oldest first, ready for the Messages API."""
        try:
            rows = (
                ChatService._scoped_messages(user_id, tank_id, "role, content, created_at")
                .limit(limit)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Chat history unavailable for {user_id}: {e}")
            return []

        return [
            {"role": row["role"], "content": row["content"]}
            for row in reversed(rows)
            if row.get("role") in (MessageRole.USER.value, MessageRole.ASSISTANT.value)
        ]

    @staticmethod
    def store_message(
        user_id: str,
        tank_id: str | None,
        role: MessageRole,
        content: str,
        model: str,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
    ) -> dict[str, Any] | None:
        """Insert an ai_messages row. Failure is logged; the chat goes on."""
        data: dict[str, Any] = {
            "user_id": user_id,
            "tank_id": tank_id,
            "role": role.value,
            "content": content,
            "model": model,
        }
        if input_tokens is not None:
            data["input_tokens"] = input_tokens
            data["output_tokens"] = output_tokens

        client = SupabaseClient.get_client()
        try:
            return first_row(client.table("ai_messages").insert(data).execute())
        except Exception as e:
            logger.error(f"Failed to store {role.value} message: {e}")
            return None

    @staticmethod
    def prepare_turn(
        user_id: UUID | str,
        request: ChatRequest,
        model: str,
        history_limit: int = HISTORY_PAGE_DEFAULT,
    ) -> ChatTurn:
        """
        Validate access and build the prompt for one message.

        Raises:
            TankNotFoundError: Tank missing, deleted or owned by someone else
            DailyLimitReachedError: Daily chat allowance used up
            InternalError: Usage check failed
        """
        user_id = normalize_uuid(user_id)
        tank_id = None
        if request.tank_id:
            tank_id = TankService.find_owned_tank(request.tank_id, user_id, columns="id, user_id")["id"]

        try:
            allowed = UsageService.check_and_increment(user_id, "chat")
        except SupabaseClientError as e:
            logger.error(f"AI usage check failed: {e.message}")
            raise InternalError("Failed to check usage limits")

        if not allowed:
            tier = TierService.get_user_tier(user_id)
            raise DailyLimitReachedError(daily_limit_message(tier))

        context = None
        skill_level = None
        try:
            if tank_id:
                context = build_tank_context(tank_id, user_id)
            else:
                profile = SupabaseClient.fetch_user_profile(user_id) or {}
                skill_level = profile.get("skill_level")
        except SupabaseClientError as e:
            logger.warning(f"Context unavailable, answering without it: {e.message}")

        history = ChatService.load_history(user_id, tank_id, history_limit)
        messages = history + [{"role": MessageRole.USER.value, "content": request.message}]

        ChatService.store_message(user_id, tank_id, MessageRole.USER, request.message, model)

        return ChatTurn(
            user_id=user_id,
            tank_id=tank_id,
            system=generate_system_prompt(context, skill_level),
            messages=messages,
        )

    @staticmethod
    def _finish(turn: ChatTurn, result: LLMResult) -> str | None:
        """Store the assistant reply and its token usage; returns the row id."""
        stored = ChatService.store_message(
            turn.user_id,
            turn.tank_id,
            MessageRole.ASSISTANT,
            result.text,
            result.model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        UsageService.record_tokens(turn.user_id, result.input_tokens, result.output_tokens)
        return (stored or {}).get("id")

    @staticmethod
    def complete(turn: ChatTurn, llm: LLMClient) -> ChatResponse:
        """
        Non-streaming reply.

        Raises:
            AIUnavailableError: When every attempt fails
        """
        try:
            result = llm.complete(turn.system, turn.messages)
        except LLMError as e:
            logger.error(f"Chat completion failed: {e.message}")
            raise AIUnavailableError()

        message_id = ChatService._finish(turn, result) or result.id
        return ChatResponse(
            id=message_id,
            content=result.text,
            usage=TokenUsage(input_tokens=result.input_tokens, output_tokens=result.output_tokens),
        )

    @staticmethod
    def stream_events(turn: ChatTurn, llm: LLMClient) -> Iterator[str]:
        """
        Server-Sent Events for one reply.

        Yields text_delta events, then done (with id and usage) or a single
        error event if the stream breaks.
        """
        stream = llm.stream(turn.system, turn.messages)
        try:
            for text in stream:
                yield sse_event({"type": "text_delta", "text": text})
        except LLMError as e:
            logger.error(f"Chat stream failed: {e.message}")
            yield sse_event({"type": "error", "message": "Stream interrupted"})
            return

        result = stream.result
        message_id = ChatService._finish(turn, result) or result.id
        yield sse_event({
            "type": "done",
            "id": message_id,
            "usage": {"input_tokens": result.input_tokens, "output_tokens": result.output_tokens},
        })

    @staticmethod
    def get_history(
        user_id: UUID | str,
        tank_id: UUID | str | None = None,
        limit: int = HISTORY_PAGE_DEFAULT,
        offset: int = 0,
    ) -> dict[str, Any]:
        """A page of stored messages in chronological order."""
        user_id = normalize_uuid(user_id)
        scoped_tank = None
        if tank_id:
            scoped_tank = TankService.find_owned_tank(tank_id, user_id, columns="id, user_id")["id"]

        limit = max(1, min(limit, HISTORY_PAGE_MAX))
        offset = max(0, offset)
        try:
            rows = (
                ChatService._scoped_messages(
                    user_id,
                    scoped_tank,
                    "id, role, content, created_at, action_type, action_executed",
                )
                .range(offset, offset + limit - 1)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Failed to fetch chat history: {e}")
            raise InternalError("Failed to fetch messages")

        return {"messages": list(reversed(rows)), "has_more": len(rows) == limit}
