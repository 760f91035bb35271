# =============================================================================
# lib/llm.py - Anthropic Messages API Wrapper
# =============================================================================
# Thin wrapper around the anthropic SDK used by every AI feature:
# - complete(): one request with retry + exponential backoff
# - stream(): token-by-token text for the SSE chat relay
# - complete_json(): request a JSON object and parse it (fenced or bare)
#
# Retry policy: AI_MAX_RETRIES attempts (default 3), sleeping 2**attempt
# seconds between attempts (1s, 2s). Only the LLM call is retried.
#
# Usage:
#   llm = LLMClient()
#   result = llm.complete(system="You are...", messages=[{"role": "user", ...}])
#   print(result.text, result.input_tokens)
# =============================================================================

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import anthropic

from app.config import settings
from lib.utils import ApplicationError, estimate_tokens

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_BARE_JSON = re.compile(r"\{.*\}", re.DOTALL)
_FENCED_ARRAY = re.compile(r"```(?:json)?\s*(\[.*?\])\s*```", re.DOTALL)
_BARE_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


class LLMError(ApplicationError):
    """Error talking to the LLM provider or parsing its output."""

    def __init__(
        self,
        message: str,
        code: str = "LLM_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


@dataclass
class LLMResult:
    """Text and token accounting for one completed request."""
    id: str
    text: str
    input_tokens: int
    output_tokens: int
    model: str


def _text_from_content(content: Any) -> str:
    """Join the text blocks of a Messages API response with newlines."""
    parts = [
        block.text
        for block in (content or [])
        if getattr(block, "type", None) == "text"
    ]
    return "\n".join(parts)


def _message_text(content: Any) -> str:
    """Text of a message whose content is a string or a list of blocks."""
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "")
        for block in (content or [])
        if isinstance(block, dict) and block.get("type") == "text"
    )


def _prompt_text(system: str, messages: list[dict[str, Any]]) -> str:
    return system + "".join(_message_text(m.get("content")) for m in messages)


def _result_from_message(
    message: Any,
    model: str,
    system: str,
    messages: list[dict[str, Any]],
    text: str | None = None,
) -> LLMResult:
    """
    Build an LLMResult, estimating tokens when the response omits usage.
    """
    text = _text_from_content(getattr(message, "content", None)) if text is None else text
    usage = getattr(message, "usage", None)

    input_tokens = getattr(usage, "input_tokens", None) if usage else None
    output_tokens = getattr(usage, "output_tokens", None) if usage else None

    return LLMResult(
        id=getattr(message, "id", None) or "",
        text=text,
        input_tokens=input_tokens if input_tokens is not None else estimate_tokens(_prompt_text(system, messages)),
        output_tokens=output_tokens if output_tokens is not None else estimate_tokens(text),
        model=model,
    )


def _json_candidates(text: str, fenced_pattern: re.Pattern, bare_pattern: re.Pattern) -> list[str]:
    candidates = []
    fenced = fenced_pattern.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    candidates.append(text.strip())
    bare = bare_pattern.search(text)
    if bare:
        candidates.append(bare.group(0))
    return candidates


def _parse_first(candidates: list[str], kind: type) -> Any:
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, kind):
            return data
    return None


def extract_json(text: str) -> dict[str, Any]:
    """
    Pull a JSON object out of model output.

    Accepts a ```json fenced block, a bare object, or an object embedded
    in surrounding prose.

    Raises:
        LLMError: If no object can be parsed
    """
    data = _parse_first(_json_candidates(text, _FENCED_JSON, _BARE_JSON), dict)
    if data is not None:
        return data

    raise LLMError(
        message="Model response did not contain a JSON object",
        code="JSON_PARSE_ERROR",
        suggestion="Retry the request; the model occasionally answers in prose.",
        details={"raw_response": text[:500]},
    )


def extract_json_array(text: str) -> list[Any]:
    """
    Same as extract_json() but for a top-level JSON array.

    Raises:
        LLMError: If no array can be parsed
    """
    data = _parse_first(_json_candidates(text, _FENCED_ARRAY, _BARE_ARRAY), list)
    if data is not None:
        return data

    raise LLMError(
        message="Model response did not contain a JSON array",
        code="JSON_PARSE_ERROR",
        suggestion="Retry the request; the model occasionally answers in prose.",
        details={"raw_response": text[:500]},
    )


class LLMStream:
    """
    Iterator over streamed text deltas.

    After iteration finishes, `result` holds the final LLMResult.

    Example:
        stream = llm.stream(system, messages)
        for chunk in stream:
            send(chunk)
        save(stream.result.text, stream.result.output_tokens)
    """

    def __init__(self, client: LLMClient, system: str, messages: list[dict[str, str]], max_tokens: int):
        self._client = client
        self._system = system
        self._messages = messages
        self._max_tokens = max_tokens
        self.result: LLMResult | None = None

    def __iter__(self) -> Iterator[str]:
        chunks: list[str] = []
        try:
            with self._client.sdk.messages.stream(
                model=self._client.model,
                max_tokens=self._max_tokens,
                system=self._system,
                messages=self._messages,
            ) as stream:
                for text in stream.text_stream:
                    chunks.append(text)
                    yield text
                final = stream.get_final_message()
        except anthropic.APIError as e:
            raise LLMError(
                message=f"Anthropic stream failed: {e}",
                code="STREAM_FAILED",
                details={"model": self._client.model},
            )

        self.result = _result_from_message(
            final,
            self._client.model,
            self._system,
            self._messages,
            text="".join(chunks),
        )


class LLMClient:
    """
    Anthropic client with retry.

    Attributes:
        model: Model ID (default: settings.ANTHROPIC_MODEL_SONNET)
        max_retries: Attempts before giving up (default: settings.AI_MAX_RETRIES)
    """

    _sdk: anthropic.Anthropic | None = None

    def __init__(
        self,
        model: str | None = None,
        max_retries: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.model = model or settings.ANTHROPIC_MODEL_SONNET
        self.max_retries = max_retries or settings.AI_MAX_RETRIES
        self._sleep = sleep

    @property
    def sdk(self) -> anthropic.Anthropic:
        """Shared SDK client (created on first use)."""
        if LLMClient._sdk is None:
            if not settings.ai_enabled:
                raise LLMError(
                    message="ANTHROPIC_API_KEY is not configured",
                    code="NOT_CONFIGURED",
                    suggestion="Set ANTHROPIC_API_KEY in your .env file",
                )
            # The SDK's own retries are disabled; complete() owns the policy
            LLMClient._sdk = anthropic.Anthropic(
                api_key=settings.ANTHROPIC_API_KEY,
                max_retries=0,
            )
        return LLMClient._sdk

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def complete(
        self,
        system: str,
        messages: list[dict[str, Any]],
        max_tokens: int | None = None,
    ) -> LLMResult:
        """
        Send one Messages API request, retrying on failure.

        Args:
            system: System prompt
            messages: [{"role": "user"|"assistant", "content": str | blocks}, ...]
            max_tokens: Output cap (default: settings.CHAT_MAX_TOKENS)

        Returns:
            LLMResult with joined text blocks and token counts

        Raises:
            LLMError: When every attempt fails
        """
        max_tokens = max_tokens or settings.CHAT_MAX_TOKENS
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                response = self.sdk.messages.create(
                    model=self.model,
                    max_tokens=max_tokens,
                    system=system,
                    messages=messages,
                )
                return _result_from_message(response, self.model, system, messages)
            except LLMError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"Anthropic attempt {attempt + 1}/{self.max_retries} failed: {e}")
                if attempt < self.max_retries - 1:
                    self._sleep(2 ** attempt)

        logger.error(f"All Anthropic attempts failed: {last_error}")
        raise LLMError(
            message=f"Anthropic API call failed after {self.max_retries} attempts: {last_error}",
            code="LLM_UNAVAILABLE",
            suggestion="Check ANTHROPIC_API_KEY and the provider status page",
            details={"model": self.model},
        )

    def stream(
        self,
        system: str,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
    ) -> LLMStream:
        """Start a streaming request (not retried once text has been sent)."""
        return LLMStream(self, system, messages, max_tokens or settings.CHAT_MAX_TOKENS)

    def complete_json(
        self,
        system: str,
        prompt: str,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """
        Ask for a JSON object and parse it.

        Raises:
            LLMError: On API failure or unparseable output
        """
        result = self.complete(
            system=system,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
        )
        return extract_json(result.text)
