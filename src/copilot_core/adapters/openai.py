"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Sequence

from openai.types.chat import ChatCompletion, ChatCompletionChunk

from copilot_core.response import ChatResponse

# Request params the copilot forwards; anything else is dropped.
_PASSTHROUGH = ("temperature", "max_tokens", "top_p", "stop", "seed", "user")


class OpenAIRequestAdapter:
    """Adapter for converting between role/content messages and OpenAI format."""

    def to_provider(
        self, messages: Sequence[dict[str, Any]], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert messages and params to OpenAI request kwargs."""
        openai_messages = [
            {"role": msg["role"], "content": msg.get("content") or ""}
            for msg in messages
        ]

        request: dict[str, Any] = {"messages": openai_messages}
        for key in _PASSTHROUGH:
            if params.get(key) is not None:
                request[key] = params[key]

        # Provider-specific extras pass through unchanged
        for k, v in (params.get("extra") or {}).items():
            request.setdefault(k, v)

        return request

    def from_provider(self, raw: ChatCompletion) -> ChatResponse:
        """Convert OpenAI response to unified ChatResponse."""
        content = ""
        finish_reason = None
        if raw.choices and raw.choices[0].message:
            content = raw.choices[0].message.content or ""
            finish_reason = raw.choices[0].finish_reason
        return ChatResponse(content=content, raw=raw, finish_reason=finish_reason)

    def stream_text(self, raw_chunk: ChatCompletionChunk) -> ChatResponse:
        """Extract the text delta from a streaming chunk."""
        content = ""
        finish_reason = None
        if raw_chunk.choices:
            choice = raw_chunk.choices[0]
            if choice.delta:
                content = choice.delta.content or ""
            finish_reason = choice.finish_reason
        return ChatResponse(content=content, raw=raw_chunk, finish_reason=finish_reason)
