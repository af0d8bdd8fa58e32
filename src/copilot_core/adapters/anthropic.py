"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Sequence

from anthropic.types import Message

from copilot_core.response import ChatResponse

# Anthropic requires max_tokens on every request
_DEFAULT_MAX_TOKENS = 4096


class AnthropicRequestAdapter:
    """Adapter for converting between role/content messages and Anthropic format."""

    def to_provider(
        self, messages: Sequence[dict[str, Any]], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert messages and params to Anthropic request kwargs."""
        anthropic_messages: list[dict[str, Any]] = []
        system_parts: list[str] = []

        for msg in messages:
            content = msg.get("content") or ""
            # System prompts travel outside the message list
            if msg["role"] == "system":
                system_parts.append(str(content))
                continue
            anthropic_messages.append({"role": msg["role"], "content": content})

        request: dict[str, Any] = {
            "messages": anthropic_messages,
            "max_tokens": params.get("max_tokens") or _DEFAULT_MAX_TOKENS,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)

        for key in ("temperature", "top_p"):
            if params.get(key) is not None:
                request[key] = params[key]

        if params.get("stop"):
            stop = params["stop"]
            request["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        for k, v in (params.get("extra") or {}).items():
            request.setdefault(k, v)

        return request

    def from_provider(self, raw: Message) -> ChatResponse:
        """Convert Anthropic response to unified ChatResponse."""
        text_parts = [block.text for block in raw.content or [] if block.type == "text"]
        return ChatResponse(
            content="".join(text_parts), raw=raw, finish_reason=raw.stop_reason
        )

    def stream_text(self, raw_chunk: Any) -> ChatResponse:
        """Extract content from an Anthropic streaming event."""
        content = ""

        # the SDK helper repeats each delta as a "text" event; read raw deltas only
        if getattr(raw_chunk, "type", None) == "content_block_delta":
            delta = getattr(raw_chunk, "delta", None)
            if getattr(delta, "type", None) == "text_delta":
                content = delta.text

        return ChatResponse(content=content, raw=raw_chunk)
