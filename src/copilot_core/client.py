"""
LLM clients with unified chat(), stream() and stream_text() methods.

This is the transport tool handlers and the tool classifier use to reach a
model; the orchestration core itself only ever sees the resulting text
stream.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import (
    Any,
    AsyncGenerator,
    Optional,
    Protocol,
    Self,
    Sequence,
    Union,
)

from anthropic import AsyncAnthropic
from anthropic.types import Message
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionChunk

from copilot_core.adapters import (
    AnthropicRequestAdapter,
    GeminiRequestAdapter,
    OpenAIRequestAdapter,
)
from copilot_core.errors import CopilotError, classify_error
from copilot_core.provider import Provider, get_api_key, split_model_id
from copilot_core.response import ChatResponse

# Chat messages are plain {"role": ..., "content": ...} dicts
ChatMessage = dict[str, Any]


class RequestAdapter(Protocol):
    """Protocol for adapting between generic chat format and provider-specific format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        """Convert messages and params to the provider-specific request."""
        ...

    def from_provider(self, raw: Any) -> ChatResponse:
        """Convert provider response to unified ChatResponse."""
        ...

    def stream_text(self, raw_chunk: Any) -> ChatResponse:
        """Extract content from a streaming chunk and return as ChatResponse."""
        ...


class BaseAsyncLLM(ABC):
    """
    Abstract base class for async-first LLM wrappers.
    """

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @abstractmethod
    async def _chat_impl(
        self,
        messages: Sequence[ChatMessage],
        params: dict[str, Any],
        *,
        stream: bool,
    ) -> Union[Any, AsyncGenerator[Any, None]]:
        """
        Send the request to the provider.

        Returns:
            A raw provider response for non-streaming requests, or an async
            iterator of raw provider chunks for streaming requests.
        """
        ...

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        *,
        params: dict[str, Any] | None = None,
    ) -> ChatResponse:
        """
        Send chat request and return a single response.

        Never raises for provider failures; check ``response.is_error``.
        """
        try:
            raw = await self._chat_impl(messages, dict(params or {}), stream=False)
            return self.adapter.from_provider(raw)
        except Exception as exc:
            return self._wrap_error(exc)

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        params: dict[str, Any] | None = None,
    ) -> AsyncGenerator[ChatResponse, None]:
        """
        Send chat request and yield one ChatResponse per provider chunk.

        A failure ends the stream with a single error response.
        """
        try:
            raw_result = await self._chat_impl(messages, dict(params or {}), stream=True)
            if hasattr(raw_result, "__aiter__"):
                async for chunk in raw_result:
                    yield self.adapter.stream_text(chunk)
            else:
                yield self.adapter.from_provider(raw_result)
        except Exception as exc:
            yield self._wrap_error(exc)

    async def stream_text(
        self,
        messages: Sequence[ChatMessage],
        *,
        params: dict[str, Any] | None = None,
    ) -> AsyncGenerator[str, None]:
        """
        Yield only the non-empty text deltas of a streamed reply.

        Unlike ``stream()`` this raises ``CopilotError`` when the provider
        fails, so callers that hand the stream on can treat a failure as a
        rejected read.
        """
        async for chunk in self.stream(messages, params=params):
            if chunk.is_error:
                raise CopilotError(chunk.error or "Unknown provider error")
            if chunk.content:
                yield chunk.content

    def _wrap_error(self, exc: Exception) -> ChatResponse:
        """Wrap exception into an error response."""
        error = classify_error(exc, self.logger)
        return ChatResponse(content="", error=str(error))

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class OpenAILLM(BaseAsyncLLM):
    """
    OpenAI LLM implementation (async-only).

    Use ``OpenAILLM.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    provider_label = "OpenAI"
    default_base_url: Optional[str] = None

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url or self.default_base_url,
        )
        self._adapter = self._make_adapter()

    def _make_adapter(self) -> RequestAdapter:
        return OpenAIRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build the LLM around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"{cls.__name__}.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        self._client = client
        self._adapter = self._make_adapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(
        self,
        messages: Sequence[ChatMessage],
        params: dict[str, Any],
        *,
        stream: bool,
    ) -> Union[ChatCompletion, AsyncGenerator[ChatCompletionChunk, None]]:
        args = {
            "model": self.model,
            "stream": stream,
            **self._adapter.to_provider(messages, params),
        }
        self._log(
            f"Sending request to {self.provider_label} model {self.model} (Stream: {stream})",
            logging.DEBUG,
        )
        # with stream=True the SDK returns an AsyncStream of chunks
        return await self._client.chat.completions.create(**args)


class GeminiLLM(OpenAILLM):
    """
    Gemini LLM implementation via the OpenAI-compatible endpoint.
    """

    provider_label = "Gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"

    def _make_adapter(self) -> RequestAdapter:
        return GeminiRequestAdapter()


class AnthropicLLM(BaseAsyncLLM):
    """
    Anthropic LLM implementation (async-only).

    Use ``AnthropicLLM.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicLLM.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(
        self,
        messages: Sequence[ChatMessage],
        params: dict[str, Any],
        *,
        stream: bool,
    ) -> Union[Message, AsyncGenerator[Any, None]]:
        args = {"model": self.model, **self._adapter.to_provider(messages, params)}

        self._log(
            f"Sending request to Anthropic model {self.model} (Stream: {stream})",
            logging.DEBUG,
        )

        if stream:
            return self._anthropic_stream(args)
        response: Message = await self._client.messages.create(**args)
        return response

    async def _anthropic_stream(
        self, args: dict[str, Any]
    ) -> AsyncGenerator[Any, None]:
        """Handle Anthropic-specific streaming with context manager."""
        async with self._client.messages.stream(**args) as stream:
            async for event in stream:
                yield event


# Factory for creating LLM instances

_LLM_REGISTRY: dict[Provider, type[BaseAsyncLLM]] = {
    Provider.OPENAI: OpenAILLM,
    Provider.ANTHROPIC: AnthropicLLM,
    Provider.GEMINI: GeminiLLM,
}


def create_llm(
    provider: Provider,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: Any,
) -> BaseAsyncLLM:
    """
    Factory for creating any supported LLM.

    Args:
        provider: Which provider to use (OPENAI, ANTHROPIC, GEMINI).
        model: Bare model name (e.g. "gemini-2.5-flash").
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured client instance to use.
            - For Provider.OPENAI and Provider.GEMINI: an AsyncOpenAI instance
            - For Provider.ANTHROPIC: an AsyncAnthropic instance
        logger: Optional custom logger.
        **provider_kwargs: Any extra args to pass through (timeout, max_retries).
    """
    try:
        llm_cls = _LLM_REGISTRY[provider]
    except KeyError as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:  # use caller-supplied client verbatim
        return llm_cls.from_client(model, client, logger=logger)  # type: ignore[attr-defined]

    key = api_key or get_api_key(provider)
    return llm_cls(model=model, api_key=key, logger=logger, **provider_kwargs)  # type: ignore[call-arg]


def create_llm_for_model(model_id: str, **kwargs: Any) -> BaseAsyncLLM:
    """Create an LLM from a namespaced model id such as ``"openai/gpt-5-mini"``."""
    provider, model = split_model_id(model_id)
    return create_llm(provider, model, **kwargs)
