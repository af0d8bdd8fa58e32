"""
Built-in copilot tools and the LLM-backed handler they share.

Each handler streams a model reply through the package's LLM client; the
intent and agent tools additionally parse the finished reply into canvas
items.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Protocol, Sequence

from copilot_core.canvas import parse_agents, parse_intents
from copilot_core.client import BaseAsyncLLM, create_llm_for_model
from copilot_core.prompts import (
    SearchResult,
    agents_system_prompt,
    general_system_prompt,
    intents_system_prompt,
    web_search_context,
    web_search_failed_note,
)
from copilot_core.registry import ToolRegistry
from copilot_core.types import CanvasParser, CollapsibleBlockConfig, Tool, ToolRequest, ToolResponse

__all__ = ["LLMToolHandler", "WebSearch", "build_default_registry"]

LLMFactory = Callable[[str], BaseAsyncLLM]


class WebSearch(Protocol):
    async def search(self, query: str, num: int = 10) -> Sequence[SearchResult]:
        ...


class LLMToolHandler:
    """
    Tool handler that streams a model reply.

    Args:
        system_prompt: Builds the system prompt from the tool's controls state.
        llm_factory: Creates an LLM client for a namespaced model id.
        web_search: Optional search backend used when a request enables web search.
        parse_content: Canvas parser attached to every response.
    """

    def __init__(
        self,
        system_prompt: Callable[[Optional[Mapping[str, Any]]], str],
        *,
        llm_factory: LLMFactory = create_llm_for_model,
        web_search: Optional[WebSearch] = None,
        parse_content: Optional[CanvasParser] = None,
        search_results: int = 10,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.system_prompt = system_prompt
        self.llm_factory = llm_factory
        self.web_search = web_search
        self.parse_content = parse_content
        self.search_results = search_results
        self.logger = logger or logging.getLogger(__name__)

    async def __call__(self, request: ToolRequest) -> ToolResponse:
        system_prompt = self.system_prompt(request.controls_state)
        user_message = request.user_message

        if request.web_search_enabled and self.web_search is not None:
            try:
                results = await self.web_search.search(user_message, self.search_results)
            except Exception as exc:
                self.logger.warning(f"Web search failed: {exc}")
                system_prompt += web_search_failed_note(str(exc))
            else:
                system_prompt += web_search_context(user_message, results)
                user_message = (
                    f"Based on the web search results provided, please answer: {user_message}"
                )

        messages = [
            {"role": "system", "content": system_prompt},
            *request.conversation_history,
            {"role": "user", "content": user_message},
        ]
        return ToolResponse(
            stream=self._stream(request.model, messages, request.temperature),
            parse_content=self.parse_content,
        )

    async def _stream(
        self, model: str, messages: list[dict[str, Any]], temperature: float
    ) -> AsyncIterator[str]:
        # the client is only built once the stream is read
        llm = self.llm_factory(model)
        try:
            async for text in llm.stream_text(messages, params={"temperature": temperature}):
                yield text
        finally:
            await llm.aclose()


INTENT_CONTROLS: Mapping[str, Any] = {
    "language": "en",
    "avgCount": 4,
    "forceOptions": False,
    "includeInHistory": False,
    "contextVariables": [],
}

AGENT_CONTROLS: Mapping[str, Any] = {"language": "en"}


def build_default_registry(
    *,
    llm_factory: LLMFactory = create_llm_for_model,
    web_search: Optional[WebSearch] = None,
) -> ToolRegistry:
    """The general assistant plus the intent and agent generators."""
    specialized: list[Tool] = []

    def general_prompt(_context: Optional[Mapping[str, Any]] = None) -> str:
        return general_system_prompt(specialized)

    general = Tool(
        id="general",
        name="General Assistant",
        description="General help with the admin console",
        trigger="/copilot",
        icon="sparkles",
        handler=LLMToolHandler(general_prompt, llm_factory=llm_factory, web_search=web_search),
        system_prompt=general_prompt,
        keywords=(
            "help", "how to", "what is", "explain", "guide", "navigate", "dashboard",
            "user", "portal", "monster", "skill", "what can you do", "available tools",
            "tools list",
        ),
    )

    intents = Tool(
        id="intents",
        name="Intents Creator",
        description="Create conversation intents for chatbots",
        trigger="/intents",
        icon="bot",
        canvas_enabled=True,
        handler=LLMToolHandler(
            intents_system_prompt,
            llm_factory=llm_factory,
            web_search=web_search,
            parse_content=parse_intents,
        ),
        system_prompt=intents_system_prompt,
        parse_canvas_items=parse_intents,
        keywords=(
            "intent", "intents", "create intent", "generate intent", "new intent",
            "intent for", "conversation intent", "chatbot intent", "bot intent",
            "training data",
        ),
        initial_controls_state=INTENT_CONTROLS,
        collapsible_blocks=(
            CollapsibleBlockConfig(
                language="json",
                hide_by_default=True,
                collapsed_label="Generating intent...",
                collapsed_icon="sparkles",
                animate=True,
            ),
        ),
        example_prompts=(
            "Create greeting intents",
            "Generate help intents",
            "Make intents for product inquiries",
        ),
    )

    agents = Tool(
        id="agents",
        name="Agents Creator",
        description="Create conversational AI agents with personality and backstory",
        trigger="/agents",
        icon="user",
        canvas_enabled=True,
        handler=LLMToolHandler(
            agents_system_prompt,
            llm_factory=llm_factory,
            web_search=web_search,
            parse_content=parse_agents,
        ),
        system_prompt=agents_system_prompt,
        parse_canvas_items=parse_agents,
        keywords=(
            "agent", "agents", "create agent", "generate agent", "new agent",
            "chatbot agent", "conversational agent", "ai agent", "virtual agent",
            "assistant",
        ),
        initial_controls_state=AGENT_CONTROLS,
        collapsible_blocks=(
            CollapsibleBlockConfig(
                language="json",
                hide_by_default=True,
                collapsed_label="Generating agent...",
                collapsed_icon="user",
                animate=True,
            ),
        ),
        example_prompts=(
            "Create a customer support agent",
            "Generate a sales assistant agent",
            "Make a technical support agent",
        ),
    )

    specialized.extend([intents, agents])
    return ToolRegistry([general, intents, agents], fallback_id="general")
