"""
Drives one conversational turn against the active tool and publishes
immutable transcript snapshots to observers.
"""
from __future__ import annotations

import asyncio
import codecs
import logging
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Union

from copilot_core.blocks import normalize_collapsible_blocks
from copilot_core.cancellation import CancellationToken
from copilot_core.config import DEFAULT_TEMPERATURE, IDLE_GRACE_DELAY
from copilot_core.errors import TurnCancelled, describe_error
from copilot_core.history import project_history
from copilot_core.types import (
    CanvasItem,
    CanvasParser,
    ChatMessage,
    ChatStatus,
    CollapsibleBlockConfig,
    Tool,
    ToolRequest,
)

__all__ = ["StreamingChatOrchestrator", "create_welcome_message"]

Listener = Callable[[tuple[ChatMessage, ...], ChatStatus], None]

_BUSY = (ChatStatus.SUBMITTED, ChatStatus.STREAMING)
_FINISHED = (ChatStatus.COMPLETED, ChatStatus.ERROR)
_END = object()


def create_welcome_message(tool: Tool) -> ChatMessage:
    """Markdown greeting that opens every conversation with ``tool``."""
    canvas = "✨ **Generated content will appear in the canvas panel.**\n\n" if tool.canvas_enabled else ""
    examples = ""
    if tool.example_prompts:
        examples = "\n**Examples:**\n" + "\n".join(f"- {p}" for p in tool.example_prompts)
    content = (
        f"# Welcome to {tool.name}! 👋\n\n"
        f"{tool.description}\n\n"
        f"{canvas}{examples}\n\n"
        "💬 **How can I assist you today?**"
    )
    return ChatMessage.create("assistant", tool.name, content)


async def _next_chunk(stream: AsyncIterator[Union[bytes, str]]) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _END


class StreamingChatOrchestrator:
    """
    Single-conversation turn driver.

    At most one turn is in flight: ``submit`` while ``submitted`` or
    ``streaming`` is silently ignored. Observers receive a fresh tuple of
    frozen messages after every change.

    Args:
        tool: The active tool.
        model: Namespaced model id handed to the tool.
        controls_state: Opaque per-tool options, passed through unchanged.
        web_search_enabled: Passed through unchanged.
        temperature: Sampling temperature for every turn.
        on_item_generated: Canvas sink, called once per parsed item after a
            turn completes.
        idle_delay: Seconds a finished turn stays ``completed``/``error``.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        tool: Tool,
        *,
        model: str,
        controls_state: Optional[Mapping[str, Any]] = None,
        web_search_enabled: bool = False,
        temperature: float = DEFAULT_TEMPERATURE,
        on_item_generated: Optional[Callable[[CanvasItem], None]] = None,
        idle_delay: float = IDLE_GRACE_DELAY,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self._tool = tool
        self.model = model
        self.controls_state: Mapping[str, Any] = dict(controls_state or {})
        self.web_search_enabled = web_search_enabled
        self.temperature = temperature
        self.on_item_generated = on_item_generated
        self.idle_delay = idle_delay
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

        self._messages: tuple[ChatMessage, ...] = (create_welcome_message(tool),)
        self._status = ChatStatus.IDLE
        self._listeners: list[Listener] = []
        self._token: Optional[CancellationToken] = None
        self._idle_handle: Optional[asyncio.TimerHandle] = None
        self._turn = 0

    # --- observation -------------------------------------------------------
    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._messages

    @property
    def status(self) -> ChatStatus:
        return self._status

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def busy(self) -> bool:
        return self._status in _BUSY

    @property
    def collapsible_blocks(self) -> tuple[CollapsibleBlockConfig, ...]:
        return normalize_collapsible_blocks(
            self._tool.collapsible_blocks, self._tool.hide_json_blocks
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot, status = self._messages, self._status
        for listener in list(self._listeners):
            listener(snapshot, status)

    def _set_status(self, status: ChatStatus) -> None:
        if status is self._status:
            return
        self._status = status
        self._publish()

    def _update_message(self, key: str, content: str) -> None:
        self._messages = tuple(
            m.with_content(content) if m.key == key else m for m in self._messages
        )
        self._publish()

    # --- configuration -----------------------------------------------------
    def update_options(
        self,
        *,
        model: Optional[str] = None,
        controls_state: Optional[Mapping[str, Any]] = None,
        web_search_enabled: Optional[bool] = None,
    ) -> None:
        """Applies to the next turn; a turn in flight keeps its own request."""
        if model is not None:
            self.model = model
        if controls_state is not None:
            self.controls_state = dict(controls_state)
        if web_search_enabled is not None:
            self.web_search_enabled = web_search_enabled

    def set_tool(self, tool: Tool) -> None:
        self.stop()
        self._tool = tool
        self.reset()

    def reset(self) -> None:
        self._cancel_idle()
        self._messages = (create_welcome_message(self._tool),)
        self._publish()

    # --- turn lifecycle ----------------------------------------------------
    def stop(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._cancel_idle()
        if self._status is not ChatStatus.IDLE:
            self._log("Turn stopped by user", logging.DEBUG)
            self._set_status(ChatStatus.IDLE)

    async def submit(self, text: str) -> None:
        """Run one turn to completion, error or cancellation."""
        if self.busy:
            self._log("Submit ignored, a turn is already in flight", logging.DEBUG)
            return
        self._cancel_idle()

        history = tuple(project_history(self._messages))
        user_message = ChatMessage.create("user", "You", text)
        placeholder = ChatMessage.create("assistant", self._tool.name)
        self._messages = self._messages + (user_message, placeholder)

        self._turn += 1
        turn = self._turn
        token = CancellationToken()
        self._token = token
        tool = self._tool
        self._status = ChatStatus.SUBMITTED
        self._publish()

        request = ToolRequest(
            user_message=text,
            conversation_history=history,
            model=self.model,
            temperature=self.temperature,
            controls_state=self.controls_state,
            web_search_enabled=self.web_search_enabled,
            cancellation=token,
        )

        try:
            content, parser = await self._run_turn(tool, request, placeholder.key, token)
        except TurnCancelled:
            return
        except asyncio.CancelledError:
            if self._turn == turn and self.busy:
                self._log("Turn task cancelled", logging.DEBUG)
                self._set_status(ChatStatus.IDLE)
            raise
        except Exception as exc:
            self._log(f"Turn failed: {exc}", logging.ERROR)
            self._status = ChatStatus.ERROR
            self._update_message(
                placeholder.key, f"Sorry, an error occurred: {describe_error(exc)}"
            )
        else:
            self._set_status(ChatStatus.COMPLETED)
            self._emit_canvas_items(tool, content, parser)
        finally:
            if self._token is token:
                self._token = None

        if self._turn == turn and self._status in _FINISHED:
            self._idle_handle = asyncio.get_running_loop().call_later(
                self.idle_delay, self._return_to_idle, turn
            )

    async def _run_turn(
        self,
        tool: Tool,
        request: ToolRequest,
        key: str,
        token: CancellationToken,
    ) -> tuple[str, Optional[CanvasParser]]:
        response = await token.guard(tool.handle_submit(request))
        self._set_status(ChatStatus.STREAMING)

        decoder = codecs.getincrementaldecoder("utf-8")()
        content = ""
        try:
            while True:
                chunk = await token.guard(_next_chunk(response.stream))
                if chunk is _END:
                    break
                text = decoder.decode(chunk) if isinstance(chunk, (bytes, bytearray)) else chunk
                if text:
                    content += text
                    self._update_message(key, content)
        finally:
            aclose = getattr(response.stream, "aclose", None)
            if aclose is not None:
                await aclose()

        tail = decoder.decode(b"", final=True)
        if tail:
            content += tail
            self._update_message(key, content)
        return content, response.parse_content or tool.parse_canvas_items

    def _emit_canvas_items(
        self, tool: Tool, content: str, parser: Optional[CanvasParser]
    ) -> None:
        if parser is None or self.on_item_generated is None:
            return
        try:
            items = parser(content)
            self._log(f"Extracted {len(items)} canvas item(s) from {tool.id!r}", logging.DEBUG)
            for item in items:
                self.on_item_generated(item)
        except Exception as exc:
            self._log(f"Canvas extraction failed for {tool.id!r}: {exc}", logging.ERROR)

    def _return_to_idle(self, turn: int) -> None:
        self._idle_handle = None
        if self._turn == turn and self._status in _FINISHED:
            self._set_status(ChatStatus.IDLE)

    def _cancel_idle(self) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
            self._idle_handle = None

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")
