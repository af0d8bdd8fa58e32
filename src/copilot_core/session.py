"""
Explicit copilot state container and the session that wires it to an
orchestrator, a tool registry and tool detection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from copilot_core.config import (
    AUTO_DETECT_MIN_LENGTH,
    DEFAULT_MODEL,
    IDLE_GRACE_DELAY,
    KEYWORD_CONFIDENCE_THRESHOLD,
)
from copilot_core.detector import ToolDetector
from copilot_core.orchestrator import StreamingChatOrchestrator
from copilot_core.registry import ToolRegistry
from copilot_core.types import CanvasItem, ChatMessage, ChatStatus, DetectionResult, Tool

__all__ = ["CopilotSession", "CopilotState"]


@dataclass
class CopilotState:
    """Mutable UI-facing state. Only a subset survives persistence."""

    is_open: bool = False
    is_fullscreen: bool = False
    is_canvas_open: bool = False
    canvas_items: list[CanvasItem] = field(default_factory=list)
    selected_tool_id: str = "general"
    controls_state: dict[str, Any] = field(default_factory=dict)
    web_search_enabled: bool = False
    selected_model: str = ""
    input_text: str = ""

    def add_canvas_item(self, item: CanvasItem) -> None:
        self.canvas_items.append(item)

    def clear_canvas_items(self) -> None:
        self.canvas_items.clear()
        self.is_canvas_open = False

    def toggle_open(self) -> None:
        self.is_open = not self.is_open

    def toggle_fullscreen(self) -> None:
        self.is_fullscreen = not self.is_fullscreen

    def toggle_canvas(self) -> None:
        self.is_canvas_open = not self.is_canvas_open

    def toggle_web_search(self) -> None:
        self.web_search_enabled = not self.web_search_enabled

    def reset(self) -> None:
        fresh = CopilotState()
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(fresh, name))

    def to_persisted(self) -> dict[str, Any]:
        return {
            "selectedToolId": self.selected_tool_id,
            "controlsState": dict(self.controls_state),
            "webSearchEnabled": self.web_search_enabled,
            "selectedModel": self.selected_model,
            "isFullscreen": self.is_fullscreen,
        }

    @classmethod
    def from_persisted(cls, data: Optional[Mapping[str, Any]]) -> "CopilotState":
        """Hydrate from ``to_persisted`` output; unknown keys are ignored."""
        data = data or {}
        return cls(
            selected_tool_id=str(data.get("selectedToolId") or "general"),
            controls_state=dict(data.get("controlsState") or {}),
            web_search_enabled=bool(data.get("webSearchEnabled", False)),
            selected_model=str(data.get("selectedModel") or ""),
            is_fullscreen=bool(data.get("isFullscreen", False)),
        )


class CopilotSession:
    """
    One copilot conversation bound to a state container.

    Args:
        registry: The available tools.
        state: Shared state, updated in place.
        detector: Used to auto-switch away from the general tool. Without
            one, messages are always sent to the selected tool.
        default_model: Model used while ``state.selected_model`` is empty.
        switch_threshold: Detection confidence above which the session
            switches to a specialized tool.
        idle_delay: Passed to the orchestrator.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        state: Optional[CopilotState] = None,
        *,
        detector: Optional[ToolDetector] = None,
        default_model: str = DEFAULT_MODEL,
        switch_threshold: float = KEYWORD_CONFIDENCE_THRESHOLD,
        idle_delay: float = IDLE_GRACE_DELAY,
        on_tool_switched: Optional[Callable[[Tool, DetectionResult], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry
        self.state = state if state is not None else CopilotState()
        self.detector = detector
        self.default_model = default_model
        self.switch_threshold = switch_threshold
        self.on_tool_switched = on_tool_switched
        self.logger = logger or logging.getLogger(__name__)

        tool = self._resolve(self.state.selected_tool_id)
        self.state.selected_tool_id = tool.id
        self.orchestrator = StreamingChatOrchestrator(
            tool,
            model=self.model,
            controls_state=self.state.controls_state,
            web_search_enabled=self.state.web_search_enabled,
            on_item_generated=self._on_item_generated,
            idle_delay=idle_delay,
            logger=self.logger,
        )

    def _resolve(self, tool_id: str) -> Tool:
        tool = self.registry.get(tool_id)
        if tool is not None:
            return tool
        fallback = self.registry.fallback
        return fallback if fallback is not None else next(iter(self.registry))

    @property
    def model(self) -> str:
        return self.state.selected_model or self.default_model

    @property
    def active_tool(self) -> Tool:
        return self.orchestrator.tool

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self.orchestrator.messages

    @property
    def status(self) -> ChatStatus:
        return self.orchestrator.status

    def select_tool(self, tool_id: str) -> Tool:
        tool = self.registry.require(tool_id)
        self.state.selected_tool_id = tool.id
        self.state.controls_state = dict(tool.initial_controls_state)
        if not tool.canvas_enabled:
            self.state.clear_canvas_items()
        self.orchestrator.update_options(controls_state=self.state.controls_state)
        self.orchestrator.set_tool(tool)
        return tool

    def select_by_trigger(self, text: str) -> Optional[Tool]:
        """Switch tools when ``text`` is exactly a registered trigger."""
        tool = self.registry.by_trigger(text)
        if tool is None:
            return None
        self.state.input_text = ""
        return self.select_tool(tool.id)

    def set_controls_state(self, controls_state: Mapping[str, Any]) -> None:
        self.state.controls_state = dict(controls_state)
        self.orchestrator.update_options(controls_state=self.state.controls_state)

    def set_model(self, model: str) -> None:
        self.state.selected_model = model
        self.orchestrator.update_options(model=self.model)

    def set_web_search(self, enabled: bool) -> None:
        self.state.web_search_enabled = enabled
        self.orchestrator.update_options(web_search_enabled=enabled)

    async def detect(self, text: str) -> Optional[DetectionResult]:
        """Detection result when auto-switching applies to ``text``."""
        if self.detector is None or self.orchestrator.busy:
            return None
        if self.active_tool.id != self.registry.fallback_id:
            return None
        if len(text) <= AUTO_DETECT_MIN_LENGTH:
            return None
        return await self.detector.detect(text, self.registry, self.model)

    async def submit(self, text: str) -> None:
        detection = await self.detect(text)
        if (
            detection is not None
            and detection.is_specialized(self.registry.fallback_id or "")
            and detection.confidence > self.switch_threshold
        ):
            tool = self.select_tool(detection.tool.id)
            self.logger.info(f"Switched to {tool.name} ({detection.reason})")
            if self.on_tool_switched is not None:
                self.on_tool_switched(tool, detection)

        self.state.input_text = ""
        await self.orchestrator.submit(text)

    def stop(self) -> None:
        self.orchestrator.stop()

    def _on_item_generated(self, item: CanvasItem) -> None:
        self.state.add_canvas_item(item)
        if self.active_tool.canvas_enabled and not self.state.is_canvas_open:
            self.state.is_canvas_open = True
            self.state.is_fullscreen = True
