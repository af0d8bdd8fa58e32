"""
Tool descriptors and the request/response contract of a tool handler.

A ``Tool`` is plain immutable data carrying its own handler function; the
registry validates a closed set of them up front, so dispatch never has to
check for optional attributes at call time.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Union

from .chat import HistoryEntry

if TYPE_CHECKING:
    from copilot_core.cancellation import CancellationToken

__all__ = [
    "CanvasItem",
    "CanvasParser",
    "CollapsibleBlockConfig",
    "DetectionResult",
    "Tool",
    "ToolHandler",
    "ToolRequest",
    "ToolResponse",
]

# Tool-specific fields plus a unique "id".
CanvasItem = dict[str, Any]
CanvasParser = Callable[[str], list[CanvasItem]]


@dataclass(frozen=True, slots=True)
class CollapsibleBlockConfig:
    """Render hint: fenced blocks of ``language`` start collapsed behind a label."""
    language: str
    hide_by_default: bool
    collapsed_label: str
    collapsed_icon: Optional[str] = None
    animate: bool = False


@dataclass(frozen=True, slots=True)
class ToolRequest:
    user_message: str
    conversation_history: tuple[HistoryEntry, ...]
    model: str
    temperature: float
    controls_state: Mapping[str, Any] = field(default_factory=dict)
    web_search_enabled: bool = False
    cancellation: Optional["CancellationToken"] = None


@dataclass(slots=True)
class ToolResponse:
    """What a handler hands back: a text stream and an optional item parser."""
    stream: AsyncIterator[Union[bytes, str]]
    parse_content: Optional[CanvasParser] = None


ToolHandler = Callable[[ToolRequest], Awaitable[ToolResponse]]


def _no_prompt(context: Optional[Mapping[str, Any]] = None) -> str:
    return ""


@dataclass(frozen=True, eq=False)
class Tool:
    id: str
    name: str
    description: str
    trigger: str
    handler: ToolHandler
    keywords: tuple[str, ...] = ()
    system_prompt: Callable[[Optional[Mapping[str, Any]]], str] = _no_prompt
    parse_canvas_items: Optional[CanvasParser] = None
    collapsible_blocks: tuple[CollapsibleBlockConfig, ...] = ()
    canvas_enabled: bool = False
    # legacy shortcut for a collapsed "json" block, see blocks.normalize_collapsible_blocks
    hide_json_blocks: bool = False
    initial_controls_state: Mapping[str, Any] = field(default_factory=dict)
    example_prompts: tuple[str, ...] = ()
    icon: Optional[str] = None

    def __post_init__(self) -> None:
        # lists/dicts are accepted for convenience but stored immutably
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "collapsible_blocks", tuple(self.collapsible_blocks))
        object.__setattr__(self, "example_prompts", tuple(self.example_prompts))
        object.__setattr__(
            self, "initial_controls_state", MappingProxyType(dict(self.initial_controls_state))
        )

    def get_system_prompt(self, context: Optional[Mapping[str, Any]] = None) -> str:
        return self.system_prompt(context)

    async def handle_submit(self, request: ToolRequest) -> ToolResponse:
        return await self.handler(request)


@dataclass(frozen=True, slots=True)
class DetectionResult:
    tool: Optional[Tool]
    confidence: float
    reason: str

    def is_specialized(self, fallback_id: str) -> bool:
        return self.tool is not None and self.tool.id != fallback_id
