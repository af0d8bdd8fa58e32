from .chat import ChatMessage, ChatStatus, HistoryEntry, MessageVersion, Sender, new_id
from .tool import (
    CanvasItem,
    CanvasParser,
    CollapsibleBlockConfig,
    DetectionResult,
    Tool,
    ToolHandler,
    ToolRequest,
    ToolResponse,
)

__all__ = [
    "CanvasItem",
    "CanvasParser",
    "ChatMessage",
    "ChatStatus",
    "CollapsibleBlockConfig",
    "DetectionResult",
    "HistoryEntry",
    "MessageVersion",
    "Sender",
    "Tool",
    "ToolHandler",
    "ToolRequest",
    "ToolResponse",
    "new_id",
]
