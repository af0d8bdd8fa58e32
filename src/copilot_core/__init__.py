"""
Copilot Core - tool routing and streaming chat turns for an admin copilot.
"""

from .blocks import BlockToggleState, ContentBlockExtractor, normalize_collapsible_blocks
from .cancellation import CancellationToken
from .client import (
    BaseAsyncLLM,
    OpenAILLM,
    AnthropicLLM,
    GeminiLLM,
    create_llm,
    create_llm_for_model,
)
from .config import CopilotSettings
from .detector import HTTPToolClassifier, LLMToolClassifier, ToolDetector
from .errors import ClassifierError, CopilotError, RegistryError, TurnCancelled
from .history import project_history
from .orchestrator import StreamingChatOrchestrator, create_welcome_message
from .provider import Provider, get_api_key
from .registry import ToolRegistry
from .response import ChatResponse
from .session import CopilotSession, CopilotState
from .tools import LLMToolHandler, build_default_registry
from .types import (
    ChatMessage,
    ChatStatus,
    CollapsibleBlockConfig,
    DetectionResult,
    Tool,
    ToolRequest,
    ToolResponse,
)

__version__ = "0.1.0"

__all__ = [
    "BaseAsyncLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "GeminiLLM",
    "create_llm",
    "create_llm_for_model",
    "ChatResponse",
    "Provider",
    "get_api_key",
    "CopilotSettings",
    "CopilotError",
    "ClassifierError",
    "RegistryError",
    "TurnCancelled",
    "ChatMessage",
    "ChatStatus",
    "CollapsibleBlockConfig",
    "DetectionResult",
    "Tool",
    "ToolRequest",
    "ToolResponse",
    "ToolRegistry",
    "ToolDetector",
    "LLMToolClassifier",
    "HTTPToolClassifier",
    "CancellationToken",
    "project_history",
    "StreamingChatOrchestrator",
    "create_welcome_message",
    "BlockToggleState",
    "ContentBlockExtractor",
    "normalize_collapsible_blocks",
    "LLMToolHandler",
    "build_default_registry",
    "CopilotSession",
    "CopilotState",
]
