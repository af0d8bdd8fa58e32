"""
Hybrid tool detection: a fast local keyword pass, escalated to a remote
model-based classifier only when the keyword confidence is low.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

import httpx

from copilot_core.client import BaseAsyncLLM, create_llm_for_model
from copilot_core.config import (
    CLASSIFIER_CONFIDENCE,
    CLASSIFIER_TEMPERATURE,
    FALLBACK_CONFIDENCE,
    KEYWORD_CONFIDENCE_THRESHOLD,
)
from copilot_core.errors import ClassifierError
from copilot_core.registry import ToolRegistry
from copilot_core.types import DetectionResult

__all__ = [
    "ClassificationRequest",
    "HTTPToolClassifier",
    "LLMToolClassifier",
    "ToolClassifier",
    "ToolDetector",
    "build_tool_selection_prompt",
    "detect_by_keywords",
]


@dataclass(frozen=True, slots=True)
class ClassificationRequest:
    message: str
    model: str
    system_prompt: str


class ToolClassifier(Protocol):
    """Remote classifier: returns a raw tool id, raises on any failure."""

    async def classify(self, request: ClassificationRequest) -> str:
        ...


def build_tool_selection_prompt(registry: ToolRegistry) -> str:
    """System prompt asking a model to pick exactly one tool id."""
    fallback_id = registry.fallback_id or "general"
    descriptions = "\n\n".join(
        f'{index}. "{tool.id}" ({tool.trigger}): {tool.description}\n'
        f"   Keywords: {', '.join(tool.keywords) or 'N/A'}"
        for index, tool in enumerate(registry.specialized(), start=1)
    )
    example_id = next(iter(registry.specialized()), None)
    example = f'- "create {example_id.id}" -> "{example_id.id}"\n' if example_id else ""

    return f"""You are a tool selector. Given a user message, determine which specialized tool should handle it.

Available specialized tools:
{descriptions}

Rules:
- Return ONLY the tool id
- If the message clearly matches a specialized tool, return that tool id
- If NO specialized tool matches, return "{fallback_id}"
- Be decisive but accurate

Examples:
{example}- "what can you do?" -> "{fallback_id}"

Respond with exactly one tool id or "{fallback_id}", nothing else."""


def detect_by_keywords(message: str, registry: ToolRegistry) -> DetectionResult:
    """
    Pure keyword pass. Registry order decides: the first tool with at least
    one matching keyword wins, scored by the share of its keywords matched.
    """
    lower_message = message.lower()

    for tool in registry:
        if not tool.keywords:
            continue
        matched = [kw for kw in tool.keywords if kw.lower() in lower_message]
        if matched:
            return DetectionResult(
                tool=tool,
                confidence=len(matched) / len(tool.keywords),
                reason=f"Matched keywords: {', '.join(matched)}",
            )

    return DetectionResult(
        tool=registry.fallback,
        confidence=FALLBACK_CONFIDENCE,
        reason="No keyword match, defaulting to general",
    )


def _parse_tool_id(text: str) -> str:
    return text.strip().strip("\"'`.").strip().lower()


class ToolDetector:
    """
    Maps a free-text message to a tool.

    ``detect`` never raises: a failing classifier degrades to the keyword
    result. Instances hold no per-call state and may be shared.

    Args:
        classifier: Remote classifier for low-confidence messages. Without
            one, the keyword result is always final.
        threshold: Keyword confidence at or above which the remote call is
            skipped.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        classifier: Optional[ToolClassifier] = None,
        *,
        threshold: float = KEYWORD_CONFIDENCE_THRESHOLD,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.classifier = classifier
        self.threshold = threshold
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    async def detect(
        self, message: str, registry: ToolRegistry, model: str
    ) -> DetectionResult:
        keyword_result = detect_by_keywords(message, registry)

        if keyword_result.confidence >= self.threshold or self.classifier is None:
            return keyword_result

        request = ClassificationRequest(
            message=message,
            model=model,
            system_prompt=build_tool_selection_prompt(registry),
        )
        try:
            tool_id = _parse_tool_id(await self.classifier.classify(request))
        except Exception as exc:
            self._log(f"Remote detection failed, using keyword result: {exc}", logging.WARNING)
            return keyword_result

        tool = registry.get(tool_id)
        if tool is None:
            self._log(f"Classifier returned unknown tool id {tool_id!r}", logging.INFO)
            return DetectionResult(
                tool=registry.fallback,
                confidence=FALLBACK_CONFIDENCE,
                reason="Tool not found, defaulting to general",
            )

        if tool.id == registry.fallback_id:
            reason = "No specific tool matched"
        else:
            reason = f"Detected specialized tool: {tool.name}"
        return DetectionResult(tool=tool, confidence=CLASSIFIER_CONFIDENCE, reason=reason)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")


class LLMToolClassifier:
    """Classifies through the package's own LLM client."""

    def __init__(
        self,
        llm_factory: Callable[[str], BaseAsyncLLM] = create_llm_for_model,
        *,
        temperature: float = CLASSIFIER_TEMPERATURE,
    ) -> None:
        self.llm_factory = llm_factory
        self.temperature = temperature

    async def classify(self, request: ClassificationRequest) -> str:
        messages = [
            {"role": "system", "content": request.system_prompt},
            {"role": "user", "content": request.message},
        ]
        async with self.llm_factory(request.model) as llm:
            response = await llm.chat(messages, params={"temperature": self.temperature})
        if response.is_error:
            raise ClassifierError(f"Tool classification failed: {response.error}")
        return response.content.strip().lower()


class HTTPToolClassifier:
    """
    Client for a detect-tool endpoint.

    Request body ``{"message", "model", "systemPrompt"}``; a 2xx reply
    carries ``{"toolId": ...}``, errors carry ``{"error", "details"}``.
    """

    def __init__(
        self,
        url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self._client = client
        self.timeout = timeout

    async def classify(self, request: ClassificationRequest) -> str:
        payload = {
            "message": request.message,
            "model": request.model,
            "systemPrompt": request.system_prompt,
        }
        if self._client is not None:
            response = await self._client.post(self.url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)

        if not response.is_success:
            raise ClassifierError(
                f"Tool detection API failed ({response.status_code}): {_error_details(response)}"
            )

        try:
            body: Any = response.json()
        except ValueError as exc:
            raise ClassifierError("Tool detection API returned invalid JSON", exc) from exc

        tool_id = body.get("toolId") if isinstance(body, dict) else None
        if not isinstance(tool_id, str):
            raise ClassifierError(f"Tool detection API returned no toolId: {body!r}")
        return tool_id


def _error_details(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return f"{body.get('error', 'unknown error')} ({body.get('details', 'no details')})"
    return str(body)[:200]
