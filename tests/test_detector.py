"""Tests for hybrid keyword/remote tool detection."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from copilot_core.detector import (
    ClassificationRequest,
    HTTPToolClassifier,
    LLMToolClassifier,
    ToolDetector,
    build_tool_selection_prompt,
    detect_by_keywords,
)
from copilot_core.errors import ClassifierError
from copilot_core.registry import ToolRegistry
from copilot_core.response import ChatResponse

MODEL = "google/gemini-2.0-flash-lite"


@pytest.fixture
def registry(make_tool):
    return ToolRegistry(
        [make_tool("intents", keywords=["intent", "pattern"]), make_tool("general")]
    )


def classifier_returning(tool_id):
    classifier = MagicMock()
    classifier.classify = AsyncMock(return_value=tool_id)
    return classifier


class TestKeywordPass:
    """Pure keyword detection."""

    def test_no_match_returns_fallback(self, registry):
        result = detect_by_keywords("what time is it", registry)

        assert result.tool.id == "general"
        assert result.confidence == 0.5

    def test_confidence_is_share_of_matched_keywords(self, registry):
        result = detect_by_keywords("Create INTENTS for greetings", registry)

        assert result.tool.id == "intents"
        assert result.confidence == 0.5
        assert "intent" in result.reason

    def test_first_registered_tool_wins(self, make_tool):
        registry = ToolRegistry(
            [
                make_tool("agents", keywords=["create"]),
                make_tool("intents", keywords=["create", "intent"]),
                make_tool("general"),
            ]
        )

        result = detect_by_keywords("create intent", registry)

        assert result.tool.id == "agents"
        assert result.confidence == 1.0


class TestToolDetector:
    """Escalation rules of the hybrid detector."""

    @pytest.mark.asyncio
    async def test_low_confidence_escalates_to_classifier(self, registry):
        classifier = classifier_returning("intents")
        detector = ToolDetector(classifier)

        result = await detector.detect("create intents for greetings", registry, MODEL)

        assert result.tool.id == "intents"
        assert result.confidence == 0.9
        classifier.classify.assert_awaited_once()
        request = classifier.classify.await_args.args[0]
        assert request.message == "create intents for greetings"
        assert request.model == MODEL
        assert '"intents" (/intents)' in request.system_prompt

    @pytest.mark.asyncio
    async def test_high_confidence_skips_classifier(self, registry):
        classifier = classifier_returning("general")
        detector = ToolDetector(classifier)

        result = await detector.detect("generate intent patterns now", registry, MODEL)

        assert result.tool.id == "intents"
        assert result.confidence == 1.0
        classifier.classify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_classifier_returns_fallback_at_half_confidence(self, registry):
        result = await ToolDetector().detect("tell me a joke", registry, MODEL)

        assert result.tool.id == "general"
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_classifier_failure_falls_back_to_keyword_result(self, registry):
        classifier = MagicMock()
        classifier.classify = AsyncMock(side_effect=ClassifierError("boom"))
        detector = ToolDetector(classifier)

        result = await detector.detect("create intents for greetings", registry, MODEL)

        assert result.tool.id == "intents"
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_unknown_tool_id_degrades_to_fallback(self, registry):
        detector = ToolDetector(classifier_returning("weather"))

        result = await detector.detect("create intents for greetings", registry, MODEL)

        assert result.tool.id == "general"
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_classifier_answer_is_normalized(self, registry):
        detector = ToolDetector(classifier_returning('  "Intents".\n'))

        result = await detector.detect("create intents for greetings", registry, MODEL)

        assert result.tool.id == "intents"
        assert result.reason == "Detected specialized tool: Intents Tool"

    @pytest.mark.asyncio
    async def test_classifier_choosing_fallback(self, registry):
        detector = ToolDetector(classifier_returning("general"))

        result = await detector.detect("what can you do for me", registry, MODEL)

        assert result.tool.id == "general"
        assert result.confidence == 0.9
        assert not result.is_specialized("general")


def test_selection_prompt_lists_only_specialized_tools(registry):
    prompt = build_tool_selection_prompt(registry)

    assert '"intents" (/intents)' in prompt
    assert "Keywords: intent, pattern" in prompt
    assert '"general" (/general)' not in prompt
    assert prompt.endswith('Respond with exactly one tool id or "general", nothing else.')


class TestHTTPToolClassifier:
    """Detect-tool endpoint client."""

    REQUEST = ClassificationRequest(message="make intents", model=MODEL, system_prompt="pick")

    @staticmethod
    def client_for(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_posts_payload_and_returns_tool_id(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"toolId": "intents"})

        async with self.client_for(handler) as client:
            classifier = HTTPToolClassifier("http://copilot.test/detect-tool", client=client)
            tool_id = await classifier.classify(self.REQUEST)

        assert tool_id == "intents"
        assert seen["body"] == {"message": "make intents", "model": MODEL, "systemPrompt": "pick"}

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to detect tool", "details": "down"})

        async with self.client_for(handler) as client:
            classifier = HTTPToolClassifier("http://copilot.test/detect-tool", client=client)
            with pytest.raises(ClassifierError, match="500"):
                await classifier.classify(self.REQUEST)

    @pytest.mark.asyncio
    async def test_missing_tool_id_raises(self):
        def handler(request):
            return httpx.Response(200, json={"tool": "intents"})

        async with self.client_for(handler) as client:
            classifier = HTTPToolClassifier("http://copilot.test/detect-tool", client=client)
            with pytest.raises(ClassifierError, match="no toolId"):
                await classifier.classify(self.REQUEST)

    @pytest.mark.asyncio
    async def test_http_failure_degrades_detection(self, registry):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        async with self.client_for(handler) as client:
            detector = ToolDetector(HTTPToolClassifier("http://copilot.test/x", client=client))
            result = await detector.detect("create intents for greetings", registry, MODEL)

        assert result.tool.id == "intents"
        assert result.confidence == 0.5


class TestLLMToolClassifier:
    """Classification through the package's LLM client."""

    @staticmethod
    def make_llm(response):
        llm = MagicMock()
        llm.chat = AsyncMock(return_value=response)
        llm.__aenter__.return_value = llm
        return llm

    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages(self):
        llm = self.make_llm(ChatResponse(content=" Agents \n"))
        factory = MagicMock(return_value=llm)

        tool_id = await LLMToolClassifier(factory).classify(TestHTTPToolClassifier.REQUEST)

        assert tool_id == "agents"
        factory.assert_called_once_with(MODEL)
        messages = llm.chat.await_args.args[0]
        assert messages == [
            {"role": "system", "content": "pick"},
            {"role": "user", "content": "make intents"},
        ]
        assert llm.chat.await_args.kwargs["params"] == {"temperature": 0.1}

    @pytest.mark.asyncio
    async def test_client_closed_after_each_classification(self):
        llm = self.make_llm(ChatResponse(content="intents"))
        classifier = LLMToolClassifier(MagicMock(return_value=llm))

        await classifier.classify(TestHTTPToolClassifier.REQUEST)

        llm.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_response_raises(self):
        llm = self.make_llm(ChatResponse(content="", error="quota"))

        with pytest.raises(ClassifierError, match="quota"):
            await LLMToolClassifier(MagicMock(return_value=llm)).classify(
                TestHTTPToolClassifier.REQUEST
            )
        llm.__aexit__.assert_awaited_once()
