"""Tests for the provider request/response adapters."""

from types import SimpleNamespace

import pytest
from anthropic.types import Message, TextBlock, Usage
from openai.types.chat.chat_completion import ChatCompletion, Choice
from openai.types.chat.chat_completion_chunk import ChatCompletionChunk, Choice as ChunkChoice, ChoiceDelta
from openai.types.chat.chat_completion_message import ChatCompletionMessage

from copilot_core.adapters import AnthropicRequestAdapter, GeminiRequestAdapter, OpenAIRequestAdapter


class TestOpenAIRequestAdapter:
    """OpenAI (and Gemini-compatible) request shaping."""

    @pytest.fixture
    def adapter(self):
        return OpenAIRequestAdapter()

    def test_to_provider_basic_functionality(self, adapter):
        messages = [{"role": "user", "content": "Hello"}]

        result = adapter.to_provider(messages, {"temperature": 0.7, "max_tokens": 100})

        assert result["messages"] == [{"role": "user", "content": "Hello"}]
        assert result["temperature"] == 0.7
        assert result["max_tokens"] == 100
        assert "stream" not in result

    def test_to_provider_message_conversion(self, adapter):
        messages = [
            {"role": "system", "content": "You are helpful"},
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": None},
        ]

        result = adapter.to_provider(messages, {})

        assert [m["role"] for m in result["messages"]] == ["system", "user", "assistant"]
        assert result["messages"][2]["content"] == ""

    def test_unknown_params_dropped_and_extras_passed(self, adapter):
        result = adapter.to_provider(
            [{"role": "user", "content": "x"}],
            {"temperature": 0.0, "stream": True, "bogus": 1, "extra": {"reasoning_effort": "low"}},
        )

        assert result["temperature"] == 0.0
        assert result["reasoning_effort"] == "low"
        assert "bogus" not in result
        assert "stream" not in result

    def test_from_provider(self, adapter):
        completion = ChatCompletion(
            id="cmpl-1",
            choices=[
                Choice(
                    finish_reason="stop",
                    index=0,
                    message=ChatCompletionMessage(role="assistant", content="intents"),
                )
            ],
            created=0,
            model="gpt-5-mini",
            object="chat.completion",
        )

        response = adapter.from_provider(completion)

        assert response.content == "intents"
        assert response.finish_reason == "stop"
        assert not response.is_error

    def test_stream_text(self, adapter):
        chunk = ChatCompletionChunk(
            id="cmpl-1",
            choices=[ChunkChoice(index=0, delta=ChoiceDelta(content="Hel"), finish_reason=None)],
            created=0,
            model="gpt-5-mini",
            object="chat.completion.chunk",
        )
        empty = ChatCompletionChunk(
            id="cmpl-1", choices=[], created=0, model="gpt-5-mini", object="chat.completion.chunk"
        )

        assert adapter.stream_text(chunk).content == "Hel"
        assert adapter.stream_text(empty).content == ""

    def test_gemini_uses_openai_shape(self):
        assert GeminiRequestAdapter is OpenAIRequestAdapter


class TestAnthropicRequestAdapter:
    """Anthropic request shaping."""

    @pytest.fixture
    def adapter(self):
        return AnthropicRequestAdapter()

    def test_system_messages_moved_out(self, adapter):
        messages = [
            {"role": "system", "content": "Pick a tool"},
            {"role": "user", "content": "make intents"},
        ]

        result = adapter.to_provider(messages, {"temperature": 0.1, "stop": "\n"})

        assert result["system"] == "Pick a tool"
        assert result["messages"] == [{"role": "user", "content": "make intents"}]
        assert result["max_tokens"] == 4096
        assert result["temperature"] == 0.1
        assert result["stop_sequences"] == ["\n"]

    def test_from_provider_joins_text_blocks(self, adapter):
        message = Message(
            id="msg_1",
            type="message",
            role="assistant",
            model="claude-sonnet-4",
            content=[TextBlock(type="text", text="agents")],
            stop_reason="end_turn",
            stop_sequence=None,
            usage=Usage(input_tokens=3, output_tokens=1),
        )

        response = adapter.from_provider(message)

        assert response.content == "agents"
        assert response.finish_reason == "end_turn"

    def test_stream_text_reads_text_deltas_only(self, adapter):
        delta = SimpleNamespace(
            type="content_block_delta", delta=SimpleNamespace(type="text_delta", text="Hi")
        )
        derived = SimpleNamespace(type="text", text="Hi")

        assert adapter.stream_text(delta).content == "Hi"
        assert adapter.stream_text(derived).content == ""
