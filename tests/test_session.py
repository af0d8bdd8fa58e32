"""Tests for the copilot state container and session wiring."""

import pytest

from copilot_core.detector import ToolDetector
from copilot_core.registry import ToolRegistry
from copilot_core.session import CopilotSession, CopilotState
from copilot_core.types import ChatStatus


@pytest.fixture
def registry(make_tool):
    def parse(text):
        return [{"id": word, "tag": word} for word in text.split()]

    return ToolRegistry(
        [
            make_tool("general", trigger="/copilot", chunks=["general reply"]),
            make_tool(
                "intents",
                chunks=["greeting ", "goodbye"],
                keywords=["intent", "pattern"],
                canvas_enabled=True,
                parse_canvas_items=parse,
                initial_controls_state={"language": "en", "avgCount": 4},
            ),
        ]
    )


class TestCopilotState:
    """Persistence boundary and canvas helpers."""

    def test_to_persisted_keeps_only_durable_fields(self):
        state = CopilotState(
            is_open=True,
            is_fullscreen=True,
            canvas_items=[{"id": "1"}],
            selected_tool_id="intents",
            controls_state={"language": "es"},
            web_search_enabled=True,
            selected_model="openai/gpt-5-mini",
            input_text="draft",
        )

        assert state.to_persisted() == {
            "selectedToolId": "intents",
            "controlsState": {"language": "es"},
            "webSearchEnabled": True,
            "selectedModel": "openai/gpt-5-mini",
            "isFullscreen": True,
        }

    def test_from_persisted(self):
        state = CopilotState.from_persisted(
            {"selectedToolId": "agents", "isFullscreen": True, "unknown": 1}
        )

        assert state.selected_tool_id == "agents"
        assert state.is_fullscreen is True
        assert state.canvas_items == []
        assert state.is_open is False

        assert CopilotState.from_persisted(None) == CopilotState()

    def test_clear_canvas_items_closes_canvas(self):
        state = CopilotState(is_canvas_open=True)
        state.add_canvas_item({"id": "1"})

        state.clear_canvas_items()

        assert state.canvas_items == []
        assert state.is_canvas_open is False

    def test_toggles_and_reset(self):
        state = CopilotState()
        state.toggle_open()
        state.toggle_fullscreen()
        state.toggle_canvas()
        state.toggle_web_search()
        assert (state.is_open, state.is_fullscreen, state.is_canvas_open) == (True, True, True)
        assert state.web_search_enabled is True

        state.reset()
        assert state == CopilotState()


class TestCopilotSession:
    """Tool selection, auto-detection and canvas wiring."""

    def test_unknown_persisted_tool_falls_back(self, registry):
        session = CopilotSession(registry, CopilotState(selected_tool_id="agents"))

        assert session.active_tool.id == "general"
        assert session.state.selected_tool_id == "general"

    def test_select_tool_resets_controls_and_conversation(self, registry):
        session = CopilotSession(registry)

        tool = session.select_tool("intents")

        assert tool.id == "intents"
        assert session.state.selected_tool_id == "intents"
        assert session.state.controls_state == {"language": "en", "avgCount": 4}
        assert session.orchestrator.controls_state == {"language": "en", "avgCount": 4}
        assert len(session.messages) == 1

    def test_select_by_trigger(self, registry):
        session = CopilotSession(registry)

        assert session.select_by_trigger("/intents").id == "intents"
        assert session.select_by_trigger("/int") is None
        assert session.select_by_trigger("/copilot").id == "general"

    def test_model_defaults_until_selected(self, registry):
        session = CopilotSession(registry, default_model="google/gemini-2.0-flash-lite")
        assert session.model == "google/gemini-2.0-flash-lite"

        session.set_model("openai/gpt-5-mini")
        assert session.orchestrator.model == "openai/gpt-5-mini"
        assert session.state.selected_model == "openai/gpt-5-mini"

    @pytest.mark.asyncio
    async def test_auto_detect_switches_to_specialized_tool(self, registry):
        switched = []
        session = CopilotSession(
            registry,
            detector=ToolDetector(),
            on_tool_switched=lambda tool, result: switched.append((tool.id, result.confidence)),
        )

        await session.submit("generate intent patterns now")

        assert session.active_tool.id == "intents"
        assert switched == [("intents", 1.0)]
        assert session.messages[-2].first.content == "generate intent patterns now"
        assert session.messages[-1].latest.content == "greeting goodbye"
        assert [item["tag"] for item in session.state.canvas_items] == ["greeting", "goodbye"]
        assert session.state.is_canvas_open is True
        assert session.state.is_fullscreen is True

    @pytest.mark.asyncio
    async def test_low_confidence_stays_on_general(self, registry):
        session = CopilotSession(registry, detector=ToolDetector())

        await session.submit("create intents for greetings")

        assert session.active_tool.id == "general"
        assert session.messages[-1].latest.content == "general reply"
        assert session.status is ChatStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_short_messages_skip_detection(self, registry):
        session = CopilotSession(registry, detector=ToolDetector())

        assert await session.detect("intent") is None

        session.select_tool("intents")
        assert await session.detect("generate intent patterns now") is None

    def test_selecting_plain_tool_clears_canvas(self, registry):
        state = CopilotState(is_canvas_open=True, canvas_items=[{"id": "1"}])
        session = CopilotSession(registry, state)

        session.select_tool("general")

        assert state.canvas_items == []
        assert state.is_canvas_open is False
