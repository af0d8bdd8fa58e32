"""Tests for tool registry validation and lookups."""

import pytest

from copilot_core.errors import RegistryError
from copilot_core.registry import ToolRegistry


class TestToolRegistry:
    """Construction-time validation and lookups."""

    def test_preserves_registration_order(self, make_tool):
        registry = ToolRegistry([make_tool("intents"), make_tool("agents"), make_tool("general")])

        assert registry.ids == ["intents", "agents", "general"]
        assert [t.id for t in registry.specialized()] == ["intents", "agents"]
        assert registry.fallback.id == "general"
        assert len(registry) == 3
        assert "agents" in registry

    def test_empty_registry_rejected(self):
        with pytest.raises(RegistryError):
            ToolRegistry([])

    def test_duplicate_id_rejected(self, make_tool):
        with pytest.raises(RegistryError, match="Duplicate tool id"):
            ToolRegistry([make_tool("general"), make_tool("general", trigger="/other")])

    def test_duplicate_trigger_rejected(self, make_tool):
        with pytest.raises(RegistryError, match="Duplicate trigger"):
            ToolRegistry([make_tool("general"), make_tool("intents", trigger="/general")])

    def test_trigger_must_start_with_slash(self, make_tool):
        with pytest.raises(RegistryError, match="must start with"):
            ToolRegistry([make_tool("general", trigger="general")])

    def test_unknown_fallback_rejected(self, make_tool):
        with pytest.raises(RegistryError, match="Fallback"):
            ToolRegistry([make_tool("intents")])

    def test_registry_without_fallback(self, make_tool):
        registry = ToolRegistry([make_tool("intents")], fallback_id=None)

        assert registry.fallback is None
        assert [t.id for t in registry.specialized()] == ["intents"]

    def test_non_tool_entry_rejected(self, make_tool):
        with pytest.raises(RegistryError, match="Expected Tool"):
            ToolRegistry([make_tool("general"), {"id": "intents"}])

    def test_lookups(self, make_tool):
        registry = ToolRegistry([make_tool("general", trigger="/copilot"), make_tool("intents")])

        assert registry.get("intents").id == "intents"
        assert registry.get("missing") is None
        assert registry.by_trigger(" /copilot ").id == "general"
        with pytest.raises(KeyError, match="Unknown tool"):
            registry.require("missing")

    def test_trigger_prefix_matching(self, make_tool):
        registry = ToolRegistry([make_tool("general", trigger="/copilot"), make_tool("intents")])

        assert [t.id for t in registry.match_trigger_prefix("/")] == ["general", "intents"]
        assert [t.id for t in registry.match_trigger_prefix("/IN")] == ["intents"]
        assert registry.match_trigger_prefix("intents") == []
