"""Ordered, validated set of copilot tools."""
from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence

from copilot_core.config import FALLBACK_TOOL_ID
from copilot_core.errors import RegistryError
from copilot_core.types import Tool

__all__ = ["ToolRegistry"]


class ToolRegistry:
    """
    Immutable tool registry, validated once at construction.

    Registry order is significant: keyword detection walks the tools in the
    order they were registered and the first match wins.

    Args:
        tools: The tool descriptors, in precedence order.
        fallback_id: Id of the general-purpose tool detection falls back to.
            Pass ``None`` for a registry without one.
    """

    def __init__(
        self,
        tools: Iterable[Tool],
        *,
        fallback_id: Optional[str] = FALLBACK_TOOL_ID,
    ) -> None:
        self._tools: tuple[Tool, ...] = tuple(tools)
        self._by_id: dict[str, Tool] = {}
        self._by_trigger: dict[str, Tool] = {}
        self._validate(fallback_id)
        self.fallback_id = fallback_id

    def _validate(self, fallback_id: Optional[str]) -> None:
        if not self._tools:
            raise RegistryError("A tool registry needs at least one tool")

        for tool in self._tools:
            if not isinstance(tool, Tool):
                raise RegistryError(f"Expected Tool, got {type(tool).__name__}")
            if not tool.id:
                raise RegistryError(f"Tool {tool.name!r} has an empty id")
            if tool.id in self._by_id:
                raise RegistryError(f"Duplicate tool id: {tool.id!r}")
            if not tool.trigger.startswith("/"):
                raise RegistryError(
                    f"Trigger for {tool.id!r} must start with '/': {tool.trigger!r}"
                )
            if tool.trigger in self._by_trigger:
                raise RegistryError(f"Duplicate trigger: {tool.trigger!r}")
            if not callable(tool.handler):
                raise RegistryError(f"Tool {tool.id!r} has no callable handler")
            self._by_id[tool.id] = tool
            self._by_trigger[tool.trigger] = tool

        if fallback_id is not None and fallback_id not in self._by_id:
            raise RegistryError(f"Fallback tool {fallback_id!r} is not registered")

    # --- lookups -----------------------------------------------------------
    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._by_id

    @property
    def ids(self) -> list[str]:
        return [tool.id for tool in self._tools]

    @property
    def fallback(self) -> Optional[Tool]:
        if self.fallback_id is None:
            return None
        return self._by_id[self.fallback_id]

    def get(self, tool_id: str) -> Optional[Tool]:
        return self._by_id.get(tool_id)

    def require(self, tool_id: str) -> Tool:
        try:
            return self._by_id[tool_id]
        except KeyError:
            raise KeyError(f"Unknown tool: {tool_id!r}") from None

    def specialized(self) -> list[Tool]:
        """Every tool except the fallback, in registry order."""
        return [tool for tool in self._tools if tool.id != self.fallback_id]

    def by_trigger(self, trigger: str) -> Optional[Tool]:
        return self._by_trigger.get(trigger.strip())

    def match_trigger_prefix(self, text: str) -> Sequence[Tool]:
        """Tools offered while the user is typing a ``/command``."""
        if not text.startswith("/"):
            return []
        prefix = text.strip().lower()
        return [tool for tool in self._tools if tool.trigger.lower().startswith(prefix)]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.ids!r}, fallback_id={self.fallback_id!r})"
