"""Shared fixtures for the copilot_core test suite."""

import asyncio

import pytest

from copilot_core.types import Tool, ToolResponse


async def _stream(chunks, gate=None):
    for chunk in chunks:
        if gate is not None:
            await gate.get()
        yield chunk


@pytest.fixture
def make_tool():
    """Factory for tools whose handler streams fixed chunks."""

    def factory(
        tool_id="general",
        chunks=("Hello", " world"),
        *,
        trigger=None,
        keywords=(),
        gate=None,
        requests=None,
        handler=None,
        **kwargs,
    ):
        async def streaming_handler(request):
            if requests is not None:
                requests.append(request)
            return ToolResponse(stream=_stream(list(chunks), gate))

        return Tool(
            id=tool_id,
            name=kwargs.pop("name", f"{tool_id.title()} Tool"),
            description=kwargs.pop("description", f"The {tool_id} tool"),
            trigger=trigger or f"/{tool_id}",
            handler=handler or streaming_handler,
            keywords=keywords,
            **kwargs,
        )

    return factory


@pytest.fixture
def gate():
    """Queue that releases one streamed chunk per ``put_nowait``."""
    return asyncio.Queue()
