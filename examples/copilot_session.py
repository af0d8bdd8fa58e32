"""This script runs a copilot conversation in the terminal:

1. Messages go to the general assistant until detection picks a tool.
2. ``/intents``, ``/agents`` or ``/copilot`` switch tools directly.
3. Intents and agents are collected on the canvas as they are generated.

Execute directly, supplying the API key for the chosen model, e.g.
``GEMINI_API_KEY`` for the default ``google/gemini-2.0-flash-lite``.
Set ``COPILOT_DETECT_TOOL_URL`` to use a remote detect-tool endpoint instead
of classifying through the model directly.
"""

from __future__ import annotations

import asyncio
import json
import logging

from copilot_core import (
    CopilotSession,
    CopilotSettings,
    CopilotState,
    HTTPToolClassifier,
    LLMToolClassifier,
    ToolDetector,
    build_default_registry,
)
from copilot_core.types import ChatStatus

_LOGGER = logging.getLogger("examples.copilot_session")
logging.basicConfig(level=logging.INFO, format="%(message)s")


async def main() -> None:
    settings = CopilotSettings.from_env()
    if settings.detect_tool_url:
        classifier = HTTPToolClassifier(settings.detect_tool_url)
    else:
        classifier = LLMToolClassifier()

    session = CopilotSession(
        build_default_registry(),
        CopilotState(),
        detector=ToolDetector(classifier),
        default_model=settings.default_model,
        idle_delay=settings.idle_grace_delay,
    )

    printed = 0

    def on_change(messages, status):
        nonlocal printed
        if status is ChatStatus.STREAMING:
            content = messages[-1].latest.content
            print(content[printed:], end="", flush=True)
            printed = len(content)
        elif status is ChatStatus.ERROR:
            print(messages[-1].latest.content)

    session.orchestrator.subscribe(on_change)
    print(session.messages[0].latest.content)

    while True:
        text = (await asyncio.to_thread(input, "\n> ")).strip()
        if text in {"exit", "quit"}:
            break
        if session.select_by_trigger(text):
            print(session.messages[0].latest.content)
            continue

        printed = 0
        await session.submit(text)
        print()

    for item in session.state.canvas_items:
        _LOGGER.info(json.dumps(item, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    asyncio.run(main())
