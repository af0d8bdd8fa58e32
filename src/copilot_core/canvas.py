"""Canvas item extraction from completed assistant replies."""
from __future__ import annotations

import json
import logging
import re
from logging import Logger
from typing import Any, Iterable

from copilot_core.types import CanvasItem, new_id

__all__ = ["extract_json_objects", "parse_agents", "parse_intents"]

_logger: Logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())

_JSON_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)```")

_INTENT_REQUIRED = ("tag", "patterns", "responses")
_AGENT_REQUIRED = ("name", "role", "systemPrompt")
_AGENT_FIELDS = ("description", "role", "systemPrompt", "objective", "personality", "backstory")


def _has_fields(data: Any, required: Iterable[str]) -> bool:
    return isinstance(data, dict) and all(data.get(key) for key in required)


def _raw_objects(text: str) -> Iterable[str]:
    """Balanced top-level ``{...}`` spans, string-literal aware."""
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for pos, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = pos
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:pos + 1]


def extract_json_objects(text: str, required: Iterable[str]) -> list[dict[str, Any]]:
    """
    Collect JSON objects carrying every ``required`` key.

    Fenced ```json blocks are tried first; only when none of them qualifies
    is the text scanned for bare objects. Malformed JSON is logged and
    skipped.
    """
    required = tuple(required)
    found: list[dict[str, Any]] = []

    for match in _JSON_BLOCK_RE.finditer(text):
        try:
            data = json.loads(match.group(1).strip())
        except json.JSONDecodeError as exc:
            _logger.warning(f"Bad JSON in code block: {exc}")
            continue
        if _has_fields(data, required):
            found.append(data)

    if found:
        return found

    for candidate in _raw_objects(text):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if _has_fields(data, required):
            found.append(data)
    return found


def parse_intents(text: str) -> list[CanvasItem]:
    intents = extract_json_objects(text, _INTENT_REQUIRED)
    tags = {intent["tag"] for intent in intents}

    items: list[CanvasItem] = []
    for intent in intents:
        options = intent.get("options")
        if isinstance(options, list):
            dangling = [
                opt.get("tag") for opt in options
                if isinstance(opt, dict) and opt.get("tag") and opt.get("tag") not in tags
            ]
            if dangling:
                _logger.warning(
                    f"Intent {intent['tag']!r} has options referencing missing tags: {dangling}"
                )

        item: CanvasItem = {
            "id": intent.get("id") or new_id(),
            "tag": intent["tag"],
            "patterns": intent["patterns"],
            "responses": intent["responses"],
        }
        if options is not None:
            item["options"] = options
        if intent.get("visualCue") is not None:
            item["visualCue"] = intent["visualCue"]
        items.append(item)
    return items


def parse_agents(text: str) -> list[CanvasItem]:
    items: list[CanvasItem] = []
    for agent in extract_json_objects(text, _AGENT_REQUIRED):
        item: CanvasItem = {"id": new_id(), "name": agent.get("name") or "Unnamed Agent"}
        for key in _AGENT_FIELDS:
            if agent.get(key) is not None:
                item[key] = agent[key]
        items.append(item)
    return items
