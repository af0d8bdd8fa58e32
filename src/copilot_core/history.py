"""Conversation history handed to tool handlers."""
from __future__ import annotations

from typing import Iterable

from copilot_core.types import ChatMessage, HistoryEntry

__all__ = ["project_history"]


def project_history(messages: Iterable[ChatMessage]) -> list[HistoryEntry]:
    """
    Flatten the transcript into the role/content list a tool handler expects.

    User messages contribute their first version, assistant messages their
    latest version (the branch the user is looking at). Anything else is
    dropped.
    """
    history: list[HistoryEntry] = []
    for message in messages:
        if message.sender == "user":
            history.append({"role": "user", "content": message.first.content})
        elif message.sender == "assistant":
            history.append({"role": "assistant", "content": message.latest.content})
    return history
