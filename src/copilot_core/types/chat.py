"""Chat transcript types shared by the orchestrator and its observers."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Literal, TypedDict

__all__ = [
    "ChatMessage",
    "ChatStatus",
    "HistoryEntry",
    "MessageVersion",
    "Sender",
    "new_id",
]

Sender = Literal["user", "assistant"]


def new_id() -> str:
    """Opaque, url-safe identifier for messages, versions and canvas items."""
    return secrets.token_urlsafe(12)


class ChatStatus(StrEnum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"


class HistoryEntry(TypedDict):
    """Flat role/content pair handed to tool handlers (and on to the model)."""
    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True, slots=True)
class MessageVersion:
    id: str
    content: str


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """
    One transcript entry. A message with more than one version is a branch
    point; the last version is the one currently shown.

    Instances are immutable: the orchestrator publishes updated copies, so a
    snapshot handed to an observer never changes underneath it.
    """

    key: str
    sender: Sender
    name: str
    versions: tuple[MessageVersion, ...]

    def __post_init__(self) -> None:
        if not self.versions:
            raise ValueError("ChatMessage requires at least one version")

    @property
    def first(self) -> MessageVersion:
        return self.versions[0]

    @property
    def latest(self) -> MessageVersion:
        return self.versions[-1]

    @property
    def is_branch_point(self) -> bool:
        return len(self.versions) > 1

    def with_content(self, content: str) -> "ChatMessage":
        """Copy with the latest version's content replaced, keeping its id."""
        version = replace(self.latest, content=content)
        return replace(self, versions=self.versions[:-1] + (version,))

    def add_version(self, content: str) -> "ChatMessage":
        """Copy with a new alternative version appended."""
        version = MessageVersion(id=new_id(), content=content)
        return replace(self, versions=self.versions + (version,))

    @classmethod
    def create(cls, sender: Sender, name: str, content: str = "") -> "ChatMessage":
        return cls(
            key=new_id(),
            sender=sender,
            name=name,
            versions=(MessageVersion(id=new_id(), content=content),),
        )
